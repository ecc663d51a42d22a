"""Key-case mapping between API payloads and form data.

Most models get camelCase handling for free from ApiModel's alias generator.
These helpers cover the places that still shuffle raw dicts around, chiefly
the admin exam form, whose payload the server expects in snake_case.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel

_UPPER = re.compile(r"[A-Z]")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")


def camel_to_snake(name: str) -> str:
    """courseId -> course_id"""
    return _UPPER.sub(lambda m: f"_{m.group(0).lower()}", name)


def snake_to_camel(name: str) -> str:
    """course_id -> courseId"""
    return _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), name)


def keys_to_snake(data: dict[str, Any]) -> dict[str, Any]:
    """Shallow conversion of every key to snake_case."""
    return {camel_to_snake(k): v for k, v in data.items()}


def keys_to_camel(data: dict[str, Any]) -> dict[str, Any]:
    """Shallow conversion of every key to camelCase."""
    return {snake_to_camel(k): v for k, v in data.items()}


class ExamForm(BaseModel):
    """Editable exam fields as the admin form holds them."""

    title: str = ""
    description: str = ""
    type: str | None = None
    status: str = "active"
    max_score: int | None = None
    passing_score: int | None = None
    time_limit: int | None = None
    course_id: int | None = None
    section_id: int | None = None
    semester_id: int | None = None
    grade_a_threshold: int = 90
    grade_b_threshold: int = 80
    grade_c_threshold: int = 70
    grade_d_threshold: int = 60
    available_from: datetime | None = None
    available_to: datetime | None = None


def exam_to_form(exam: dict[str, Any]) -> ExamForm:
    """Build form data from an exam payload in either key case.

    Missing or null values fall back to the form defaults (empty title and
    description, active status, 90/80/70/60 grade thresholds).
    """
    fields = keys_to_snake(exam)
    present = {
        k: v for k, v in fields.items() if k in ExamForm.model_fields and v not in (None, "")
    }
    return ExamForm(**present)


def form_to_exam_payload(form: ExamForm) -> dict[str, Any]:
    """Serialize form data to the snake_case payload the exam endpoints accept."""
    return form.model_dump(mode="json")
