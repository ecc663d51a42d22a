"""Exam picker used by the course builder and the grading screens.

Lists exams for one course, or for every course when "show exams from all
courses" is on, filters them by a search string, and tracks the selection.
The list comes through the query cache, so several selectors on one screen
share a single request. Toggling between course and all exams changes the
query key; that key change is debounced so a flurry of toggles costs one fetch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from thub_api.client import ApiClient
from thub_api.resources import exams_fetcher
from thub_query.cache import QueryCache
from thub_query.keys import QueryKey, exams_key
from thub_query.query import OptimizedQuery
from thub_shared.catalog_models import Exam

logger = logging.getLogger(__name__)

ExamSelectListener = Callable[[Exam | None], None]


def filter_exams(exams: list[Exam], text: str) -> list[Exam]:
    """Exams whose title or description contains text, case-insensitively."""
    needle = text.lower()
    return [
        exam
        for exam in exams
        if needle in exam.title.lower()
        or (exam.description is not None and needle in exam.description.lower())
    ]


class ExamSelector:
    def __init__(
        self,
        cache: QueryCache,
        api: ApiClient,
        course_id: int,
        show_only_course_exams: bool = False,
        debounce_ms: int | None = None,
        on_select: ExamSelectListener | None = None,
    ) -> None:
        self.course_id = course_id
        self.show_only_course_exams = show_only_course_exams
        self.show_all = not show_only_course_exams
        self.search_query = ""
        self.selected: Exam | None = None
        self.exams: list[Exam] = []
        self._on_select = on_select
        self._query = OptimizedQuery(cache, exams_fetcher(api), debounce_ms=debounce_ms)

    @property
    def query_key(self) -> QueryKey:
        return exams_key(None if self.show_all else self.course_id)

    async def load(self) -> list[Exam]:
        """Fetch the exam list for the current mode. A failed fetch yields an empty list."""
        if not self.course_id:
            self.exams = []
            return self.exams

        result = await self._query.query(self.query_key)
        if result.error is not None:
            logger.error(f"Failed to fetch exams: {result.error}")
            self.exams = []
        else:
            self.exams = result.data or []
        return self.exams

    async def set_show_all(self, show_all: bool) -> list[Exam]:
        """Switch between this course's exams and every course's exams."""
        if self.show_only_course_exams:
            raise ValueError("This selector is restricted to the course's own exams")
        self.show_all = show_all
        return await self.load()

    def search(self, text: str) -> list[Exam]:
        self.search_query = text
        return self.filtered_exams

    @property
    def filtered_exams(self) -> list[Exam]:
        return filter_exams(self.exams, self.search_query)

    def select(self, exam_id: int | None) -> Exam | None:
        """Select by id. An id that isn't in the loaded list leaves the selection as is."""
        if exam_id is None:
            self.selected = None
        else:
            match = next((e for e in self.exams if e.id == exam_id), None)
            if match is None:
                return self.selected
            self.selected = match
        if self._on_select is not None:
            self._on_select(self.selected)
        return self.selected

    def is_course_exam(self, exam: Exam) -> bool:
        return exam.course_id == self.course_id
