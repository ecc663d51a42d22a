"""Read-only catalog models served by the public and admin endpoints.

Fields mirror what the portal actually consumes; unknown keys in the payload
are ignored so server-side schema additions don't break the client.
"""

from datetime import datetime

from thub_shared.models import ApiModel


class Exam(ApiModel):
    id: int
    title: str
    description: str | None = None
    type: str
    course_id: int
    status: str = "active"
    max_score: int = 100
    grading_mode: str = "auto"


class Event(ApiModel):
    id: int
    title: str
    description: str | None = None
    date: datetime | None = None
    location: str | None = None
    image_url: str | None = None
    is_active: bool = True


class Product(ApiModel):
    id: int
    name: str
    description: str | None = None
    type: str | None = None
    price: float | None = None
    url: str | None = None
    image_url: str | None = None
    is_active: bool = True


class Alert(ApiModel):
    """A site-wide banner alert."""

    id: int
    type: str = "info"  # discount, registration, celebration, announcement, info
    title: str
    content: str
    is_active: bool = True
    start_date: datetime | None = None
    end_date: datetime | None = None
    button_text: str | None = None
    button_link: str | None = None
    priority: int = 0
    dismissable: bool = True


class VerifiedCertificate(ApiModel):
    id: str
    issue_date: datetime | None = None
    student_name: str | None = None
    course_name: str | None = None


class CertificateVerification(ApiModel):
    """Response of GET /api/certificates/verify/{id}."""

    verified: bool
    certificate: VerifiedCertificate | None = None
    message: str | None = None
