"""
Request, result and state models for an audit session.
"""

from enum import Enum
from urllib.parse import urlencode
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


class ScanRequest(BaseModel):
    """One scan job. Frozen once built; correlation_id is fresh per request."""

    model_config = ConfigDict(frozen=True)

    website_url: str
    industry: str
    goal: str
    correlation_id: UUID = Field(default_factory=uuid4)

    def scan_url(self, base_url: str) -> str:
        """The scan entry point with the job encoded as query parameters."""
        params = urlencode({
            "website_url": self.website_url,
            "industry": self.industry,
            "goal": self.goal,
            "uid": str(self.correlation_id),
        })
        return f"{base_url}?{params}"


class UserInfo(BaseModel):
    full_name: str | None = None
    email: str | None = None
    job_title: str | None = None

    def with_defaults(self, settings) -> "UserInfo":
        return UserInfo(
            full_name=self.full_name or settings.default_full_name,
            email=self.email or settings.default_email,
            job_title=self.job_title or settings.default_job_title,
        )

    def form_fields(self) -> dict[str, str]:
        """Lead form input names mapped to values."""
        return {
            "fullName": self.full_name or "",
            "businessEmail": self.email or "",
            "jobTitle": self.job_title or "",
        }


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    NAVIGATING = "navigating"
    AWAITING_SCAN = "awaiting_scan"
    UNLOCKING = "unlocking"
    SUBMITTING_LEAD = "submitting_lead"
    AWAITING_NAVIGATION = "awaiting_navigation"
    AWAITING_REPORT = "awaiting_report"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


class SoftFailure(str, Enum):
    """Conditions that are diagnosed and recorded but do not end the session."""

    UNLOCK_CONTROL_NOT_FOUND = "unlock_control_not_found"
    LEAD_FORM_NOT_FOUND = "lead_form_not_found"
    NAVIGATION_NOT_OBSERVED = "navigation_not_observed"
    REPORT_RENDER_TIMEOUT = "report_render_timeout"


class ExtractionResult(BaseModel):
    html: str
    styles: str


class SessionResult(BaseModel):
    success: bool
    html: str | None = None
    styles: str | None = None
    error: str | None = None
    error_type: str | None = None
    correlation_id: UUID | None = None
    soft_failures: list[SoftFailure] = Field(default_factory=list)
    states: list[SessionState] = Field(default_factory=list)
