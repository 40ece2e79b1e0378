"""HTTP probe, crawl, and response analysis models."""

from typing import Literal

from pydantic import Field

from reconscan.models.base import BaseSchema, ResultRecord

CrawlSource = Literal["crawl", "js-parse", "form"]
CrawlType = Literal["page", "form", "api", "js", "css"]


class ProbeResult(ResultRecord):
    """Result of probing one target over HTTP(S)."""

    url: str
    status_code: int = 0
    content_length: int = -1
    content_type: str | None = None
    title: str | None = None
    server: str | None = None
    technologies: list[str] | None = None
    headers: dict[str, str] | None = None
    redirected: bool | None = None
    final_url: str | None = None
    response_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.status_code > 0

    def to_text(self) -> str:
        return self.url


class CrawlResult(ResultRecord):
    """URL, form, or endpoint discovered while crawling."""

    url: str
    source: CrawlSource = "crawl"
    depth: int = 0
    type: CrawlType = "page"
    params: list[str] | None = None

    def to_text(self) -> str:
        return self.url


class FormDetails(BaseSchema):
    """Extracted HTML form."""

    action: str = ""
    method: str = "GET"
    fields: list[str] = Field(default_factory=list)


class SecurityHeaders(BaseSchema):
    """Security response header values; unset means absent."""

    csp: str | None = None
    hsts: str | None = None
    x_frame_options: str | None = None
    x_content_type_options: str | None = None
    x_xss_protection: str | None = None
    cors: str | None = None
    missing_count: int = 0


class AnalysisResult(ResultRecord):
    """Deep analysis of a single fetched page."""

    url: str
    title: str | None = None
    description: str | None = None
    technologies: list[str] = Field(default_factory=list)
    endpoints: list[str] = Field(default_factory=list)
    parameters: list[str] = Field(default_factory=list)
    forms: list[FormDetails] = Field(default_factory=list)
    comments: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)
    security_headers: SecurityHeaders = Field(default_factory=SecurityHeaders)
    interesting: list[str] = Field(default_factory=list)
    hash: str

    def to_text(self) -> str:
        return self.url
