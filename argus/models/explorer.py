"""Data structures produced and consumed by the explorer."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CrawlOptions(BaseModel):
    base_url: str
    exclude: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)


class ExtractedLink(BaseModel):
    url: str  # normalized absolute URL
    href: str  # raw href attribute
    text: str = ""


class FrontierEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    depth: int = Field(ge=0)


class Credentials(BaseModel):
    username: str
    password: str = Field(repr=False)


class LoginDetectionResult(BaseModel):
    is_login_page: bool = False
    username_selector: Optional[str] = None
    password_selector: Optional[str] = None
    submit_selector: Optional[str] = None


class AuthenticationState(BaseModel):
    authenticated: bool = False
    credentials: Optional[Credentials] = None
    declined: bool = False  # user skipped the credential prompt


class ExplorerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ExplorerOptions(BaseModel):
    start_url: str
    max_depth: Optional[int] = Field(None, ge=0)
    max_pages: Optional[int] = Field(None, ge=1)
    exclude: Optional[list[str]] = None
    include: Optional[list[str]] = None
    mode: Literal["baseline", "current"] = "current"
    headless: bool = True
    credentials: Optional[Credentials] = None


class ExplorerResult(BaseModel):
    """Outcome of capturing one dequeued URL."""

    model_config = ConfigDict(frozen=True)

    url: str
    path: str  # path-derived name, e.g. "docs-intro"
    depth: int
    screenshots: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    is_login_page: bool = False


class ExplorerReport(BaseModel):
    start_url: str
    discovered: int = 0
    captured: int = 0
    screenshots: int = 0
    failed: int = 0
    duration_ms: int = 0
    authenticated: bool = False
    results: list[ExplorerResult] = Field(default_factory=list)
