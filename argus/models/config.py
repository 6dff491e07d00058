"""Configuration models for Argus."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAMES = ("argus.config.json", ".argus.json")


class ViewportConfig(BaseModel):
    width: int = Field(1920, gt=0)
    height: int = Field(1080, gt=0)
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or f"{self.width}x{self.height}"

    @classmethod
    def parse(cls, value: str) -> "ViewportConfig":
        """Parse a ``WIDTHxHEIGHT`` string such as ``1920x1080``."""
        width, sep, height = value.lower().partition("x")
        if not sep or not width.isdigit() or not height.isdigit():
            raise ValueError(
                f"Invalid viewport '{value}'. Use WIDTHxHEIGHT (e.g. 1920x1080)"
            )
        return cls(width=int(width), height=int(height))


# ---------------------------------------------------------------------------
# Pre-capture actions
# ---------------------------------------------------------------------------


class ClickAction(BaseModel):
    type: Literal["click"] = "click"
    selector: str


class HoverAction(BaseModel):
    type: Literal["hover"] = "hover"
    selector: str


class WaitAction(BaseModel):
    type: Literal["wait"] = "wait"
    timeout: int = Field(gt=0)  # milliseconds


class ScrollAction(BaseModel):
    type: Literal["scroll"] = "scroll"
    target: str  # "top", "bottom", or a CSS selector


class TypeAction(BaseModel):
    type: Literal["type"] = "type"
    selector: str
    text: str


class SelectAction(BaseModel):
    type: Literal["select"] = "select"
    selector: str
    value: str


Action = Annotated[
    Union[ClickAction, HoverAction, WaitAction, ScrollAction, TypeAction, SelectAction],
    Field(discriminator="type"),
]


class RouteConfig(BaseModel):
    path: str
    name: str
    timezone: Optional[str] = None
    locale: Optional[str] = None
    viewports: Optional[list[ViewportConfig]] = None
    mask: list[str] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    pre_script: Optional[str] = None
    wait_for_selector: Optional[str] = None
    wait_after_load: int = Field(0, ge=0)  # milliseconds


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthConfig(BaseModel):
    login_url: str
    username_selector: str
    password_selector: str
    username: str = ""
    password: str = ""
    post_login_selector: str
    submit_selector: Optional[str] = None

    @field_validator("username", "password", mode="before")
    @classmethod
    def resolve_env_value(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v


class LoginHeuristics(BaseModel):
    """Ranked selector tables used to recognise a login form.

    Each list is tried in order; the first visible match wins.
    """

    username_selectors: list[str] = Field(default_factory=lambda: [
        "#userName",
        "#username",
        "#email",
        "#user",
        "#login",
        'input[type="email"]',
        'input[name="email"]',
        'input[name="username"]',
        'input[name="user"]',
        'input[name="login"]',
        'input[id*="user"]',
        'input[id*="email"]',
        'input[id*="login"]',
        'input[autocomplete="email"]',
        'input[autocomplete="username"]',
        'input[placeholder*="email" i]',
        'input[placeholder*="user" i]',
    ])
    password_selectors: list[str] = Field(default_factory=lambda: [
        "#password",
        "#pwd",
        "#pass",
        'input[type="password"]',
        'input[name="password"]',
        'input[autocomplete="current-password"]',
    ])
    submit_selectors: list[str] = Field(default_factory=lambda: [
        'button[type="submit"]',
        'input[type="submit"]',
        "button.submit-btn",
        "button.login-btn",
        "button.login-button",
        "#login-button",
        "#submit",
        '[data-testid="login-button"]',
    ])
    submit_text_keywords: list[str] = Field(default_factory=lambda: [
        "login", "log in", "sign in", "connect", "submit",
    ])


# ---------------------------------------------------------------------------
# Explorer / comparison
# ---------------------------------------------------------------------------


class ExplorerConfig(BaseModel):
    max_depth: int = Field(2, ge=1, le=10)
    max_pages: int = Field(20, ge=1, le=1000)
    exclude: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)
    remove_query: bool = False
    login_heuristics: LoginHeuristics = Field(default_factory=LoginHeuristics)


class ThresholdConfig(BaseModel):
    pixel: float = Field(0.1, ge=0, le=1)  # per-pixel colour sensitivity
    failure_threshold: float = Field(0.1, ge=0, le=100)  # % of differing pixels


class ArgusConfig(BaseModel):
    # Target
    base_url: str

    # Browser conditions
    viewports: list[ViewportConfig] = Field(
        default_factory=lambda: [ViewportConfig(width=1920, height=1080, name="desktop")]
    )
    concurrency: int = Field(4, ge=1, le=20)
    timezone: str = "UTC"
    locale: str = "en-US"
    browser: Literal["chromium", "firefox", "webkit"] = "chromium"
    disable_animations: bool = True
    wait_for_network_idle: bool = True
    navigation_timeout_ms: int = Field(30000, gt=0)
    full_page: bool = False

    # Authentication
    auth: Optional[AuthConfig] = None

    # Masking
    global_mask: list[str] = Field(default_factory=list)

    # Discovery and capture targets
    explorer: ExplorerConfig = Field(default_factory=ExplorerConfig)
    routes: list[RouteConfig] = Field(default_factory=list)

    # Comparison
    threshold: ThresholdConfig = Field(default_factory=ThresholdConfig)

    # Output
    output_dir: str = ".argus"

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an absolute http(s) URL")
        return v

    @property
    def baselines_dir(self) -> Path:
        return Path(self.output_dir) / "baselines"

    @property
    def current_dir(self) -> Path:
        return Path(self.output_dir) / "current"

    @property
    def diffs_dir(self) -> Path:
        return Path(self.output_dir) / "diffs"

    @classmethod
    def load(cls, path: str | Path) -> "ArgusConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(exclude_none=True), f, indent=2)


def find_config_file(cwd: str | Path | None = None) -> Path | None:
    """Return the first known config file in ``cwd``, if any."""
    base = Path(cwd) if cwd is not None else Path.cwd()
    for filename in CONFIG_FILENAMES:
        candidate = base / filename
        if candidate.exists():
            return candidate
    return None
