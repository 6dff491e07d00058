"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image
from playwright.async_api import Browser, BrowserContext, Page

from argus.models.config import (
    ArgusConfig,
    AuthConfig,
    ExplorerConfig,
    RouteConfig,
    ViewportConfig,
)
from argus.models.explorer import LoginDetectionResult


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def viewport_config() -> ViewportConfig:
    """Create a test viewport configuration."""
    return ViewportConfig(width=1280, height=720, name="desktop")


@pytest.fixture
def auth_config() -> AuthConfig:
    """Create a test authentication configuration."""
    return AuthConfig(
        login_url="/login",
        username="test@example.com",
        password="testpass123",
        username_selector="input[name='email']",
        password_selector="input[name='password']",
        submit_selector="button[type='submit']",
        post_login_selector=".dashboard",
    )


@pytest.fixture
def argus_config(viewport_config: ViewportConfig, tmp_path: Path) -> ArgusConfig:
    """Create a test Argus configuration writing into tmp_path."""
    return ArgusConfig(
        base_url="https://site.test",
        viewports=[viewport_config],
        concurrency=2,
        output_dir=str(tmp_path / ".argus"),
        explorer=ExplorerConfig(max_depth=2, max_pages=20),
        routes=[
            RouteConfig(path="/", name="home"),
            RouteConfig(path="/about", name="About Us"),
        ],
    )


@pytest.fixture
def temp_config_file(argus_config: ArgusConfig, tmp_path: Path) -> Path:
    """Create a temporary config file."""
    config_file = tmp_path / "argus.config.json"
    argus_config.save(config_file)
    return config_file


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_page() -> AsyncMock:
    """Create a mock Playwright page."""
    page = AsyncMock(spec=Page)
    page.url = "https://site.test/"
    page.screenshot = AsyncMock()
    page.goto = AsyncMock()
    page.click = AsyncMock()
    page.fill = AsyncMock()
    page.hover = AsyncMock()
    page.evaluate = AsyncMock()
    page.add_style_tag = AsyncMock()
    page.add_init_script = AsyncMock()
    page.set_viewport_size = AsyncMock()
    page.locator = MagicMock()
    page.locator.return_value.press_sequentially = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.keyboard = AsyncMock()
    page.keyboard.press = AsyncMock()
    page.close = AsyncMock()
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser context."""
    context = AsyncMock(spec=BrowserContext)
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    context.storage_state = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    """Create a mock Playwright browser."""
    browser = AsyncMock(spec=Browser)
    browser.new_context = AsyncMock(return_value=mock_context)
    return browser


@pytest.fixture
def mock_browser_manager(mock_context: AsyncMock, mock_page: AsyncMock) -> MagicMock:
    """A BrowserManager stand-in that hands out the shared mock context/page."""
    manager = MagicMock()
    manager.launch = AsyncMock()
    manager.create_context = AsyncMock(return_value=mock_context)
    manager.create_page = AsyncMock(return_value=mock_page)
    manager.close = AsyncMock()
    return manager


@pytest.fixture
def login_detection() -> LoginDetectionResult:
    return LoginDetectionResult(
        is_login_page=True,
        username_selector="#username",
        password_selector="#password",
        submit_selector='button[type="submit"]',
    )


# ============================================================================
# Helper Functions
# ============================================================================


def create_png(
    path: Path,
    size: tuple[int, int] = (10, 10),
    color: tuple[int, int, int, int] = (255, 255, 255, 255),
) -> Path:
    """Write a solid-colour RGBA PNG, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)
    return path


@pytest.fixture
def png_factory():
    """Fixture that provides the create_png function."""
    return create_png
