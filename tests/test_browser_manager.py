"""Tests for browser lifecycle and config-driven authentication."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from argus.capture.browser_manager import (
    DISABLE_ANIMATIONS_CSS,
    AuthenticationError,
    BrowserManager,
    perform_authentication,
    save_auth_state,
)
from argus.models.config import ViewportConfig


def _fake_playwright(mock_browser):
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=mock_browser)
    playwright.firefox.launch = AsyncMock(return_value=mock_browser)
    playwright.stop = AsyncMock()
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)
    return playwright, starter


# ============================================================================
# BrowserManager
# ============================================================================


class TestBrowserManager:
    """Tests for BrowserManager."""

    @pytest.mark.asyncio
    async def test_launch_uses_configured_engine(self, mock_browser):
        playwright, starter = _fake_playwright(mock_browser)
        with patch("argus.capture.browser_manager.async_playwright", return_value=starter):
            manager = BrowserManager("firefox", headless=False)
            browser = await manager.launch()

        assert browser is mock_browser
        playwright.firefox.launch.assert_awaited_once_with(headless=False)
        playwright.chromium.launch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_launch_failure_stops_driver(self, mock_browser):
        playwright, starter = _fake_playwright(mock_browser)
        playwright.chromium.launch = AsyncMock(side_effect=Exception("Executable doesn't exist"))
        with patch("argus.capture.browser_manager.async_playwright", return_value=starter):
            manager = BrowserManager()
            with pytest.raises(Exception, match="Executable"):
                await manager.launch()

        playwright.stop.assert_awaited_once()

    def test_browser_before_launch(self):
        with pytest.raises(RuntimeError):
            BrowserManager().browser

    @pytest.mark.asyncio
    async def test_create_context_pins_conditions(self, mock_browser):
        playwright, starter = _fake_playwright(mock_browser)
        with patch("argus.capture.browser_manager.async_playwright", return_value=starter):
            manager = BrowserManager()
            await manager.launch()
            await manager.create_context(
                ViewportConfig(width=390, height=844), timezone="Asia/Tokyo",
                locale="ja-JP", storage_state="auth.json",
            )

        kwargs = mock_browser.new_context.await_args.kwargs
        assert kwargs["viewport"] == {"width": 390, "height": 844}
        assert kwargs["timezone_id"] == "Asia/Tokyo"
        assert kwargs["locale"] == "ja-JP"
        assert kwargs["storage_state"] == "auth.json"

    @pytest.mark.asyncio
    async def test_create_page_disables_animations(self, mock_context, mock_page):
        page = await BrowserManager().create_page(mock_context)
        assert page is mock_page
        script = mock_page.add_init_script.await_args.args[0]
        assert "animation-duration: 0s" in script
        assert "caret-color: transparent" in DISABLE_ANIMATIONS_CSS

    @pytest.mark.asyncio
    async def test_create_page_keeps_animations(self, mock_context, mock_page):
        await BrowserManager().create_page(mock_context, disable_animations=False)
        mock_page.add_init_script.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close(self, mock_browser):
        playwright, starter = _fake_playwright(mock_browser)
        with patch("argus.capture.browser_manager.async_playwright", return_value=starter):
            manager = BrowserManager()
            await manager.launch()
            await manager.close()
            await manager.close()

        mock_browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()


# ============================================================================
# Config-driven authentication
# ============================================================================


class TestPerformAuthentication:
    """Tests for perform_authentication and save_auth_state."""

    @pytest.mark.asyncio
    async def test_fills_and_submits(self, mock_page, auth_config):
        await perform_authentication(mock_page, "https://site.test", auth_config)

        mock_page.goto.assert_awaited_once_with(
            "https://site.test/login", wait_until="networkidle", timeout=30000
        )
        mock_page.fill.assert_any_await("input[name='email']", "test@example.com")
        mock_page.fill.assert_any_await("input[name='password']", "testpass123")
        mock_page.click.assert_awaited_once_with("button[type='submit']")
        mock_page.wait_for_selector.assert_awaited_once_with(".dashboard", timeout=30000)

    @pytest.mark.asyncio
    async def test_enter_without_submit_selector(self, mock_page, auth_config):
        auth_config.submit_selector = None
        mock_page.press = AsyncMock()
        await perform_authentication(mock_page, "https://site.test", auth_config)
        mock_page.press.assert_awaited_once_with("input[name='password']", "Enter")

    @pytest.mark.asyncio
    async def test_missing_post_login_selector_raises(self, mock_page, auth_config):
        mock_page.wait_for_selector = AsyncMock(side_effect=TimeoutError("30000ms exceeded"))
        with pytest.raises(AuthenticationError, match=".dashboard"):
            await perform_authentication(mock_page, "https://site.test", auth_config)

    @pytest.mark.asyncio
    async def test_save_auth_state(self, mock_context, tmp_path):
        path = tmp_path / "out" / "auth-state.json"
        saved = await save_auth_state(mock_context, path)
        assert saved == str(path)
        assert path.parent.is_dir()
        mock_context.storage_state.assert_awaited_once_with(path=str(path))
