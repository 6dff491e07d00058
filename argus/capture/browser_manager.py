"""Browser lifecycle: one Playwright browser, isolated contexts and pages."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from argus.models.config import AuthConfig, ViewportConfig

logger = logging.getLogger(__name__)

DISABLE_ANIMATIONS_CSS = """
*, *::before, *::after {
    animation-duration: 0s !important;
    animation-delay: 0s !important;
    transition-duration: 0s !important;
    transition-delay: 0s !important;
    caret-color: transparent !important;
}
"""

# Re-applied on every document the page loads, so navigation doesn't drop it
_DISABLE_ANIMATIONS_INIT_SCRIPT = """
(() => {
    const css = %s;
    const inject = () => {
        const style = document.createElement('style');
        style.setAttribute('data-argus', 'disable-animations');
        style.textContent = css;
        (document.head || document.documentElement).appendChild(style);
    };
    if (document.readyState === 'loading') {
        document.addEventListener('DOMContentLoaded', inject);
    } else {
        inject();
    }
})();
"""


class AuthenticationError(Exception):
    """Config-driven login did not reach the post-login state."""


class BrowserManager:
    """Owns the Playwright driver and a single browser instance.

    Contexts and pages are handed out to callers, who are responsible for
    closing them; :meth:`close` shuts down the browser and the driver.
    """

    def __init__(self, browser: str = "chromium", headless: bool = True):
        self.browser_name = browser
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise RuntimeError("Browser not launched; call launch() first")
        return self._browser

    async def launch(self) -> Browser:
        """Start Playwright and launch the configured browser engine."""
        if self._browser is not None:
            return self._browser

        logger.debug("Launching %s (headless=%s)", self.browser_name, self.headless)
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_name)
        try:
            self._browser = await launcher.launch(headless=self.headless)
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        return self._browser

    async def create_context(
        self,
        viewport: ViewportConfig,
        timezone: Optional[str] = None,
        locale: Optional[str] = None,
        storage_state: Optional[dict | str] = None,
    ) -> BrowserContext:
        """Create an isolated context pinned to a viewport, timezone and locale.

        Args:
            storage_state: Optional Playwright storage state (cookies + localStorage)
                to seed the context with. Accepts a dict or a path to a JSON file.
        """
        context_kwargs: dict = {
            "viewport": {"width": viewport.width, "height": viewport.height},
            "storage_state": storage_state,
        }
        if timezone:
            context_kwargs["timezone_id"] = timezone
        if locale:
            context_kwargs["locale"] = locale
            context_kwargs["extra_http_headers"] = {"Accept-Language": locale}

        return await self.browser.new_context(**context_kwargs)

    async def create_page(self, context: BrowserContext, disable_animations: bool = True) -> Page:
        page = await context.new_page()
        if disable_animations:
            await page.add_init_script(
                _DISABLE_ANIMATIONS_INIT_SCRIPT % json.dumps(DISABLE_ANIMATIONS_CSS)
            )
        return page

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("Error closing browser: %s", e)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


async def perform_authentication(page: Page, base_url: str, auth: AuthConfig) -> None:
    """Log in with the explicit selectors from the config.

    Raises:
        AuthenticationError: if the post-login selector never appears.
    """
    login_url = urljoin(base_url, auth.login_url)
    logger.info("Auth: navigating to %s", login_url)
    await page.goto(login_url, wait_until="networkidle", timeout=30000)

    await page.fill(auth.username_selector, auth.username)
    await page.fill(auth.password_selector, auth.password)
    if auth.submit_selector:
        await page.click(auth.submit_selector)
    else:
        await page.press(auth.password_selector, "Enter")

    try:
        await page.wait_for_selector(auth.post_login_selector, timeout=30000)
    except Exception as e:
        raise AuthenticationError(
            f"Login did not complete: '{auth.post_login_selector}' not found ({e})"
        ) from e
    logger.info("Auth: login successful, landed on %s", page.url)


async def save_auth_state(context: BrowserContext, path: str | Path) -> str:
    """Persist the context's cookies and storage so other contexts can reuse them."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    await context.storage_state(path=str(path))
    logger.debug("Auth state saved to %s", path)
    return str(path)
