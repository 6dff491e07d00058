"""Capture unit: navigate, sanitize and screenshot a single page."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import Page
from pydantic import BaseModel, Field

from argus.capture.pre_script import PreScriptContext, execute_pre_script
from argus.models.capture import CaptureResult
from argus.models.config import Action, RouteConfig, ViewportConfig

logger = logging.getLogger(__name__)

SELECTOR_WAIT_TIMEOUT_MS = 10000


class CaptureOptions(BaseModel):
    base_url: str
    path: str = "/"
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    mask: list[str] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    pre_script: Optional[str] = None
    wait_for_network_idle: bool = True
    wait_for_selector: Optional[str] = None
    wait_after_load_ms: int = 0
    full_page: bool = False
    timeout_ms: int = 30000
    timezone: Optional[str] = None
    locale: Optional[str] = None


def generate_screenshot_filename(
    name: str, viewport: ViewportConfig, timezone: Optional[str] = None
) -> str:
    """Build ``<name>-<viewport>[-<timezone>].png`` with filesystem-safe parts."""
    sanitized = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    filename = f"{sanitized}-{viewport.label}"
    if timezone:
        filename += "-" + timezone.replace("/", "-").lower()
    return f"{filename}.png"


def get_masking_css(selectors: list[str]) -> str:
    """Black out every element matching ``selectors`` and hide its contents."""
    if not selectors:
        return ""
    rules = []
    for selector in selectors:
        rules.append(
            f"{selector} {{ background: #000 !important; color: transparent !important; }}\n"
            f"{selector} * {{ visibility: hidden !important; }}"
        )
    return "\n".join(rules)


async def execute_action(page: Page, action: Action) -> None:
    """Run one pre-capture action against the page."""
    logger.debug("Running action: %s", action.type)

    match action.type:
        case "click":
            await page.click(action.selector)

        case "hover":
            await page.hover(action.selector)

        case "wait":
            await page.wait_for_timeout(action.timeout)

        case "scroll":
            if action.target == "top":
                await page.evaluate("window.scrollTo(0, 0)")
            elif action.target == "bottom":
                await page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            else:
                await page.locator(action.target).first.scroll_into_view_if_needed()

        case "type":
            await page.fill(action.selector, action.text)

        case "select":
            await page.select_option(action.selector, action.value)

        case _:
            raise ValueError(f"Unknown action type: {action.type}")


async def navigate(
    page: Page, url: str, wait_for_network_idle: bool = True, timeout_ms: int = 30000
) -> None:
    """Load ``url``; any failure here propagates to the caller."""
    wait_until = "networkidle" if wait_for_network_idle else "load"
    logger.debug("Navigating to %s (wait_until=%s)", url, wait_until)
    await page.goto(url, wait_until=wait_until, timeout=timeout_ms)


async def prepare_and_capture(
    page: Page, output_path: str | Path, options: CaptureOptions
) -> CaptureResult:
    """Sanitize an already-loaded page and write its screenshot.

    Selector waits, actions and the pre-script are best-effort: their failures
    become warnings on the result and the capture goes ahead.
    """
    start = time.time()
    warnings: list[str] = []

    if options.wait_for_selector:
        try:
            await page.wait_for_selector(
                options.wait_for_selector, timeout=SELECTOR_WAIT_TIMEOUT_MS
            )
        except Exception:
            warnings.append(f"Timeout waiting for selector: {options.wait_for_selector}")

    for action in options.actions:
        try:
            await execute_action(page, action)
        except Exception as e:
            warnings.append(f"Action {action.type} failed: {e}")

    if options.pre_script:
        result = await execute_pre_script(
            options.pre_script,
            PreScriptContext(
                page=page,
                base_url=options.base_url,
                route_path=options.path,
                viewport=options.viewport,
                timezone=options.timezone,
                locale=options.locale,
            ),
        )
        if not result.success:
            warnings.append(f"Pre-script failed: {result.error}")

    if options.mask:
        await page.add_style_tag(content=get_masking_css(options.mask))

    if options.wait_after_load_ms > 0:
        await page.wait_for_timeout(options.wait_after_load_ms)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    await page.screenshot(path=str(output_path), full_page=options.full_page)

    for warning in warnings:
        logger.warning("%s [%s]: %s", options.path, options.viewport.label, warning)

    return CaptureResult(
        path=str(output_path),
        viewport=options.viewport,
        route_path=options.path,
        duration_ms=int((time.time() - start) * 1000),
        warnings=warnings,
    )


async def capture_screenshot(
    page: Page, output_path: str | Path, options: CaptureOptions
) -> CaptureResult:
    """Navigate to ``options.path`` and capture it."""
    url = urljoin(options.base_url, options.path)
    await navigate(page, url, options.wait_for_network_idle, options.timeout_ms)
    return await prepare_and_capture(page, output_path, options)


async def capture_route(
    page: Page,
    route: RouteConfig,
    base_url: str,
    output_dir: str | Path,
    viewport: ViewportConfig,
    global_mask: Optional[list[str]] = None,
    timezone: Optional[str] = None,
    wait_for_network_idle: bool = True,
    locale: Optional[str] = None,
    full_page: bool = False,
    timeout_ms: int = 30000,
) -> CaptureResult:
    """Capture a configured route at one viewport."""
    effective_tz = route.timezone or timezone
    filename = generate_screenshot_filename(route.name, viewport, effective_tz)
    options = CaptureOptions(
        base_url=base_url,
        path=route.path,
        viewport=viewport,
        mask=[*(global_mask or []), *route.mask],
        actions=route.actions,
        pre_script=route.pre_script,
        wait_for_network_idle=wait_for_network_idle,
        wait_for_selector=route.wait_for_selector,
        wait_after_load_ms=route.wait_after_load,
        full_page=full_page,
        timeout_ms=timeout_ms,
        timezone=effective_tz,
        locale=route.locale or locale,
    )
    return await capture_screenshot(page, Path(output_dir) / filename, options)
