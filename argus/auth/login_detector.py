"""Login wall detection and form-based authentication.

Detection is driven entirely by a ranked selector table
(:class:`~argus.models.config.LoginHeuristics`). A small page script reports
which selectors currently match a visible element and lists the page's
buttons; the ranking itself happens here, in :func:`rank_login_form`. A page
counts as a login page when both a username-like and a password-like field
are visible. The submit control is optional; pressing Enter is the fallback.

Authentication fills the discovered fields, submits, waits for the URL to
change (or a fixed settle delay when it does not), and re-runs detection. A
page that still looks like a login form is treated as a failed login. This is
a heuristic: a successful login that lands on another page with a password
field will be reported as a failure.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.async_api import Page

from argus.models.config import LoginHeuristics
from argus.models.explorer import Credentials, LoginDetectionResult

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_HEURISTICS = LoginHeuristics()

# Every button is tagged with its index so a fallback pick is addressable
# whether or not it has an id or an explicit type attribute.
BUTTON_MARKER = "data-argus-button"

_SCAN_SCRIPT = """([table, marker]) => {
    const isVisible = (el) => !!el && (
        el.offsetParent !== null ||
        (el.getClientRects && el.getClientRects().length > 0)
    );

    const visibility = (selectors) => selectors.map((selector) => {
        try {
            return isVisible(document.querySelector(selector));
        } catch (e) {
            return false;  // invalid selector
        }
    });

    const buttons = Array.from(document.querySelectorAll('button')).map((btn, index) => {
        btn.setAttribute(marker, String(index));
        return {
            index: index,
            type: btn.type,
            text: (btn.textContent || '').trim(),
            visible: isVisible(btn),
        };
    });

    return {
        username: visibility(table.username_selectors),
        password: visibility(table.password_selectors),
        submit: visibility(table.submit_selectors),
        buttons: buttons,
    };
}"""

_CLEAR_FIELD_SCRIPT = """(selector) => {
    const el = document.querySelector(selector);
    if (el) el.value = '';
}"""


def _first_visible(selectors: list[str], visible: list[Any]) -> Optional[str]:
    for selector, shown in zip(selectors, visible):
        if shown:
            return selector
    return None


def _fallback_submit(buttons: list[dict], keywords: list[str]) -> Optional[str]:
    """Pick the first visible button that submits or reads like a sign-in."""
    words = [k.lower() for k in keywords]
    for btn in buttons:
        if not btn.get("visible"):
            continue
        text = (btn.get("text") or "").lower()
        # <button> without a type attribute reports type "submit"
        if btn.get("type") == "submit" or any(w in text for w in words):
            return f'[{BUTTON_MARKER}="{btn["index"]}"]'
    return None


def rank_login_form(scan: dict, table: LoginHeuristics) -> LoginDetectionResult:
    """Turn a page scan into a detection result using the ranked table."""
    username = _first_visible(table.username_selectors, scan.get("username") or [])
    password = _first_visible(table.password_selectors, scan.get("password") or [])
    submit = _first_visible(table.submit_selectors, scan.get("submit") or [])
    if submit is None:
        submit = _fallback_submit(scan.get("buttons") or [], table.submit_text_keywords)

    return LoginDetectionResult(
        is_login_page=bool(username and password),
        username_selector=username,
        password_selector=password,
        submit_selector=submit,
    )


async def detect_login_form(
    page: Page, heuristics: Optional[LoginHeuristics] = None
) -> LoginDetectionResult:
    """Inspect the rendered page for a visible username + password pair."""
    table = heuristics or DEFAULT_LOGIN_HEURISTICS
    try:
        scan = await page.evaluate(_SCAN_SCRIPT, [table.model_dump(), BUTTON_MARKER])
    except Exception as e:
        logger.debug("Login detection failed on %s: %s", page.url, e)
        return LoginDetectionResult()

    result = rank_login_form(scan, table)
    logger.debug(
        "Login detection: login=%s username=%s password=%s submit=%s",
        result.is_login_page, result.username_selector,
        result.password_selector, result.submit_selector,
    )
    return result


async def _fill_field(page: Page, selector: str, value: str) -> None:
    await page.click(selector)
    await page.evaluate(_CLEAR_FIELD_SCRIPT, selector)
    await page.locator(selector).press_sequentially(value, delay=50)


async def perform_login(
    page: Page,
    detection: LoginDetectionResult,
    credentials: Credentials,
    heuristics: Optional[LoginHeuristics] = None,
    settle_ms: int = 2000,
    navigation_timeout_ms: int = 10000,
) -> bool:
    """Fill and submit a detected login form. Returns True if the wall is gone.

    One attempt only; the caller decides whether to try again elsewhere.
    """
    if not detection.username_selector or not detection.password_selector:
        logger.debug("perform_login called without username/password selectors")
        return False

    try:
        logger.info("Auth: attempting login as %s", credentials.username)
        before = page.url
        await _fill_field(page, detection.username_selector, credentials.username)
        await _fill_field(page, detection.password_selector, credentials.password)

        if detection.submit_selector:
            await page.click(detection.submit_selector)
        else:
            await page.keyboard.press("Enter")

        try:
            await page.wait_for_url(lambda url: url != before, timeout=navigation_timeout_ms)
        except Exception:
            # No navigation (SPA or in-place auth): give the page a fixed settle delay
            logger.debug("Auth: URL unchanged after submit, settling for %dms", settle_ms)
            await page.wait_for_timeout(settle_ms)
        else:
            try:
                await page.wait_for_load_state("networkidle", timeout=navigation_timeout_ms)
            except Exception as e:
                logger.debug("Auth: post-login page did not reach networkidle: %s", e)

        after = await detect_login_form(page, heuristics)
        if after.is_login_page:
            logger.warning("Auth: still on a login page, credentials may be incorrect")
            return False

        logger.info("Auth: login successful, landed on %s", page.url)
        return True

    except Exception as e:
        logger.warning("Auth: login failed: %s", e)
        return False
