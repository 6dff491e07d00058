"""Explorer engine: breadth-first discover-and-capture crawl.

Starting from a single seed URL, the explorer loads one page at a time in a
shared browser context, screenshots it at every configured viewport, and
queues the internal links it finds. The crawl stops when the frontier is
empty or the page budget is spent:

1. Dequeue the oldest ``(url, depth)`` entry (FIFO keeps the crawl breadth-first)
2. Skip it if already visited, otherwise mark it visited
3. Navigate and capture; failures are recorded on the page result
4. If the page loaded and ``depth < max_depth``: extract and queue links, then,
   on a login wall, authenticate once and queue whatever the login revealed

Only session-level failures (browser launch, context or page creation) abort
the run. Everything that goes wrong with an individual page ends up on its
:class:`~argus.models.explorer.ExplorerResult`.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Optional
from urllib.parse import urlsplit

from playwright.async_api import BrowserContext, Page

from argus.auth.credentials import CredentialProvider
from argus.auth.login_detector import detect_login_form, perform_login
from argus.capture.browser_manager import BrowserManager
from argus.capture.screenshot import (
    CaptureOptions,
    generate_screenshot_filename,
    navigate,
    prepare_and_capture,
)
from argus.crawler.link_extractor import extract_links
from argus.models.config import ArgusConfig, ViewportConfig
from argus.models.explorer import (
    AuthenticationState,
    CrawlOptions,
    Credentials,
    ExplorerOptions,
    ExplorerReport,
    ExplorerResult,
    ExplorerState,
    ExtractedLink,
    FrontierEntry,
    LoginDetectionResult,
)
from argus.url_utils import get_path_name, normalize_url, should_crawl

logger = logging.getLogger(__name__)

ExplorerProgressCallback = Callable[[int, int, ExplorerResult], None]


class ExplorerEngine:
    """Single-use breadth-first crawler. Create one per run."""

    def __init__(
        self,
        config: ArgusConfig,
        options: ExplorerOptions,
        on_progress: Optional[ExplorerProgressCallback] = None,
        credential_provider: Optional[CredentialProvider] = None,
        browser_manager: Optional[BrowserManager] = None,
    ):
        explorer_config = config.explorer
        self.config = config
        self.options = options
        self.on_progress = on_progress
        self.credential_provider = credential_provider
        self.browser_manager = browser_manager or BrowserManager(config.browser, options.headless)

        self.max_depth = options.max_depth if options.max_depth is not None else explorer_config.max_depth
        self.max_pages = options.max_pages if options.max_pages is not None else explorer_config.max_pages
        self.remove_query = explorer_config.remove_query
        self.heuristics = explorer_config.login_heuristics
        self.crawl_options = CrawlOptions(
            base_url=options.start_url,
            exclude=options.exclude if options.exclude is not None else explorer_config.exclude,
            include=options.include if options.include is not None else explorer_config.include,
        )
        self.output_dir = config.baselines_dir if options.mode == "baseline" else config.current_dir

        self.state = ExplorerState.IDLE
        self.frontier: deque[FrontierEntry] = deque()
        self.visited: set[str] = set()
        self.queued: set[str] = set()
        self.results: list[ExplorerResult] = []
        self.auth = AuthenticationState(credentials=options.credentials)
        self._login_attempts: set[str] = set()
        # screenshot filename -> URL that wrote it during this run
        self._written: dict[str, str] = {}
        self._context: Optional[BrowserContext] = None

    @property
    def discovered(self) -> int:
        return len(self.visited | self.queued)

    # ------------------------------------------------------------------
    # Frontier
    # ------------------------------------------------------------------

    def _normalize(self, url: str) -> str:
        return normalize_url(url, remove_query=self.remove_query)

    def enqueue(self, url: str, depth: int) -> bool:
        """Queue a URL unless it was already seen or lies beyond the depth budget."""
        normalized = self._normalize(url)
        if normalized in self.visited or normalized in self.queued:
            return False
        if depth > self.max_depth:
            return False
        self.queued.add(normalized)
        self.frontier.append(FrontierEntry(url=normalized, depth=depth))
        return True

    def _enqueue_links(self, links: list[ExtractedLink], depth: int) -> int:
        return sum(1 for link in links if self.enqueue(link.url, depth))

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def run(self) -> ExplorerReport:
        if self.state is not ExplorerState.IDLE:
            raise RuntimeError(f"Explorer already used (state={self.state.value})")

        self.state = ExplorerState.RUNNING
        start_time = time.time()
        self.enqueue(self.options.start_url, 0)
        logger.info(
            "Exploring %s (max_depth=%d, max_pages=%d, mode=%s)",
            self.options.start_url, self.max_depth, self.max_pages, self.options.mode,
        )

        try:
            await self._open_session()
            while self.frontier and len(self.results) < self.max_pages:
                entry = self.frontier.popleft()
                if entry.url in self.visited:
                    continue
                self.visited.add(entry.url)

                logger.info(
                    "Exploring [%d/%d] depth=%d: %s",
                    len(self.results) + 1, self.max_pages, entry.depth, entry.url,
                )
                result = await self._capture_url(entry)
                self.results.append(result)
                if self.on_progress:
                    self.on_progress(self.discovered, len(self.results), result)
        except Exception as e:
            self.state = ExplorerState.ABORTED
            logger.error("Explorer aborted: %s", e)
            raise
        finally:
            await self._close_session()

        self.state = ExplorerState.COMPLETED
        report = self._build_report(start_time)
        logger.info(
            "Explore finished: %d pages captured, %d failed, %d URLs discovered (%.1fs)",
            report.captured, report.failed, report.discovered, report.duration_ms / 1000,
        )
        return report

    async def _open_session(self) -> None:
        await self.browser_manager.launch()
        self._context = await self.browser_manager.create_context(
            viewport=self.config.viewports[0],
            timezone=self.config.timezone,
            locale=self.config.locale,
        )

    async def _close_session(self) -> None:
        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug("Error closing browser context: %s", e)
            self._context = None
        await self.browser_manager.close()

    # ------------------------------------------------------------------
    # Per-page processing
    # ------------------------------------------------------------------

    def _capture_options(self, url: str, viewport: ViewportConfig) -> CaptureOptions:
        return CaptureOptions(
            base_url=self.options.start_url,
            path=urlsplit(url).path or "/",
            viewport=viewport,
            mask=self.config.global_mask,
            wait_for_network_idle=self.config.wait_for_network_idle,
            full_page=self.config.full_page,
            timeout_ms=self.config.navigation_timeout_ms,
            timezone=self.config.timezone,
            locale=self.config.locale,
        )

    async def _capture_url(self, entry: FrontierEntry) -> ExplorerResult:
        path_name = get_path_name(entry.url)
        page = await self.browser_manager.create_page(self._context, self.config.disable_animations)

        screenshots: list[str] = []
        warnings: list[str] = []
        errors: list[str] = []
        is_login_page = False
        try:
            try:
                await navigate(
                    page, entry.url,
                    self.config.wait_for_network_idle, self.config.navigation_timeout_ms,
                )
            except Exception as e:
                logger.warning("Failed to load %s: %s", entry.url, e)
                return ExplorerResult(
                    url=entry.url, path=path_name, depth=entry.depth,
                    error=f"Navigation failed: {e}",
                )

            for viewport in self.config.viewports:
                filename = generate_screenshot_filename(f"explore-{path_name}", viewport)
                try:
                    await page.set_viewport_size({"width": viewport.width, "height": viewport.height})
                    capture = await prepare_and_capture(
                        page, self.output_dir / filename, self._capture_options(entry.url, viewport)
                    )
                    screenshots.append(capture.path)
                    warnings.extend(capture.warnings)
                    self._note_written(filename, entry.url, warnings)
                except Exception as e:
                    logger.warning("Screenshot failed for %s [%s]: %s", entry.url, viewport.label, e)
                    errors.append(f"{viewport.label}: {e}")

            if entry.depth < self.max_depth:
                is_login_page = await self._discover(page, entry)
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug("Error closing page: %s", e)

        return ExplorerResult(
            url=entry.url,
            path=path_name,
            depth=entry.depth,
            screenshots=screenshots,
            warnings=warnings,
            error="; ".join(errors) or None,
            is_login_page=is_login_page,
        )

    def _note_written(self, filename: str, url: str, warnings: list[str]) -> None:
        previous = self._written.get(filename)
        if previous is not None and previous != url:
            logger.warning("Screenshot %s for %s overwrote the one for %s", filename, url, previous)
            warnings.append(f"{filename} overwrote the screenshot captured for {previous}")
        self._written[filename] = url

    async def _discover(self, page: Page, entry: FrontierEntry) -> bool:
        """Queue the page's links, passing through a login wall if there is one.

        Returns whether the page was detected as a login page.
        """
        detection = await detect_login_form(page, self.heuristics)

        # Public links first, so a failed login never hides them
        links = await extract_links(page, self.crawl_options)
        queued = self._enqueue_links(links, entry.depth + 1)
        logger.info("%s: %d links found, %d new queued", entry.url, len(links), queued)

        if not detection.is_login_page:
            return False

        logger.info("Login form detected on %s", entry.url)
        if await self._authenticate(page, entry.url, detection):
            landing = self._normalize(page.url)
            if should_crawl(landing, self.crawl_options):
                self.enqueue(landing, entry.depth + 1)
            links = await extract_links(page, self.crawl_options)
            queued = self._enqueue_links(links, entry.depth + 1)
            logger.info("%s: %d new links queued after login", entry.url, queued)
        return True

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _obtain_credentials(self, login_url: str) -> Optional[Credentials]:
        if self.auth.credentials is not None:
            return self.auth.credentials
        if self.credential_provider is None:
            logger.info("No credentials available; continuing with public pages only")
            return None
        credentials = self.credential_provider.request_credentials(login_url)
        if credentials is not None:
            self.auth.credentials = credentials
        return credentials

    async def _authenticate(
        self, page: Page, login_url: str, detection: LoginDetectionResult
    ) -> bool:
        """Try to log in through a detected form. At most one attempt per login URL."""
        if self.auth.authenticated or self.auth.declined:
            return False
        if login_url in self._login_attempts:
            return False
        self._login_attempts.add(login_url)

        credentials = self._obtain_credentials(login_url)
        if credentials is None:
            self.auth.declined = True
            return False

        if not await perform_login(page, detection, credentials, self.heuristics):
            logger.warning("Login failed on %s; continuing with public pages only", login_url)
            return False

        self.auth.authenticated = True
        return True

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _build_report(self, start_time: float) -> ExplorerReport:
        failed = sum(1 for r in self.results if r.error)
        return ExplorerReport(
            start_url=self.options.start_url,
            discovered=self.discovered,
            captured=len(self.results) - failed,
            screenshots=sum(len(r.screenshots) for r in self.results),
            failed=failed,
            duration_ms=int((time.time() - start_time) * 1000),
            authenticated=self.auth.authenticated,
            results=list(self.results),
        )


async def run_explorer(
    config: ArgusConfig,
    options: ExplorerOptions,
    on_progress: Optional[ExplorerProgressCallback] = None,
    credential_provider: Optional[CredentialProvider] = None,
) -> ExplorerReport:
    engine = ExplorerEngine(
        config, options, on_progress=on_progress, credential_provider=credential_provider,
    )
    return await engine.run()
