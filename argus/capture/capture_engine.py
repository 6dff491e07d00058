"""Capture engine: screenshots every configured route at every viewport."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from argus.capture.browser_manager import BrowserManager, perform_authentication, save_auth_state
from argus.capture.screenshot import capture_route
from argus.models.capture import CaptureError, CaptureReport, CaptureResult, CaptureTask
from argus.models.config import ArgusConfig, ViewportConfig

logger = logging.getLogger(__name__)

AUTH_STATE_FILENAME = "auth-state.json"

CaptureProgressCallback = Callable[[int, int, CaptureTask], None]


class CaptureEngine:
    """Runs route x viewport capture tasks in batches of ``config.concurrency``.

    Every task gets its own browser context so timezone, locale and viewport
    never leak between tasks. When ``config.auth`` is set, a single login is
    performed up front and its storage state is shared read-only with every
    task context.
    """

    def __init__(
        self,
        config: ArgusConfig,
        headless: bool = True,
        on_progress: Optional[CaptureProgressCallback] = None,
        browser_manager: Optional[BrowserManager] = None,
    ):
        self.config = config
        self.on_progress = on_progress
        self.browser_manager = browser_manager or BrowserManager(config.browser, headless)
        self._auth_state_path: Optional[str] = None
        self._done = 0
        self._total = 0

    async def setup_auth(self) -> Optional[str]:
        """Log in once and save the session; returns the storage-state path."""
        auth = self.config.auth
        if auth is None:
            return None

        context = await self.browser_manager.create_context(
            viewport=self.config.viewports[0],
            timezone=self.config.timezone,
            locale=self.config.locale,
        )
        try:
            page = await context.new_page()
            await perform_authentication(page, self.config.base_url, auth)
            path = Path(self.config.output_dir) / AUTH_STATE_FILENAME
            self._auth_state_path = await save_auth_state(context, path)
        finally:
            await context.close()
        return self._auth_state_path

    def create_tasks(
        self,
        route_filter: Optional[str] = None,
        viewport_override: Optional[ViewportConfig] = None,
    ) -> list[CaptureTask]:
        """Expand routes into one task per viewport.

        ``route_filter`` matches a route name or path, case-insensitively.
        """
        tasks: list[CaptureTask] = []
        for route in self.config.routes:
            if route_filter and route_filter.lower() not in (route.name.lower(), route.path.lower()):
                continue
            if viewport_override:
                viewports = [viewport_override]
            else:
                viewports = route.viewports or self.config.viewports
            tasks.extend(CaptureTask(route=route, viewport=vp) for vp in viewports)
        return tasks

    async def _run_task(
        self,
        task: CaptureTask,
        output_dir: Path,
        results: list[CaptureResult],
        errors: list[CaptureError],
    ) -> None:
        route, viewport = task.route, task.viewport
        context = await self.browser_manager.create_context(
            viewport=viewport,
            timezone=route.timezone or self.config.timezone,
            locale=route.locale or self.config.locale,
            storage_state=self._auth_state_path,
        )
        try:
            page = await self.browser_manager.create_page(context, self.config.disable_animations)
            result = await capture_route(
                page,
                route,
                base_url=self.config.base_url,
                output_dir=output_dir,
                viewport=viewport,
                global_mask=self.config.global_mask,
                timezone=self.config.timezone,
                wait_for_network_idle=self.config.wait_for_network_idle,
                locale=self.config.locale,
                full_page=self.config.full_page,
                timeout_ms=self.config.navigation_timeout_ms,
            )
            results.append(result)
            logger.info("Captured %s [%s] -> %s", route.name, viewport.label, result.path)
        except Exception as e:
            logger.error("Failed to capture %s [%s]: %s", route.name, viewport.label, e)
            errors.append(CaptureError(route=route.name, viewport=viewport.label, error=str(e)))
        finally:
            await context.close()

        self._done += 1
        if self.on_progress:
            self.on_progress(self._done, self._total, task)

    async def capture_all(
        self,
        baseline: bool = False,
        route_filter: Optional[str] = None,
        viewport_override: Optional[ViewportConfig] = None,
    ) -> CaptureReport:
        start = time.time()
        output_dir = self.config.baselines_dir if baseline else self.config.current_dir
        tasks = self.create_tasks(route_filter, viewport_override)
        if not tasks:
            logger.warning("No routes to capture")
            return CaptureReport()

        results: list[CaptureResult] = []
        errors: list[CaptureError] = []
        concurrency = self.config.concurrency
        logger.info("Capturing %d screenshots (concurrency=%d) into %s",
                    len(tasks), concurrency, output_dir)

        await self.browser_manager.launch()
        if self._auth_state_path is None:
            await self.setup_auth()

        self._done, self._total = 0, len(tasks)
        for i in range(0, len(tasks), concurrency):
            batch = tasks[i:i + concurrency]
            await asyncio.gather(
                *(self._run_task(task, output_dir, results, errors) for task in batch)
            )

        return CaptureReport(
            total=len(tasks),
            successful=len(results),
            failed=len(errors),
            results=results,
            errors=errors,
            duration_ms=int((time.time() - start) * 1000),
        )

    async def close(self) -> None:
        await self.browser_manager.close()


async def run_capture(
    config: ArgusConfig,
    baseline: bool = False,
    route_filter: Optional[str] = None,
    viewport: Optional[ViewportConfig] = None,
    headless: bool = True,
    on_progress: Optional[CaptureProgressCallback] = None,
) -> CaptureReport:
    engine = CaptureEngine(config, headless=headless, on_progress=on_progress)
    try:
        return await engine.capture_all(baseline, route_filter, viewport)
    finally:
        await engine.close()
