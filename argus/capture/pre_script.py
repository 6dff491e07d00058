"""Custom pre-capture scripts.

A pre-script is a Python file that defines an async ``pre_script(context)``
(or ``main(context)``) function. It runs after the page has loaded and the
configured actions have executed, right before masking and the screenshot,
and can put the page into whatever state the screenshot needs::

    async def pre_script(context):
        await context.page.click("#accept-cookies")
        return {"dismissed": True}

Whatever the function returns is kept as ``PreScriptResult.data``.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from argus.models.config import ViewportConfig

logger = logging.getLogger(__name__)

_ENTRYPOINTS = ("pre_script", "main")


class PreScriptError(Exception):
    """A pre-script file could not be loaded."""


class PreScriptContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    page: Any
    base_url: str
    route_path: str
    viewport: ViewportConfig
    timezone: Optional[str] = None
    locale: Optional[str] = None


class PreScriptResult(BaseModel):
    success: bool
    duration_ms: int = 0
    error: Optional[str] = None
    data: Any = None


def load_pre_script(path: str | Path) -> Callable:
    """Import a pre-script file and return its entry point."""
    path = Path(path).resolve()
    if not path.is_file():
        raise PreScriptError(f"Pre-script not found: {path}")

    module_name = f"argus_pre_script_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise PreScriptError(f"Cannot import pre-script: {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise PreScriptError(f"Failed to load pre-script {path}: {e}") from e

    for name in _ENTRYPOINTS:
        fn = getattr(module, name, None)
        if callable(fn):
            return fn

    raise PreScriptError(
        f"Pre-script {path} must define an async function named "
        f"{' or '.join(repr(n) for n in _ENTRYPOINTS)}"
    )


async def execute_pre_script(path: str | Path, context: PreScriptContext) -> PreScriptResult:
    """Run a pre-script, converting any failure into an unsuccessful result."""
    start = time.time()
    try:
        fn = load_pre_script(path)
        data = fn(context)
        if inspect.isawaitable(data):
            data = await data
    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.warning("Pre-script %s failed: %s", path, e)
        return PreScriptResult(success=False, duration_ms=duration_ms, error=str(e))

    duration_ms = int((time.time() - start) * 1000)
    logger.debug("Pre-script %s finished in %dms", path, duration_ms)
    return PreScriptResult(success=True, duration_ms=duration_ms, data=data)
