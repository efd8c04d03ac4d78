from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from playwright.sync_api import Page, sync_playwright


logger = logging.getLogger(__name__)


@contextmanager
def open_session(*, headless: bool = True, slow_mo_ms: int = 0) -> Iterator[Page]:
    """
    Launch a browser, yield a single page, and always close everything on exit.

    The page is the only session handle; callers pass it explicitly to whatever drives it.
    """
    with sync_playwright() as p:
        # Prefer Playwright's bundled Chromium, but fall back to a system-installed browser if the
        # cache doesn't have Playwright browsers available.
        slow_mo = int(slow_mo_ms or 0)
        try:
            browser = p.chromium.launch(headless=headless, slow_mo=slow_mo)
        except Exception as e:
            msg = str(e)
            if "Executable doesn't exist" not in msg:
                raise

            logger.warning(
                "Playwright Chromium executable missing; falling back to system browser channel. (%s)",
                msg,
            )

            # Try Chrome first, then Edge.
            try:
                browser = p.chromium.launch(headless=headless, slow_mo=slow_mo, channel="chrome")
            except Exception:
                browser = p.chromium.launch(headless=headless, slow_mo=slow_mo, channel="msedge")

        try:
            ctx = browser.new_context(color_scheme="light")
            try:
                page = ctx.new_page()
                yield page
            finally:
                ctx.close()
        finally:
            browser.close()
            logger.debug("Browser session closed.")
