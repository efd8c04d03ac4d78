from __future__ import annotations

import logging
import re
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from playwright.sync_api import Page
from pydantic import ValidationError

from .config import AppConfig
from .errors import ConfigurationError, FormatError
from .extractor import extract
from .models import DateRange, ExtractionResult
from .portal.client import FailureReason, NavigationOutcome, NavigationState, PortalCredentials, PortalNavigator
from .portal.selectors import NavigationTimeouts
from .portal.session import open_session
from .util.dates import format_date, parse_date, previous_month_range
from .util.money import format_amount


logger = logging.getLogger(__name__)

SessionFactory = Callable[..., AbstractContextManager[Page]]


@dataclass(frozen=True)
class RunReport:
    date_range: DateRange
    result: ExtractionResult
    outcome: NavigationOutcome

    @property
    def ok(self) -> bool:
        return self.outcome.ok


def resolve_date_range(
    date_from: Optional[str],
    date_to: Optional[str],
    *,
    today: Optional[date] = None,
) -> DateRange:
    """
    Build the run's window from DD/MM/YYYY bounds. A missing bound comes from the previous calendar month.
    """
    default_from, default_to = previous_month_range(today)

    def _bound(value: Optional[str], flag: str, default: date) -> date:
        if not (value or "").strip():
            return default
        try:
            return parse_date(value)
        except FormatError as e:
            raise ConfigurationError(f"Invalid {flag} date. Expected DD/MM/YYYY, got: {value}") from e

    start = _bound(date_from, "--from", default_from)
    end = _bound(date_to, "--to", default_to)
    try:
        return DateRange(start=start, end=end)
    except ValidationError as e:
        raise ConfigurationError(
            f"--from date ({format_date(start)}) must be before or equal to --to date ({format_date(end)})"
        ) from e


def validate_run_inputs(cfg: AppConfig, date_range: DateRange) -> None:
    """
    Fail fast before any browser work. `AppConfig` already validates shape; this re-checks the values a run
    cannot do without, since configs can be built in code (tests, scripts).
    """
    missing = [
        name
        for name, value in (
            ("credentials.document_number", cfg.credentials.document_number),
            ("credentials.username", cfg.credentials.username),
            ("credentials.password", cfg.credentials.password),
            ("search.account_locator", cfg.search.account_locator),
        )
        if not (value or "").strip()
    ]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
    try:
        re.compile(cfg.search.description_pattern)
    except re.error as e:
        raise ConfigurationError(f"Invalid description pattern: {e}") from e
    if date_range.start > date_range.end:
        raise ConfigurationError("Date range start must be on or before its end")


def _timeouts(cfg: AppConfig) -> NavigationTimeouts:
    t = cfg.timeouts
    return NavigationTimeouts(
        field_visible_ms=t.field_visible_ms,
        network_idle_ms=t.network_idle_ms,
        after_account_click_ms=t.after_account_click_ms,
        after_movements_click_ms=t.after_movements_click_ms,
        after_filter_click_ms=t.after_filter_click_ms,
    )


def run_extraction(
    cfg: AppConfig,
    date_range: DateRange,
    *,
    headless: bool = True,
    slow_mo_ms: int = 0,
    step_debug: bool = False,
    session_factory: SessionFactory = open_session,
) -> RunReport:
    """
    Validate inputs, drive one portal session, and extract retentions from the movement list.

    Navigation failures come back in the report (with zero transactions); the session is released on every path.
    """
    validate_run_inputs(cfg, date_range)

    navigator = PortalNavigator(
        login_url=cfg.portal.login_url,
        creds=PortalCredentials(
            document_number=cfg.credentials.document_number,
            username=cfg.credentials.username,
            password=cfg.credentials.password,
        ),
        account_locator=cfg.search.account_locator,
        timeouts=_timeouts(cfg),
        debug_dir=cfg.portal.debug_dir,
        step_debug=step_debug,
    )

    outcome: Optional[NavigationOutcome] = None
    try:
        with session_factory(headless=headless, slow_mo_ms=slow_mo_ms) as page:
            outcome = navigator.navigate(page)
    except Exception as e:
        # Launch or teardown failure. A movement snapshot taken before teardown is still good.
        logger.exception("Browser session failed")
        if outcome is None:
            outcome = NavigationOutcome(
                state=NavigationState.FAILED,
                reason=FailureReason.UNEXPECTED_NAVIGATION_ERROR,
                detail=f"{type(e).__name__}: {e}",
            )

    if not outcome.ok:
        logger.error(
            "Session ended in %s (%s): %s",
            outcome.state.value,
            outcome.reason.value if outcome.reason else "unknown",
            outcome.detail,
        )
        return RunReport(date_range=date_range, result=ExtractionResult.empty(), outcome=outcome)

    logger.info("Scraping transactions...")
    result = extract(outcome.page_text, date_range, cfg.search.description_pattern)
    return RunReport(date_range=date_range, result=result, outcome=outcome)


def report(run: RunReport) -> None:
    """
    Write the per-match lines, the summary and the final aggregate line to stdout.
    """
    span = f"{format_date(run.date_range.start)} to {format_date(run.date_range.end)}"

    print("--- Processing Transactions ---")
    for tx in run.result.transactions:
        print(f"[MATCH] {format_date(tx.date)} - {tx.description} - ${tx.amount:.2f}")
    print("-------------------------------")
    print(f"Summary for {span}:")
    print(f'Total "Ing. Brutos s/ cred": ${format_amount(run.result.total)} ({len(run.result.transactions)} movements)')
    if not run.ok:
        reason = run.outcome.reason.value if run.outcome.reason else "unknown"
        print(f"Session did not reach the movement list ({reason}); total is incomplete.")
    print(f"\n>>> TOTAL RETENTIONS ({span}): ${run.result.total:.2f} <<<\n")
