from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from bank_retentions.config import AppConfig
from bank_retentions.errors import ConfigurationError
from bank_retentions.models import DateRange
from bank_retentions.portal.client import FailureReason, NavigationState
from bank_retentions.runner import report, resolve_date_range, run_extraction

from fake_portal import make_portal, session_factory_for


NOVEMBER = DateRange(start=date(2025, 11, 1), end=date(2025, 11, 30))


def _cfg(tmp_path: Path, **search) -> AppConfig:
    return AppConfig.model_validate(
        {
            "credentials": {"document_number": "20123456", "username": "jdoe", "password": "s3cret"},
            "search": {"account_locator": "4007-1234-5", **search},
            "portal": {"login_url": "https://bank.example/login", "debug_dir": str(tmp_path / "debug")},
            "timeouts": {
                "field_visible_ms": 10,
                "network_idle_ms": 10,
                "after_account_click_ms": 0,
                "after_movements_click_ms": 0,
                "after_filter_click_ms": 0,
            },
        }
    )


def test_run_extracts_retentions_and_closes_session(tmp_path: Path) -> None:
    page = make_portal()

    run = run_extraction(
        _cfg(tmp_path),
        NOVEMBER,
        headless=False,
        session_factory=session_factory_for(page),
    )

    assert run.ok
    assert page.closed
    assert page.session_kwargs == {"headless": False, "slow_mo_ms": 0}
    assert [t.date for t in run.result.transactions] == [date(2025, 11, 28), date(2025, 11, 3)]
    assert run.result.total == Decimal("11235.86")


def test_run_after_listing_fallback_still_extracts(tmp_path: Path) -> None:
    page = make_portal(account_on_dashboard=False)

    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=session_factory_for(page))

    assert run.ok
    assert run.outcome.state is NavigationState.FILTER_APPLIED
    assert len(run.result.transactions) == 2


def test_account_not_found_reports_zero_and_releases_session(tmp_path: Path) -> None:
    page = make_portal(account_on_dashboard=False, account_in_listing=False)

    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=session_factory_for(page))

    assert not run.ok
    assert run.outcome.reason is FailureReason.ACCOUNT_NOT_FOUND
    assert run.result.transactions == ()
    assert run.result.total == 0
    assert page.closed


def test_login_failure_releases_session(tmp_path: Path) -> None:
    page = make_portal(has_password=False)

    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=session_factory_for(page))

    assert run.outcome.reason is FailureReason.LOGIN_FIELDS_NOT_FOUND
    assert page.closed


def test_custom_pattern_is_used(tmp_path: Path) -> None:
    page = make_portal()

    run = run_extraction(
        _cfg(tmp_path, description_pattern="transferencia"),
        NOVEMBER,
        session_factory=session_factory_for(page),
    )

    assert [t.amount for t in run.result.transactions] == [Decimal("500.00")]


def test_incomplete_config_fails_before_opening_session(tmp_path: Path) -> None:
    cfg = _cfg(tmp_path)
    cfg = cfg.model_copy(update={"search": cfg.search.model_copy(update={"account_locator": ""})})
    opened = []

    def factory(**kwargs):
        opened.append(kwargs)
        raise AssertionError("session must not be opened")

    with pytest.raises(ConfigurationError, match="account_locator"):
        run_extraction(cfg, NOVEMBER, session_factory=factory)
    assert opened == []


def test_resolve_date_range_defaults_to_previous_month() -> None:
    r = resolve_date_range("", "", today=date(2025, 12, 5))
    assert (r.start, r.end) == (date(2025, 11, 1), date(2025, 11, 30))


def test_resolve_date_range_fills_missing_bound() -> None:
    r = resolve_date_range("15/11/2025", None, today=date(2025, 12, 5))
    assert (r.start, r.end) == (date(2025, 11, 15), date(2025, 11, 30))


def test_resolve_date_range_rejects_bad_input() -> None:
    with pytest.raises(ConfigurationError, match="--from"):
        resolve_date_range("2025-11-01", "30/11/2025")
    with pytest.raises(ConfigurationError, match="--to"):
        resolve_date_range("01/11/2025", "31/11/2025")
    with pytest.raises(ConfigurationError, match="before or equal"):
        resolve_date_range("30/11/2025", "01/11/2025")


def test_date_range_is_immutable() -> None:
    with pytest.raises(Exception):
        NOVEMBER.start = date(2025, 1, 1)  # type: ignore[misc]


def test_report_prints_matches_and_total(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    page = make_portal()
    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=session_factory_for(page))

    report(run)

    out = capsys.readouterr().out
    assert "[MATCH] 28/11/2025 - Ing. Brutos S/ Cred - $10035.36" in out
    assert "[MATCH] 03/11/2025 - Ing. Brutos S/ Cred - $1200.50" in out
    assert "Summary for 01/11/2025 to 30/11/2025:" in out
    assert "$11.235,86" in out
    assert ">>> TOTAL RETENTIONS (01/11/2025 to 30/11/2025): $11235.86 <<<" in out


def test_browser_launch_failure_returns_empty_report(tmp_path: Path) -> None:
    @contextmanager
    def factory(**kwargs):
        raise RuntimeError("browserType.launch: Executable doesn't exist")
        yield  # pragma: no cover

    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=factory)

    assert not run.ok
    assert run.outcome.state is NavigationState.FAILED
    assert run.outcome.reason is FailureReason.UNEXPECTED_NAVIGATION_ERROR
    assert "Executable doesn't exist" in run.outcome.detail
    assert run.result.transactions == ()
    assert run.result.total == 0


def test_teardown_failure_keeps_extracted_result(tmp_path: Path) -> None:
    page = make_portal()

    @contextmanager
    def factory(**kwargs):
        yield page
        raise RuntimeError("browser.close: Target closed")

    run = run_extraction(_cfg(tmp_path), NOVEMBER, session_factory=factory)

    assert run.ok
    assert run.result.total == Decimal("11235.86")
