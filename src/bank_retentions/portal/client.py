from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..errors import AccountNotFoundError, LoginFieldsNotFoundError, UnexpectedNavigationError
from .selectors import NavigationTimeouts, PortalSelectors


logger = logging.getLogger(__name__)


# Removes target="_blank" so every click stays in the one page we own.
_STRIP_NEW_TAB_TARGETS_JS = """
() => {
  const links = document.querySelectorAll('a[target="_blank"]');
  links.forEach(link => link.removeAttribute('target'));
  return links.length;
}
"""

_SNIPPET_CHARS = 1000


class NavigationState(str, enum.Enum):
    LOGGED_OUT = "LoggedOut"
    AWAITING_SECOND_FACTOR = "AwaitingSecondFactor"
    AUTHENTICATED = "Authenticated"
    ACCOUNT_SELECTED = "AccountSelected"
    MOVEMENT_LIST_VISIBLE = "MovementListVisible"
    FILTER_APPLIED = "FilterApplied"
    FAILED = "Failed"


class FailureReason(str, enum.Enum):
    LOGIN_FIELDS_NOT_FOUND = "LoginFieldsNotFound"
    ACCOUNT_NOT_FOUND = "AccountNotFound"
    UNEXPECTED_NAVIGATION_ERROR = "UnexpectedNavigationError"


class FieldPresence(str, enum.Enum):
    PRESENT = "FieldPresent"
    ABSENT = "FieldAbsent"


@dataclass(frozen=True)
class PortalCredentials:
    document_number: str
    username: str
    password: str

    def __repr__(self) -> str:
        return "PortalCredentials(<redacted>)"


@dataclass(frozen=True)
class NavigationOutcome:
    state: NavigationState
    reason: Optional[FailureReason] = None
    detail: str = ""
    # Movement list text; only set when state is FILTER_APPLIED.
    page_text: str = ""
    # Bounded body text for diagnostics (AccountNotFound).
    page_snippet: str = ""

    @property
    def ok(self) -> bool:
        return self.state is NavigationState.FILTER_APPLIED


class PortalNavigator:
    """
    Drives one online banking session from the login page to a movement list snapshot.

    The portal differs between sessions (optional username step, account sometimes only reachable via
    "Cuentas", two possible movements labels, optional debit filter), so every uncertain step has a
    fallback. Only a missing password field and a missing account end the session early.
    """

    def __init__(
        self,
        *,
        login_url: str,
        creds: PortalCredentials,
        account_locator: str,
        selectors: Optional[PortalSelectors] = None,
        timeouts: Optional[NavigationTimeouts] = None,
        debug_dir: str = "data/debug",
        step_debug: bool = False,
    ) -> None:
        self.login_url = login_url
        self.creds = creds
        self.account_locator = account_locator
        self.selectors = selectors or PortalSelectors()
        self.timeouts = timeouts or NavigationTimeouts()
        self.debug_dir = debug_dir
        self.step_debug = bool(step_debug)

        self.state = NavigationState.LOGGED_OUT
        self._step_counter = 0

    def navigate(self, page: Page) -> NavigationOutcome:
        """
        Run the whole state machine against `page`. Never raises for navigation problems; failures come
        back as a FAILED outcome. The caller owns (and closes) the page.
        """
        self.state = NavigationState.LOGGED_OUT
        self._step_counter = 0
        try:
            self._login(page)
            self._log_dashboard_overview(page)
            self._select_account(page)
            self._open_movements(page)
            self._apply_debit_filter(page)
            text = self._snapshot_movement_text(page)
            return NavigationOutcome(state=self.state, page_text=text)
        except LoginFieldsNotFoundError as e:
            logger.error("Login fields not found: %s", e)
            self._save_debug(page, name_prefix="login_fields_not_found")
            return self._fail(FailureReason.LOGIN_FIELDS_NOT_FOUND, str(e))
        except AccountNotFoundError as e:
            logger.error("Account %r not found. Visible text (first %d chars):\n%s", self.account_locator, _SNIPPET_CHARS, e.snippet)
            self._save_debug(page, name_prefix="account_not_found")
            return self._fail(FailureReason.ACCOUNT_NOT_FOUND, str(e), snippet=e.snippet)
        except Exception as e:
            logger.exception("Unexpected navigation error (state=%s)", self.state.value)
            self._save_debug(page, name_prefix="navigation_failure")
            detail = str(e) if isinstance(e, UnexpectedNavigationError) else f"{type(e).__name__}: {e}"
            return self._fail(FailureReason.UNEXPECTED_NAVIGATION_ERROR, detail)

    # --- transitions -------------------------------------------------------------------------

    def _transition(self, new_state: NavigationState) -> None:
        logger.info("State: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def _fail(self, reason: FailureReason, detail: str, *, snippet: str = "") -> NavigationOutcome:
        self._transition(NavigationState.FAILED)
        return NavigationOutcome(state=NavigationState.FAILED, reason=reason, detail=detail, page_snippet=snippet)

    def _login(self, page: Page) -> None:
        logger.info("Navigating to login page...")
        page.goto(self.login_url, wait_until="domcontentloaded")
        self._step(page, name="login_page")

        page.fill(self.selectors.document_input, self.creds.document_number)
        # The portal reveals the next fields on blur; Tab instead of clicking around (ads/banners).
        page.keyboard.press("Tab")
        self._transition(NavigationState.AWAITING_SECOND_FACTOR)

        presence = self._fill_optional_field(page, self.selectors.username_input, self.creds.username)
        logger.info("Username step: %s", presence.value)

        if not self._wait_visible(page, self.selectors.password_input):
            raise LoginFieldsNotFoundError(
                f"Password field {self.selectors.password_input!r} not visible after "
                f"{self.timeouts.field_visible_ms} ms."
            )
        page.fill(self.selectors.password_input, self.creds.password)
        self._step(page, name="credentials_filled")

        logger.info("Submitting credentials...")
        self._click_first_by_texts(page, self.selectors.sign_in_submit_texts)

        # Sync point: nothing on the dashboard is read before the network settles.
        self._wait_for_network_idle(page)
        self._transition(NavigationState.AUTHENTICATED)
        self._step(page, name="authenticated")

    def _fill_optional_field(self, page: Page, selector: str, value: str) -> FieldPresence:
        if not self._wait_visible(page, selector):
            return FieldPresence.ABSENT
        page.fill(selector, value)
        return FieldPresence.PRESENT

    def _select_account(self, page: Page) -> None:
        logger.info("Searching for account: %s", self.account_locator)

        if self._click_account_if_present(page):
            logger.info("Found account element; clicked.")
        else:
            logger.info(
                "Account %r not found directly. Trying the %r listing...",
                self.account_locator,
                self.selectors.accounts_list_link_text,
            )
            listing = page.get_by_role("link", name=self.selectors.accounts_list_link_text).first
            if not self._is_visible(listing):
                raise AccountNotFoundError(
                    f"Account {self.account_locator!r} not found and no visible "
                    f"{self.selectors.accounts_list_link_text!r} entry.",
                    snippet=self._body_snippet(page),
                )

            self._strip_new_tab_targets(page)
            listing.click()
            logger.info("Clicked %r. Waiting...", self.selectors.accounts_list_link_text)
            self._wait_for_network_idle(page)

            if not self._click_account_if_present(page):
                raise AccountNotFoundError(
                    f"Account {self.account_locator!r} not found after opening "
                    f"{self.selectors.accounts_list_link_text!r}.",
                    snippet=self._body_snippet(page),
                )
            logger.info("Found account after opening %r.", self.selectors.accounts_list_link_text)

        self._wait_for_network_idle(page)
        page.wait_for_timeout(self.timeouts.after_account_click_ms)
        self._transition(NavigationState.ACCOUNT_SELECTED)
        self._step(page, name="account_selected")

    def _click_account_if_present(self, page: Page) -> bool:
        loc = page.get_by_text(self.account_locator)
        if loc.count() <= 0:
            return False
        self._strip_new_tab_targets(page)
        loc.first.click()
        return True

    def _open_movements(self, page: Page) -> None:
        self._strip_new_tab_targets(page)

        for label in self.selectors.movements_texts:
            loc = page.get_by_text(label).first
            if self._is_visible(loc):
                logger.info("Clicking %r...", label)
                loc.click()
                self._wait_for_network_idle(page)
                break
        else:
            # Soft fallback: the account summary may already list the movements.
            logger.info(
                "None of %s visible; assuming the summary page already shows movements.",
                self.selectors.movements_texts,
            )

        page.wait_for_timeout(self.timeouts.after_movements_click_ms)
        self._transition(NavigationState.MOVEMENT_LIST_VISIBLE)
        self._step(page, name="movements")

    def _apply_debit_filter(self, page: Page) -> None:
        label = self.selectors.debit_filter_text
        logger.info("Looking for %r filter...", label)
        loc = page.get_by_text(label).first
        if self._is_visible(loc):
            logger.info("Applying %r filter...", label)
            self._strip_new_tab_targets(page)
            loc.click()
            self._wait_for_network_idle(page)
            page.wait_for_timeout(self.timeouts.after_filter_click_ms)
        else:
            logger.info("%r filter not found, proceeding with all movements.", label)
        self._transition(NavigationState.FILTER_APPLIED)
        self._step(page, name="filter_applied")

    def _snapshot_movement_text(self, page: Page) -> str:
        """
        Flattened text of the movement list (list/grid container if present, else the whole body).
        """
        container = page.locator(self.selectors.movement_list_container)
        if container.count() > 0:
            text = container.first.inner_text()
            if (text or "").strip():
                return text
        return page.inner_text("body")

    # --- helpers -----------------------------------------------------------------------------

    def _wait_visible(self, page: Page, selector: str) -> bool:
        try:
            page.wait_for_selector(selector, state="visible", timeout=self.timeouts.field_visible_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    def _wait_for_network_idle(self, page: Page) -> None:
        try:
            page.wait_for_load_state("networkidle", timeout=self.timeouts.network_idle_ms)
        except PlaywrightTimeoutError:
            logger.warning(
                "Network did not go idle within %.1fs; continuing.", self.timeouts.network_idle_ms / 1000
            )

    def _is_visible(self, loc) -> bool:
        try:
            return bool(loc.is_visible())
        except Exception:
            logger.debug("Visibility check failed.", exc_info=True)
            return False

    def _strip_new_tab_targets(self, page: Page) -> None:
        n = page.evaluate(_STRIP_NEW_TAB_TARGETS_JS)
        logger.debug("Sanitized %s links to prevent new tabs.", n)

    def _click_first_by_texts(self, page: Page, texts: tuple[str, ...]) -> None:
        """
        Click the first matching button/link by accessible name.
        """
        for t in texts:
            for role in ("button", "link"):
                loc = page.get_by_role(role, name=re.compile(re.escape(t), re.I))
                if loc.count() > 0:
                    self._strip_new_tab_targets(page)
                    loc.first.click()
                    return
        raise UnexpectedNavigationError(f"Could not find clickable element for any of: {texts}")

    def _body_snippet(self, page: Page) -> str:
        try:
            return (page.inner_text("body") or "")[:_SNIPPET_CHARS]
        except Exception:
            logger.debug("Failed to read body text for diagnostics.", exc_info=True)
            return ""

    def _log_dashboard_overview(self, page: Page) -> None:
        """
        At DEBUG level, list what the dashboard offers. Handy when the portal layout changes.
        """
        if not logger.isEnabledFor(logging.DEBUG):
            return
        try:
            logger.debug("Current URL: %s", page.url)
            links = [t.strip() for t in page.get_by_role("link").all_inner_texts() if t.strip()]
            buttons = [t.strip() for t in page.get_by_role("button").all_inner_texts() if t.strip()]
            logger.debug("Dashboard links: %s", links)
            logger.debug("Dashboard buttons: %s", buttons)
            for word in self.selectors.dashboard_keywords:
                count = page.get_by_text(word).count()
                if count > 0:
                    logger.debug("Found keyword %r (%d times)", word, count)
        except Exception:
            logger.debug("Failed to collect dashboard overview.", exc_info=True)

    def _save_debug(self, page: Page, *, name_prefix: str) -> None:
        try:
            out_dir = Path(self.debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(out_dir / f"{name_prefix}.png"), full_page=True)
            (out_dir / f"{name_prefix}.html").write_text(page.content(), encoding="utf-8")
            # Also save the rendered body text so extraction can be debugged offline without DOM tooling.
            try:
                (out_dir / f"{name_prefix}.txt").write_text(page.inner_text("body"), encoding="utf-8")
            except Exception:
                pass
        except Exception:
            logger.debug("Failed to save debug artifacts.", exc_info=True)

    def _step(self, page: Page, *, name: str) -> None:
        """
        If enabled, log step-by-step progress and save screenshots.
        """
        if not self.step_debug:
            return

        self._step_counter += 1
        safe = re.sub(r"[^a-zA-Z0-9_-]+", "_", name).strip("_")[:60] or "step"
        prefix = f"step_{self._step_counter:02d}_{safe}"

        try:
            logger.info("Step %02d %s (url=%s)", self._step_counter, name, getattr(page, "url", ""))
        except Exception:
            pass

        try:
            out_dir = Path(self.debug_dir)
            out_dir.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(out_dir / f"{prefix}.png"), full_page=True)
        except Exception:
            logger.debug("Failed to save step screenshot (name=%s).", name, exc_info=True)
