"""
In-memory stand-in for the subset of Playwright's sync `Page` API the navigator uses.

The "screen" is a list of visible labels plus an optional movement list text; clicking a label runs the
transition registered for it.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


DOCUMENT = "input#DocumentNumber"
USERNAME = "input#UserName"
PASSWORD = "input#Password"

MOVEMENTS_TEXT = """Movimientos de la cuenta
28/11/2025
Ing. Brutos S/ Cred
-$10.035,36
$120.000,00
15/11/2025
Transferencia
-$500,00
$130.035,36
03/11/2025
Ing. Brutos S/ Cred
-$1.200,50
$130.535,36
"""


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self._page = page

    def press(self, key: str) -> None:
        self._page.events.append(("press", key))
        hook = self._page.on_key.get(key)
        if hook:
            hook(self._page)


class FakeLocator:
    def __init__(self, page: "FakePage", name=None, *, container: bool = False) -> None:
        self._page = page
        self._name = name
        self._container = container

    def _matches(self) -> list[str]:
        if self._container:
            return [self._page.list_text] if self._page.list_text is not None else []
        labels = list(self._page.labels)
        if self._name is None:
            return labels
        if hasattr(self._name, "search"):
            return [lb for lb in labels if self._name.search(lb)]
        return [lb for lb in labels if str(self._name).lower() in lb.lower()]

    @property
    def first(self) -> "FakeLocator":
        return self

    def count(self) -> int:
        return len(self._matches())

    def is_visible(self) -> bool:
        return bool(self._matches())

    def click(self) -> None:
        matches = self._matches()
        if not matches:
            raise AssertionError(f"click on missing element {self._name!r}")
        self._page.click_label(matches[0])

    def inner_text(self) -> str:
        return self._matches()[0]

    def all_inner_texts(self) -> list[str]:
        return self._matches()


class FakePage:
    def __init__(self) -> None:
        self.url = "https://bank.example/login"
        self.labels: list[str] = []
        self.list_text: Optional[str] = None
        self.visible_selectors: set[str] = set()
        self.filled: dict[str, str] = {}
        self.clicks: list[str] = []
        self.events: list[tuple[str, str]] = []
        self.on_click: dict[str, Callable[["FakePage"], None]] = {}
        self.on_key: dict[str, Callable[["FakePage"], None]] = {}
        self.strip_calls = 0
        self.network_idle_times_out = False
        self.goto_error: Optional[Exception] = None
        self.closed = False
        self.session_kwargs: dict = {}
        self.keyboard = FakeKeyboard(self)

    # --- navigation ---

    def goto(self, url: str, wait_until: Optional[str] = None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        self.events.append(("goto", url))

    def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        self.events.append(("load_state", state))
        if self.network_idle_times_out and state == "networkidle":
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    def wait_for_timeout(self, timeout: float) -> None:
        self.events.append(("sleep", str(timeout)))

    def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[float] = None) -> None:
        if selector not in self.visible_selectors:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def evaluate(self, script: str):
        self.strip_calls += 1
        self.events.append(("evaluate", "strip"))
        return 0

    # --- fields / clicks ---

    def fill(self, selector: str, value: str) -> None:
        if selector not in self.visible_selectors:
            raise AssertionError(f"fill on hidden field {selector}")
        self.filled[selector] = value

    def click_label(self, label: str) -> None:
        self.clicks.append(label)
        self.events.append(("click", label))
        hook = self.on_click.get(label)
        if hook:
            hook(self)

    # --- locators ---

    def get_by_text(self, text: str) -> FakeLocator:
        return FakeLocator(self, text)

    def get_by_role(self, role: str, name=None) -> FakeLocator:
        return FakeLocator(self, name)

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector, container=True)

    # --- content ---

    def inner_text(self, selector: str) -> str:
        parts = list(self.labels)
        if self.list_text:
            parts.append(self.list_text)
        return "\n".join(parts)

    def content(self) -> str:
        return "<html><body>" + self.inner_text("body") + "</body></html>"

    def screenshot(self, path: str, full_page: bool = False) -> None:
        self.events.append(("screenshot", path))


def make_portal(
    *,
    account: str = "Cuenta Corriente 4007-1234-5",
    has_username: bool = True,
    has_password: bool = True,
    account_on_dashboard: bool = True,
    has_accounts_link: bool = True,
    account_in_listing: bool = True,
    movements_labels: tuple[str, ...] = ("Todos los movimientos",),
    has_debit_filter: bool = True,
    movements_text: str = MOVEMENTS_TEXT,
) -> FakePage:
    """
    Build a scripted portal: login -> dashboard -> (Cuentas) -> account -> movements -> filter.
    """
    page = FakePage()
    page.visible_selectors = {DOCUMENT}
    page.labels = ["Iniciar sesión"]

    def _after_tab(p: FakePage) -> None:
        if has_username:
            p.visible_selectors.add(USERNAME)
        if has_password:
            p.visible_selectors.add(PASSWORD)

    def _dashboard(p: FakePage) -> None:
        p.url = "https://bank.example/inicio"
        p.labels = ["Inicio", "Tarjetas"]
        if has_accounts_link:
            p.labels.append("Cuentas")
        if account_on_dashboard:
            p.labels.append(account)

    def _listing(p: FakePage) -> None:
        p.url = "https://bank.example/cuentas"
        p.labels = ["Inicio", "Caja de Ahorro 4007-9999-1"]
        if account_in_listing:
            p.labels.append(account)

    def _account(p: FakePage) -> None:
        p.url = "https://bank.example/cuenta"
        p.labels = ["Saldo disponible"] + list(movements_labels)
        if not movements_labels:
            # Summary page already lists the movements.
            p.list_text = movements_text

    def _movements(p: FakePage) -> None:
        p.url = "https://bank.example/movimientos"
        p.labels = ["Ingresos de dinero"]
        if has_debit_filter:
            p.labels.append("Egresos de dinero")
        p.list_text = movements_text

    def _filter(p: FakePage) -> None:
        p.labels = ["Ingresos de dinero", "Egresos de dinero"]

    page.on_key["Tab"] = _after_tab
    page.on_click["Iniciar sesión"] = _dashboard
    page.on_click["Cuentas"] = _listing
    page.on_click[account] = _account
    for label in movements_labels:
        page.on_click[label] = _movements
    page.on_click["Egresos de dinero"] = _filter
    return page


def session_factory_for(page: FakePage):
    @contextmanager
    def _factory(**kwargs):
        page.session_kwargs = kwargs
        try:
            yield page
        finally:
            page.closed = True

    return _factory
