from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PortalSelectors:
    """
    The online banking portal is a third-party web app; selectors may change over time.
    Keep all UI selectors/text hooks here for easy maintenance.
    """

    # Login. Username only shows up for some account types.
    document_input: str = "input#DocumentNumber"
    username_input: str = "input#UserName"
    password_input: str = "input#Password"
    sign_in_submit_texts: tuple[str, ...] = ("Iniciar sesión", "Ingresar")

    # Dashboard
    accounts_list_link_text: str = "Cuentas"
    dashboard_keywords: tuple[str, ...] = (
        "Comprobantes",
        "Retenciones",
        "Impuestos",
        "Ingresos Brutos",
        "Descargar",
    )

    # Movements, in priority order ("Movimientos" alone also matches the longer label).
    movements_texts: tuple[str, ...] = ("Todos los movimientos", "Movimientos")
    debit_filter_text: str = "Egresos de dinero"
    movement_list_container: str = 'div[class*="list"], div[class*="grid"]'


@dataclass(frozen=True)
class NavigationTimeouts:
    field_visible_ms: int = 5_000
    network_idle_ms: int = 30_000
    after_account_click_ms: int = 5_000
    after_movements_click_ms: int = 5_000
    after_filter_click_ms: int = 3_000
