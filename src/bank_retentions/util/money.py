from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from ..errors import FormatError


# Sign and currency marker in either order ("-$1,00" / "$-1,00"), then an es-AR numeral.
_AMOUNT_RE = re.compile(r"^(?:[-+]?\$?|\$[-+])(?P<int>\d{1,3}(?:\.\d{3})+|\d+)(?:,(?P<frac>\d+))?$")


def parse_amount(value: str) -> Decimal:
    """
    Parse es-AR portal amounts into a non-negative Decimal:
    - "-$10.035,36" -> Decimal("10035.36")
    - "$50,00"      -> Decimal("50.00")
    - "$-1.200,5"   -> Decimal("1200.5")

    The sign is dropped: retentions are totalled as debit magnitudes.
    """
    if value is None:
        raise FormatError("parse_amount: value is None")

    s = value.strip()
    if not s:
        raise FormatError("parse_amount: empty string")

    # Browsers render "$\xa010.035,36"; any whitespace inside the amount is layout.
    s = re.sub(r"\s+", "", s)
    m = _AMOUNT_RE.match(s)
    if not m:
        raise FormatError(f"parse_amount: not an amount: {value!r}")

    s = m.group("int").replace(".", "")
    if m.group("frac") is not None:
        s = f"{s}.{m.group('frac')}"

    try:
        return Decimal(s)
    except InvalidOperation as e:
        raise FormatError(f"parse_amount: not an amount: {value!r}") from e


def format_amount(value: Decimal) -> str:
    """
    Render like the portal does: Decimal("10035.36") -> "10.035,36".
    """
    dec = Decimal(value).quantize(Decimal("0.01"))
    us = f"{dec:,.2f}"
    return us.replace(",", "_").replace(".", ",").replace("_", ".")
