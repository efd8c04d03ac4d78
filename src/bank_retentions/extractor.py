from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Iterator, Pattern, Union

from .errors import FormatError
from .models import DateRange, ExtractionResult, RawTransactionMatch, Transaction
from .util.dates import parse_date
from .util.money import parse_amount


logger = logging.getLogger(__name__)


DEFAULT_RETENTION_PATTERN = r"Ing\.? Brutos S\/? Cred"

_DATE_LINE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
# "-$10.035,36", "$50,00", "1.234,56". A bare integer is not an amount (reference numbers look like that).
_AMOUNT_LINE_RE = re.compile(r"^(?:[-+]?\s*\$\s*[-+]?\s*[\d.]+(?:,\d+)?|[-+]?[\d.]+,\d{2})$")

# Descriptions wrap to a couple of lines at most; anything longer is not a movement row.
_MAX_DESCRIPTION_LINES = 4


def scan_triples(text: str) -> Iterator[RawTransactionMatch]:
    """
    Lazily yield date / description / amount triples from flattened list text.

    Expected layout (blank lines are ignored):

        28/11/2025
        Ing. Brutos S/ Cred
        -$10.035,36

    Malformed runs are skipped and the scan resumes at the next plausible date line.
    """
    lines = [ln.strip() for ln in (text or "").splitlines()]
    lines = [ln for ln in lines if ln]

    i = 0
    n = len(lines)
    while i < n:
        if not _DATE_LINE_RE.match(lines[i]):
            i += 1
            continue

        description: list[str] = []
        j = i + 1
        restart_at = None
        while j < n:
            ln = lines[j]
            if _DATE_LINE_RE.match(ln):
                # New date before any amount: this candidate is broken, restart from that date.
                restart_at = j
                break
            if _AMOUNT_LINE_RE.match(ln):
                break
            description.append(ln)
            if len(description) > _MAX_DESCRIPTION_LINES:
                restart_at = i + 1
                break
            j += 1

        if restart_at is not None:
            i = restart_at
            continue
        if j >= n:
            return
        if not description:
            # Date directly followed by an amount (e.g. a balance row).
            i = j + 1
            continue

        yield RawTransactionMatch(
            date_text=lines[i],
            description_text=" ".join(description),
            amount_text=lines[j],
        )
        i = j + 1


def _compile_pattern(description_pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    if isinstance(description_pattern, str):
        return re.compile(description_pattern, re.IGNORECASE)
    return re.compile(description_pattern.pattern, description_pattern.flags | re.IGNORECASE)


def extract(
    page_text: str,
    date_range: DateRange,
    description_pattern: Union[str, Pattern[str]] = DEFAULT_RETENTION_PATTERN,
) -> ExtractionResult:
    """
    Collect retention movements inside `date_range` whose description matches `description_pattern`.

    Pure: the same text, range and pattern always give the same result (same order).
    """
    pattern = _compile_pattern(description_pattern)

    accepted: list[Transaction] = []
    for raw in scan_triples(page_text):
        try:
            tx_date = parse_date(raw.date_text)
        except FormatError:
            logger.debug("Skipping candidate with unparseable date: %r", raw.date_text)
            continue

        if not date_range.contains(tx_date):
            continue
        if not pattern.search(raw.description_text):
            continue

        try:
            amount = parse_amount(raw.amount_text)
        except FormatError:
            logger.debug("Skipping candidate with unparseable amount: %r (%s)", raw.amount_text, raw.date_text)
            continue

        accepted.append(Transaction(date=tx_date, description=raw.description_text, amount=amount))

    total = sum((t.amount for t in accepted), Decimal("0"))
    return ExtractionResult(transactions=tuple(accepted), total=total)
