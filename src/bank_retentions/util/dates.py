from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

from ..errors import FormatError


_DATE_SHAPE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")


def parse_date(value: str) -> date:
    """
    Parse portal dates in DD/MM/YYYY form, e.g. "28/11/2025".

    Impossible calendar dates ("31/02/2025") are rejected instead of rolled over.
    """
    if value is None:
        raise FormatError("parse_date: value is None")
    s = value.strip()
    if not _DATE_SHAPE_RE.match(s):
        raise FormatError(f"parse_date: expected DD/MM/YYYY, got {value!r}")
    try:
        return datetime.strptime(s, "%d/%m/%Y").date()
    except ValueError as e:
        raise FormatError(f"parse_date: not a calendar date: {value!r} ({e})") from e


def format_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def previous_month_range(today: Optional[date] = None) -> tuple[date, date]:
    """
    First and last day of the calendar month before `today`.
    """
    today = today or date.today()
    first_of_this_month = today.replace(day=1)
    first_of_previous = first_of_this_month - relativedelta(months=1)
    last_of_previous = first_of_this_month - relativedelta(days=1)
    return first_of_previous, last_of_previous
