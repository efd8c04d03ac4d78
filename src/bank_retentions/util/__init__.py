from .dates import format_date, parse_date, previous_month_range
from .money import format_amount, parse_amount

__all__ = ["parse_date", "format_date", "previous_month_range", "parse_amount", "format_amount"]
