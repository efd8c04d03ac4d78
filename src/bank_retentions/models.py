from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DateRange(BaseModel):
    """
    Inclusive calendar window [start, end] for one run.
    """

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must be on or before end ({self.end})")
        return self

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class RawTransactionMatch:
    # Unparsed text exactly as found on the page.
    date_text: str
    description_text: str
    amount_text: str


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: dt.date
    description: str
    amount: Decimal = Field(ge=0)


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Encounter order (the portal lists newest first); never re-sorted.
    transactions: tuple[Transaction, ...] = ()
    total: Decimal = Decimal("0")

    @classmethod
    def empty(cls) -> "ExtractionResult":
        return cls()
