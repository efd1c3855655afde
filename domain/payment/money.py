"""
Money value object.

Amounts are exact decimals quantized to the currency's minor unit; every
arithmetic operation returns a new instance.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Union

from domain.common.exceptions import DomainValidationException


# ISO-4217 exponents that differ from the default of 2
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}

Number = Union[Decimal, int, str]


def currency_exponent(currency: str) -> int:
    return 0 if currency.upper() in _ZERO_DECIMAL_CURRENCIES else 2


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str

    def __post_init__(self):
        currency = (self.currency or "").upper()
        if len(currency) != 3 or not currency.isalpha():
            raise DomainValidationException(
                f"Invalid currency code: {self.currency}",
                field="currency",
            )
        if isinstance(self.amount, float):
            # floats carry binary noise into the ledger
            raise DomainValidationException(
                "Money amount must be a Decimal, int or str, not float",
                field="amount",
            )
        try:
            amount = Decimal(self.amount)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise DomainValidationException(
                f"Invalid money amount: {self.amount!r}",
                field="amount",
            ) from exc
        if not amount.is_finite():
            raise DomainValidationException(f"Invalid money amount: {self.amount!r}", field="amount")
        quantum = Decimal(1).scaleb(-currency_exponent(currency))
        object.__setattr__(self, "currency", currency)
        object.__setattr__(self, "amount", amount.quantize(quantum, rounding=ROUND_HALF_UP))

    @classmethod
    def of(cls, amount: Number, currency: str) -> "Money":
        return cls(Decimal(str(amount)), currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(Decimal(0), currency)

    @classmethod
    def from_minor(cls, minor: int, currency: str) -> "Money":
        """Build from the smallest currency unit (e.g. cents)."""
        return cls(Decimal(int(minor)).scaleb(-currency_exponent(currency)), currency)

    def to_minor(self) -> int:
        return int((self.amount * (Decimal(10) ** currency_exponent(self.currency))).to_integral_value())

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise DomainValidationException(
                f"Currency mismatch: {self.currency} != {other.currency}",
                field="currency",
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
