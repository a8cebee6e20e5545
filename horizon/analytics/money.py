"""Currency-tagged amounts.

Amounts from different currencies are never added or compared; the engine
does not convert currencies.
"""
from dataclasses import dataclass
from typing import Iterable

from horizon.analytics.errors import ValidationError


class CurrencyMismatchError(ValidationError):
    """Raised when two amounts in different currencies meet."""


@dataclass(frozen=True)
class Money:
    """An amount with its ISO currency code."""
    amount: float
    currency: str

    def __post_init__(self):
        object.__setattr__(self, "currency", self.currency.upper())

    def _check(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(
                f"Currency mismatch: {self.currency} vs {other.currency}",
                details={"left": self.currency, "right": other.currency},
            )

    def __add__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._check(other)
        return self.amount <= other.amount

    def scale(self, factor: float) -> "Money":
        return Money(self.amount * factor, self.currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(0.0, currency)


def sum_money(amounts: Iterable[Money], currency: str) -> Money:
    """Sum amounts that must all be in `currency`."""
    total = Money.zero(currency)
    for amount in amounts:
        total = total + amount
    return total
