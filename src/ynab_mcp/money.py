"""Fixed-point money type for YNAB milliunit amounts."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any


MILLIUNIT_DIGITS = 3

# YNAB stores amounts as signed 64-bit integers
MAX_MILLIUNITS = 2**63 - 1
MIN_MILLIUNITS = -(2**63)


class MoneyOverflowError(ArithmeticError):
    """Money arithmetic left the signed 64-bit milliunit range."""

    pass


def _checked(milliunits: int) -> int:
    if not MIN_MILLIUNITS <= milliunits <= MAX_MILLIUNITS:
        raise MoneyOverflowError(f"Amount out of range: {milliunits} milliunits")
    return milliunits


def _to_milliunits(amount: Decimal, value: Any) -> int:
    """Scale a finite Decimal to milliunits using integer arithmetic only.

    Decimal multiplication rounds to the context precision, so the digits
    and exponent are handled directly and any rounding is an error.
    """
    sign, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)))
    if coefficient == 0:
        return 0

    shift = exponent + MILLIUNIT_DIGITS
    if shift < 0:
        # A nonzero coefficient shorter than the shift cannot divide evenly
        if -shift > len(digits):
            raise ValueError(f"Amount {value!r} is more precise than one milliunit")
        coefficient, remainder = divmod(coefficient, 10 ** -shift)
        if remainder:
            raise ValueError(f"Amount {value!r} is more precise than one milliunit")
    elif shift > 0:
        if len(digits) - 1 + shift > len(str(MAX_MILLIUNITS)):
            raise MoneyOverflowError(f"Amount out of range: {value!r}")
        coefficient *= 10**shift

    return _checked(-coefficient if sign else coefficient)


@dataclass(frozen=True, order=True)
class Money:
    """Amount of money in milliunits (1/1000 of the currency unit).

    Outflows are negative, inflows positive. Instances are immutable and
    totally ordered by their milliunit value. Every operation that would
    leave the signed 64-bit range raises MoneyOverflowError.
    """

    milliunits: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.milliunits, bool) or not isinstance(self.milliunits, int):
            raise TypeError(f"Money requires integer milliunits, got {self.milliunits!r}")
        _checked(self.milliunits)

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, value: str | int | float | Decimal) -> "Money":
        """Parse a decimal amount in currency units, e.g. "-45.00".

        Args:
            value: Decimal string or number in currency units.

        Returns:
            Money with the exact milliunit value.

        Raises:
            ValueError: If the value is not a finite decimal or is finer than
                one milliunit.
        """
        if isinstance(value, bool):
            raise ValueError(f"Not an amount: {value!r}")
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Not an amount: {value!r}") from e
        if not amount.is_finite():
            raise ValueError(f"Not an amount: {value!r}")
        return cls(_to_milliunits(amount, value))

    def add(self, other: "Money") -> "Money":
        return Money(_checked(self.milliunits + other.milliunits))

    def subtract(self, other: "Money") -> "Money":
        return Money(_checked(self.milliunits - other.milliunits))

    def negate(self) -> "Money":
        return Money(_checked(-self.milliunits))

    def abs(self) -> "Money":
        return self.negate() if self.milliunits < 0 else self

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def is_zero(self) -> bool:
        return self.milliunits == 0

    def is_positive(self) -> bool:
        return self.milliunits > 0

    def is_negative(self) -> bool:
        return self.milliunits < 0

    @staticmethod
    def sum(amounts: Iterable["Money"]) -> "Money":
        """Exact sum; zero for an empty iterable."""
        total = 0
        for amount in amounts:
            total += amount.milliunits
        # Integer addition is associative, so only the final total is range-checked
        return Money(_checked(total))

    @staticmethod
    def average(amounts: Sequence["Money"]) -> "Money":
        """Mean rounded to the nearest milliunit, ties to even; zero when empty."""
        if not amounts:
            return Money.zero()
        total = Decimal(Money.sum(amounts).milliunits)
        mean = (total / len(amounts)).quantize(Decimal(1), rounding=ROUND_HALF_EVEN)
        return Money(int(mean))

    def to_decimal(self) -> Decimal:
        return Decimal(self.milliunits).scaleb(-MILLIUNIT_DIGITS)

    def format(self, decimal_digits: int = 2) -> str:
        """Render as a decimal string in currency units.

        Uses ``decimal_digits`` places, widening up to milliunit precision
        when the value has sub-cent milliunits, so parsing the result always
        gives back the same amount.
        """
        digits = max(0, min(decimal_digits, MILLIUNIT_DIGITS))
        while digits < MILLIUNIT_DIGITS and self.milliunits % 10 ** (MILLIUNIT_DIGITS - digits):
            digits += 1
        return f"{self.to_decimal():.{digits}f}"

    def __str__(self) -> str:
        return self.format()
