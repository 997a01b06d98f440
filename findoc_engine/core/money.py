"""
Fixed-precision money arithmetic.
Amounts are held as integer minor units (cents); every multiplication
rounds half-up back to a whole minor unit.
"""
from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Iterable, Union

DECIMAL_PLACES = 2

MINOR_PER_UNIT = 10 ** DECIMAL_PLACES

# Shared context so results never depend on the caller's thread-local context
DECIMAL_CONTEXT = Context(prec=40, rounding=ROUND_HALF_UP)

_HUNDRED = Decimal('100')
_ONE = Decimal('1')

Number = Union[Decimal, int, str]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, float):
        # floats carry binary noise; go through repr like the JSON loader does
        value = repr(value)
    return Decimal(value)


def _round_minor(value: Decimal) -> int:
    """Round a Decimal count of minor units to an int, half-up"""
    return int(value.quantize(_ONE, context=DECIMAL_CONTEXT))


@dataclass(frozen=True, order=True)
class Money:
    """
    Monetary amount stored as an integer number of minor units.

    Usage:
        price = Money.of('19.99')
        tax = price.percent(16)     # Money.of('3.20')
    """
    minor: int

    def __post_init__(self):
        if not isinstance(self.minor, int) or isinstance(self.minor, bool):
            raise TypeError('Money.minor must be an int')

    @classmethod
    def of(cls, amount: Number) -> 'Money':
        """Build from a major-unit amount, rounding half-up to the minor unit"""
        scaled = DECIMAL_CONTEXT.multiply(_to_decimal(amount), Decimal(MINOR_PER_UNIT))
        return cls(_round_minor(scaled))

    @classmethod
    def from_minor(cls, minor: int) -> 'Money':
        return cls(int(minor))

    @classmethod
    def zero(cls) -> 'Money':
        return cls(0)

    @property
    def is_zero(self) -> bool:
        return self.minor == 0

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.minor + other.minor)

    def __sub__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.minor - other.minor)

    def __neg__(self) -> 'Money':
        return Money(-self.minor)

    def times(self, factor: Number) -> 'Money':
        """Multiply by a plain factor (e.g. a quantity)"""
        product = DECIMAL_CONTEXT.multiply(Decimal(self.minor), _to_decimal(factor))
        return Money(_round_minor(product))

    def percent(self, rate: Number) -> 'Money':
        """Apply a percentage rate given on a 0-100 scale"""
        product = DECIMAL_CONTEXT.multiply(Decimal(self.minor), _to_decimal(rate))
        return Money(_round_minor(DECIMAL_CONTEXT.divide(product, _HUNDRED)))

    def share(self, numerator: 'Money', denominator: 'Money') -> 'Money':
        """
        Portion of this amount proportional to numerator / denominator.

        A zero denominator yields a zero allocation instead of raising.
        """
        if denominator.minor == 0:
            return Money.zero()
        product = DECIMAL_CONTEXT.multiply(Decimal(self.minor), Decimal(numerator.minor))
        return Money(_round_minor(DECIMAL_CONTEXT.divide(product, Decimal(denominator.minor))))

    def to_decimal(self) -> Decimal:
        """Major-unit Decimal with exactly DECIMAL_PLACES places"""
        return Decimal(self.minor).scaleb(-DECIMAL_PLACES)

    def __str__(self) -> str:
        return str(self.to_decimal())

    def __repr__(self) -> str:
        return f"Money('{self.to_decimal()}')"


def sum_money(amounts: Iterable[Money]) -> Money:
    total = 0
    for amount in amounts:
        total += amount.minor
    return Money(total)


def ratio(numerator: Money, denominator: Money) -> Decimal:
    """numerator / denominator as a Decimal fraction, 0 when denominator is zero"""
    if denominator.minor == 0:
        return Decimal('0')
    return DECIMAL_CONTEXT.divide(Decimal(numerator.minor), Decimal(denominator.minor))
