"""
Unit tests for the Money primitive.
"""
from decimal import Decimal

import pytest

from findoc_engine.core.money import Money, ratio, sum_money


class TestConstruction:

    def test_of_rounds_half_up_to_cent(self):
        assert Money.of('19.995').minor == 2000
        assert Money.of('19.994').minor == 1999
        assert Money.of('0.005').minor == 1

    def test_negative_half_rounds_away_from_zero(self):
        assert Money.of('-0.005').minor == -1

    def test_float_input_uses_its_repr(self):
        """0.1 must become 10 cents, not 10.000000000000000555 cents"""
        assert Money.of(0.1).minor == 10

    def test_minor_must_be_int(self):
        with pytest.raises(TypeError):
            Money(1.5)

    def test_to_decimal_keeps_two_places(self):
        assert str(Money.of(232).to_decimal()) == '232.00'
        assert str(Money.zero().to_decimal()) == '0.00'
        assert Money.from_minor(5).to_decimal() == Decimal('0.05')


class TestArithmetic:

    def test_add_and_subtract(self):
        assert Money.of('1.10') + Money.of('2.25') == Money.of('3.35')
        assert Money.of('5') - Money.of('7.5') == Money.of('-2.5')

    def test_ordering(self):
        assert Money.of(1) < Money.of(2)
        assert max(Money.of(3), Money.of('2.99')) == Money.of(3)

    def test_percent_rounds_after_application(self):
        assert Money.of('10.00').percent(16) == Money.of('1.60')
        # 3 cents * 50% = 1.5 cents -> 2 cents
        assert Money.of('0.03').percent(50).minor == 2

    def test_times_rounds_after_multiplication(self):
        assert Money.of('33.33').times(3) == Money.of('99.99')
        assert Money.of('0.10').times('0.25').minor == 3

    def test_share_is_proportional(self):
        discount = Money.of(50)
        assert discount.share(Money.of(100), Money.of(200)) == Money.of(25)

    def test_share_with_zero_denominator_is_zero(self):
        assert Money.of(50).share(Money.of(10), Money.zero()) == Money.zero()

    def test_sum_money(self):
        assert sum_money([Money.of('0.01')] * 3) == Money.of('0.03')
        assert sum_money([]) == Money.zero()

    def test_ratio(self):
        assert ratio(Money.of(1), Money.of(4)) == Decimal('0.25')
        assert ratio(Money.of(1), Money.zero()) == Decimal('0')
