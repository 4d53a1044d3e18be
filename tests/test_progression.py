from decimal import Decimal

from skinarena.domain.progression import apply_exp, exp_for_next_level


def test_threshold_grows_with_the_square_of_the_level():
    assert exp_for_next_level(1) == 100
    assert exp_for_next_level(3) == 900


def test_spending_250_at_level_1_reaches_level_2():
    exp, level = apply_exp(Decimal("0"), 1, Decimal("250"))
    assert (exp, level) == (Decimal("150"), 2)


def test_large_spend_cascades_several_levels():
    exp, level = apply_exp(Decimal("0"), 1, Decimal("50000"))
    assert level == 11
    assert exp == Decimal("11500")
    assert exp < exp_for_next_level(level)


def test_small_spend_keeps_the_level():
    assert apply_exp(Decimal("10"), 2, Decimal("5.50")) == (Decimal("15.50"), 2)
