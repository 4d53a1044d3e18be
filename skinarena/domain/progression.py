from decimal import Decimal
from typing import Tuple

BASE_EXP = 100


def exp_for_next_level(level: int) -> int:
    """Exp needed to leave ``level``: 100 * level^2."""
    return BASE_EXP * level**2


def apply_exp(exp: Decimal, level: int, amount_spent: Decimal) -> Tuple[Decimal, int]:
    """Add exp for money spent (1 unit spent = 1 exp) and cascade level-ups.

    Returns:
        Tuple[Decimal, int]: remaining exp and the new level
    """
    exp = Decimal(exp) + Decimal(amount_spent)
    threshold = exp_for_next_level(level)
    while exp >= threshold:
        exp -= threshold
        level += 1
        threshold = exp_for_next_level(level)
    return exp, level
