"""Roulette wheel rules.

The wheel is a simplified one: numbers 0..35, zero is green, odd numbers are
red and even numbers are black. It is not a real roulette layout.
"""

from decimal import Decimal

import numpy as np

from skinarena.domain.errors import ValidationError
from skinarena.models.dc_models import ColorModel

WHEEL_SIZE = 36
SPIN_INTERVAL = 15  # seconds of betting before each spin
SPINNING_TIME = 5
PROCESSING_PAUSE = 1
TICK = 1
LAST_NUMBERS_LIMIT = 10

GREEN_MULTIPLIER = 14
DEFAULT_MULTIPLIER = 2


def spin_number(rng: np.random.Generator) -> int:
    return int(rng.integers(0, WHEEL_SIZE))


def get_color(number: int) -> ColorModel:
    if number == 0:
        return ColorModel.green
    if number % 2 == 0:
        return ColorModel.black
    return ColorModel.red


def payout_multiplier(color: ColorModel) -> int:
    return GREEN_MULTIPLIER if color == ColorModel.green else DEFAULT_MULTIPLIER


def validate_amount(amount: Decimal) -> None:
    """Bets are positive and carry at most two decimal places.

    Raises:
        ValidationError: the amount has more than two decimals or is not positive
    """
    if not amount.is_finite() or amount.as_tuple().exponent < -2:
        raise ValidationError("Amount must have up to two decimal places")
    if amount <= 0:
        raise ValidationError("Bet cannot be below 0")
