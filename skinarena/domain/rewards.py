"""Weighted draws and case pricing.

Every item carries a ``chance`` weight. A case is valid only when the weights
add up to exactly 100, and its price is the expected item value plus the house
edge.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence, TypeVar

import numpy as np

from skinarena.domain.errors import IntegrityError, ValidationError
from skinarena.models.dc_models import CaseItemModel

CENT = Decimal("0.01")
HOUSE_EDGE = Decimal("1.15")
TOTAL_CHANCE = Decimal("100")

Item = TypeVar("Item", bound=CaseItemModel)


def to_cents(value) -> Decimal:
    """Round a money value to two decimals."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_chances(skins: Sequence[CaseItemModel]) -> None:
    """Reject a case whose chances are out of range or do not sum to exactly 100.

    Raises:
        ValidationError: a single chance outside [0, 100] or a total other than 100
    """
    if not skins:
        raise ValidationError("A case needs at least one skin.")
    total = Decimal("0")
    for skin in skins:
        if skin.chance < 0 or skin.chance > TOTAL_CHANCE:
            raise ValidationError(
                f'Invalid chance ({skin.chance}) for skin "{skin.name}". Chance must be between 0 and 100.'
            )
        total += skin.chance
    if total != TOTAL_CHANCE:
        raise ValidationError(f"Total chance ({total}) must equal 100.")


def case_price(skins: Sequence[CaseItemModel]) -> Decimal:
    """Expected value of one opening times the house edge, in cents."""
    expected = sum((skin.price * skin.chance / TOTAL_CHANCE for skin in skins), Decimal("0"))
    return to_cents(expected * HOUSE_EDGE)


def draw(items: Sequence[Item], n: int, rng: np.random.Generator) -> List[Item]:
    """Draw ``n`` items independently, each proportionally to its chance.

    Items are not removed between draws, so the same item may come up several
    times. Zero-weight items are never drawn.

    Args:
        items (Sequence[Item]): weighted items
        n (int): number of independent draws
        rng (np.random.Generator): source of uniform numbers in [0, 1)

    Raises:
        IntegrityError: the cumulative walk selected nothing

    Returns:
        List[Item]: copies of the drawn items
    """
    candidates = [item for item in items if item.chance > 0]
    weights = np.array([float(item.chance) for item in candidates], dtype=np.float64)
    cumulative = np.cumsum(weights)
    total = float(cumulative[-1]) if len(cumulative) else 0.0

    drawn: List[Item] = []
    for _ in range(n):
        point = float(rng.random()) * total
        # first item whose cumulative weight reaches the point
        index = int(np.searchsorted(cumulative, point, side="left"))
        if total <= 0 or index >= len(candidates):
            raise IntegrityError("Error selecting skin")
        drawn.append(candidates[index].model_copy())
    return drawn
