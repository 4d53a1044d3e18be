"""Case battle rules that are independent from HTTP, DB and timers.

Seats are addressed by index. In 2v2 the teams are interleaved: seats 0 and 2
play against seats 1 and 3.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

import numpy as np

from skinarena.domain.errors import ConflictError, ValidationError
from skinarena.domain.rewards import to_cents
from skinarena.models.dc_models import (
    BattleModeModel,
    BattleTypeModel,
    PublicSkinModel,
)

MIN_CASES = 1
MAX_CASES = 100
CREATION_COOLDOWN = 5  # seconds between two battle creations of one user
COUNTDOWN_FROM = 3
COUNTDOWN_STEP = 1
ROLL_PAUSE = 3

LOSS_SHARE = Decimal("0.01")  # consolation for every losing seat, as part of the battle cost
MAX_ALLOCATED_SKINS = 10
BALANCE_ITEM_NAME = "Balance"
BALANCE_ITEM_RARITY = "Money"
BALANCE_ITEM_IMAGE = "/difference_money.png"

BOT_NAMES = ["Skibidi", "Sigma", "Bali", "Japko"]

TEAM_A = (0, 2)
TEAM_B = (1, 3)

SEAT_COUNTS = {
    BattleModeModel.one_v_one: 2,
    BattleModeModel.free_for_all_2: 2,
    BattleModeModel.one_v_one_v_one: 3,
    BattleModeModel.free_for_all_3: 3,
    BattleModeModel.one_v_one_v_one_v_one: 4,
    BattleModeModel.free_for_all_4: 4,
    BattleModeModel.two_v_two: 4,
}


@dataclass
class SettlementPlan:
    """Who won and what every seat receives.

    ``keepers`` keep the items they drew, every seat in ``shares`` gets a
    freshly allocated bundle worth the given value.
    """

    winners: List[int]
    is_tie: bool = False
    keepers: List[int] = field(default_factory=list)
    shares: Dict[int, Decimal] = field(default_factory=dict)


def seat_count(mode: BattleModeModel) -> int:
    return SEAT_COUNTS[mode]


def validate_case_count(count: int) -> None:
    if count < MIN_CASES or count > MAX_CASES:
        raise ValidationError("Number of cases must be between 1 and 100")


def pick_bot_name(used_names: Sequence[str], rng: np.random.Generator) -> str:
    available = [name for name in BOT_NAMES if name not in used_names]
    if not available:
        raise ConflictError("No bot names available")
    return available[int(rng.integers(len(available)))]


def seat_totals(rolled_items: Sequence[Sequence[Optional[PublicSkinModel]]], seats: int) -> List[Decimal]:
    """Sum the drawn value of every seat over all rolled cases."""
    totals = [Decimal("0")] * seats
    for row in rolled_items:
        for index, item in enumerate(row):
            if item is not None:
                totals[index] += item.price
    return totals


def plan_settlement(
    battle_type: BattleTypeModel,
    mode: BattleModeModel,
    totals: Sequence[Decimal],
    battle_cost: Decimal,
    rng: np.random.Generator,
) -> SettlementPlan:
    """Decide winners and payouts of a finished battle.

    Args:
        battle_type (BattleTypeModel): Razem pools everything, Standard wants the max, Crazy the min
        mode (BattleModeModel): 2v2 compares team sums, every other mode compares seats
        totals (Sequence[Decimal]): drawn value per seat
        battle_cost (Decimal): price of one seat, base of the consolation share
        rng (np.random.Generator): breaks ties

    Returns:
        SettlementPlan: winners, tie flag and what every seat receives
    """
    seats = list(range(len(totals)))
    loss_share = to_cents(battle_cost * LOSS_SHARE)

    if battle_type == BattleTypeModel.razem:
        share = to_cents(sum(totals, Decimal("0")) / len(seats))
        return SettlementPlan(winners=seats, shares={seat: share for seat in seats})

    if mode == BattleModeModel.two_v_two:
        team_a = sum((totals[seat] for seat in TEAM_A), Decimal("0"))
        team_b = sum((totals[seat] for seat in TEAM_B), Decimal("0"))
        winning_share = to_cents((team_a + team_b) / 2)
        is_tie = team_a == team_b
        if is_tie:
            team_a_wins = rng.random() < 0.5
        elif battle_type == BattleTypeModel.standard:
            team_a_wins = team_a > team_b
        else:
            team_a_wins = team_a < team_b
        winners, losers = (TEAM_A, TEAM_B) if team_a_wins else (TEAM_B, TEAM_A)
        shares = {seat: winning_share for seat in winners}
        shares.update({seat: loss_share for seat in losers})
        return SettlementPlan(winners=list(winners), is_tie=is_tie, shares=shares)

    target = max(totals) if battle_type == BattleTypeModel.standard else min(totals)
    tied = [seat for seat in seats if totals[seat] == target]
    is_tie = len(tied) > 1
    winner = tied[int(rng.integers(len(tied)))] if is_tie else tied[0]
    shares = {seat: loss_share for seat in seats if seat != winner}
    return SettlementPlan(winners=[winner], is_tie=is_tie, keepers=[winner], shares=shares)


def allocate(catalog: Sequence, target: Decimal) -> List[PublicSkinModel]:
    """Greedily turn a value into catalog skins, topped up with a Balance item.

    Takes the most expensive skin that still fits the remaining value, or the
    cheapest one when nothing fits, until the value is used up or ten skins were
    picked. Ties keep catalog order.

    Args:
        catalog (Sequence): skins with name, price, rarity and image
        target (Decimal): value to hand out

    Returns:
        List[PublicSkinModel]: allocated skins, possibly ending with a Balance item
    """
    priced = [skin for skin in catalog if skin.price > 0]
    by_price_desc = sorted(priced, key=lambda skin: skin.price, reverse=True)
    cheapest = min(priced, key=lambda skin: skin.price) if priced else None

    allocated: List[PublicSkinModel] = []
    remaining = to_cents(target)
    while remaining > 0 and len(allocated) < MAX_ALLOCATED_SKINS:
        skin = next((s for s in by_price_desc if s.price <= remaining), cheapest)
        if skin is None:
            break
        allocated.append(
            PublicSkinModel(name=skin.name, price=skin.price, rarity=skin.rarity, image=skin.image)
        )
        remaining -= skin.price

    if remaining > 0:
        allocated.append(
            PublicSkinModel(
                name=BALANCE_ITEM_NAME,
                price=remaining,
                rarity=BALANCE_ITEM_RARITY,
                image=BALANCE_ITEM_IMAGE,
            )
        )
    return allocated
