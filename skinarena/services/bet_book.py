import asyncio
from typing import List

from skinarena.models.dc_models import BetModel, ColorModel


class BetBook:
    """Pending bets of the current round.

    One entry per (user, color): a repeated wager on the same color adds to
    the existing entry. ``lock`` is held by anything that reads and then
    writes the book across an await (wagers, the spin, settlement).
    """

    def __init__(self):
        self.bets: List[BetModel] = []
        self.lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self.bets)

    def add(self, bet: BetModel) -> BetModel:
        """Merge a wager into the book

        Args:
            bet (BetModel): New wager

        Returns:
            BetModel: The entry holding the wager, with the accumulated amount
        """
        for existing in self.bets:
            if existing.user_id == bet.user_id and existing.color == bet.color:
                existing.amount += bet.amount
                return existing
        self.bets.append(bet)
        return bet

    def sorted_bets(self) -> List[BetModel]:
        return sorted(self.bets, key=lambda bet: bet.amount, reverse=True)

    def by_color(self, color: ColorModel) -> List[BetModel]:
        return [bet for bet in self.sorted_bets() if bet.color == color]

    def clear(self) -> None:
        self.bets = []
