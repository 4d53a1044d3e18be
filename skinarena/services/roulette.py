import logging
from decimal import Decimal
from typing import List, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from skinarena.domain.errors import CasinoError, ConflictError, NotFoundError, ValidationError
from skinarena.domain.roulette_rules import payout_multiplier, validate_amount
from skinarena.domain.rewards import to_cents
from skinarena.manager import ConnectionManager
from skinarena.models.dc_models import BetModel, ColorModel, RoundSnapshotModel
from skinarena.services.bet_book import BetBook
from skinarena.services.casino_db import CasinoStore
from skinarena.services.round_state import RoundState


class RouletteService:
    """Wagers and settlement of the roulette round."""

    def __init__(
        self,
        store: CasinoStore,
        gateway: ConnectionManager,
        bet_book: BetBook,
        state: RoundState,
    ):
        self.store = store
        self.gateway = gateway
        self.bet_book = bet_book
        self.state = state

    async def submit_bet(self, user_id: UUID, color: ColorModel, amount: Decimal) -> BetModel:
        """Place a wager on the current round.

        The stake is debited right away, losses need no further action at
        settlement.

        Args:
            user_id (UUID): The betting user
            color (ColorModel): red, black or green
            amount (Decimal): Stake, positive with at most two decimals

        Raises:
            ConflictError: the wheel is spinning or the bets are being processed
            ValidationError: malformed amount or insufficient balance
            NotFoundError: unknown user

        Returns:
            BetModel: The book entry for this user and color
        """
        async with self.bet_book.lock:
            if self.state.spinning:
                raise ConflictError("The roulette is spinning")
            if self.state.processing:
                raise ConflictError("The bets are being processed")
            validate_amount(amount)

            user = await self.store.read_user(user_id)
            if user is None:
                raise NotFoundError("User not found")
            if user.balance < amount:
                raise ValidationError("Insufficient balance")

            updated = await self.store.spend(user_id, amount)
            entry = self.bet_book.add(
                BetModel(
                    user_id=user.user_id,
                    color=color,
                    amount=amount,
                    username=user.username,
                    profile_image=user.profile_image,
                    level=user.level,
                    exp=user.exp,
                )
            )
            logging.info(f"Bet placed: {user_id} {amount} on {color.value}")

            await self.gateway.send_to(
                user_id,
                {
                    "type": "updateBalance",
                    "newBalance": updated.balance,
                    "level": updated.level,
                    "exp": updated.exp,
                },
            )
            await self.gateway.broadcast_all({"type": "updateBets", "bets": self.bet_book.sorted_bets()})
            return entry

    def fetch_round_snapshot(self) -> RoundSnapshotModel:
        """Everything a late listener needs to draw the current round"""
        return RoundSnapshotModel(
            current_number=self.state.current_number,
            red_bets=self.bet_book.by_color(ColorModel.red),
            green_bets=self.bet_book.by_color(ColorModel.green),
            black_bets=self.bet_book.by_color(ColorModel.black),
            last_numbers=list(self.state.last_numbers),
            time_to_spin=self.state.remaining,
        )

    async def settle(self, winning_color: ColorModel) -> List[Tuple[UUID, Decimal]]:
        """Pay the bets on the winning color and clear the book.

        Green pays 14x, red and black pay 2x. The book is cleared even when a
        payout fails, so settling twice never pays twice.

        Args:
            winning_color (ColorModel): Color of the drawn number

        Returns:
            List[Tuple[UUID, Decimal]]: Credited users and their payouts
        """
        paid: List[Tuple[UUID, Decimal]] = []
        async with self.bet_book.lock:
            try:
                multiplier = payout_multiplier(winning_color)
                for bet in self.bet_book.bets:
                    if bet.color != winning_color:
                        continue
                    payout = to_cents(bet.amount * multiplier)
                    try:
                        user = await self.store.credit(bet.user_id, payout)
                    except (SQLAlchemyError, CasinoError) as e:
                        logging.error(f"Failed to pay {payout} to {bet.user_id}: {e}")
                        continue
                    paid.append((bet.user_id, payout))
                    await self.gateway.send_to(
                        bet.user_id, {"type": "updateBalance", "newBalance": user.balance}
                    )
            finally:
                self.bet_book.clear()
        logging.info(f"Settled {winning_color.value}: {len(paid)} winning bets")
        return paid
