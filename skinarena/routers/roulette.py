from fastapi import APIRouter, Depends

from skinarena.context import AppContext, get_context
from skinarena.models.dc_models import BetModel, BetRequestModel, RoundSnapshotModel

roulette_router = APIRouter()


class RouletteAPI:
    @staticmethod
    @roulette_router.post("/bet")
    async def place_bet(bet: BetRequestModel, context: AppContext = Depends(get_context)):
        """Place a bet on the current round

        Args:
            bet (BetRequestModel): user, color and amount

        Returns:
            dict: success flag, message and the book entry
        """
        entry: BetModel = await context.roulette.submit_bet(bet.user_id, bet.color, bet.amount)
        return {"success": True, "message": "Bet placed successfully", "bet": entry}

    @staticmethod
    @roulette_router.get("/fetchRouletteData", response_model=RoundSnapshotModel)
    async def fetch_roulette_data(context: AppContext = Depends(get_context)):
        return context.roulette.fetch_round_snapshot()
