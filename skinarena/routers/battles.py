from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from skinarena.context import AppContext, get_context
from skinarena.models.dc_models import (
    BattleDetailModel,
    BattleSummaryModel,
    CreateBattleModel,
    SeatRequestModel,
)

battle_router = APIRouter()


class BattleAPI:
    @staticmethod
    @battle_router.post("/createBattle")
    async def create_battle(request: CreateBattleModel, context: AppContext = Depends(get_context)):
        """Create a battle, the creator takes seat 0 and pays the battle cost

        Args:
            request (CreateBattleModel): cases, type, visibility, mode and creator

        Returns:
            dict: success flag, message and the new battle
        """
        battle = await context.battles.create_battle(request)
        return {
            "success": True,
            "message": "Battle created successfully",
            "battle": battle,
            "path": f"/battle/{battle.battle_id}",
        }

    @staticmethod
    @battle_router.get("/battles", response_model=List[BattleSummaryModel])
    async def list_battles(context: AppContext = Depends(get_context)):
        return await context.battles.list_battles()

    @staticmethod
    @battle_router.get("/battle/{battle_id}", response_model=BattleDetailModel)
    async def read_battle(battle_id: UUID, context: AppContext = Depends(get_context)):
        return await context.battles.read_battle(battle_id)

    @staticmethod
    @battle_router.post("/joinBattle/{battle_id}")
    async def join_battle(
        battle_id: UUID, request: SeatRequestModel, context: AppContext = Depends(get_context)
    ):
        battle = await context.battles.join_battle(battle_id, request.user_id, request.index)
        return {"success": True, "message": "Joined battle successfully", "battle": battle}

    @staticmethod
    @battle_router.post("/addBot/{battle_id}")
    async def add_bot(
        battle_id: UUID, request: SeatRequestModel, context: AppContext = Depends(get_context)
    ):
        battle = await context.battles.add_bot(battle_id, request.user_id, request.index)
        return {"success": True, "message": "Bot added successfully", "battle": battle}
