"""Case battles: seat filling, the timed run and the settlement.

A battle lives in the ``BattleRegistry`` from creation until it is settled.
Once every seat is taken it runs on its own: a 3-2-1 countdown, one roll per
case with a pause in between, then the settlement is stored and the battle is
evicted from memory.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

import numpy as np
from uuid6 import uuid7

from skinarena.converter import DataConverter
from skinarena.domain.battle_rules import (
    COUNTDOWN_FROM,
    COUNTDOWN_STEP,
    CREATION_COOLDOWN,
    ROLL_PAUSE,
    allocate,
    pick_bot_name,
    plan_settlement,
    seat_count,
    seat_totals,
    validate_case_count,
)
from skinarena.domain.errors import (
    ConflictError,
    ForbiddenError,
    IntegrityError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from skinarena.domain.rewards import draw, to_cents
from skinarena.manager import ConnectionManager
from skinarena.models.dc_models import (
    BattleDetailModel,
    BattleModel,
    BattleStateModel,
    BattleSummaryModel,
    CreateBattleModel,
    PublicSkinModel,
    PublicUserModel,
    SeatModel,
)
from skinarena.models.schema_models import CaseSchema, UserSchema
from skinarena.scheduler import Scheduler
from skinarena.services.casino_db import CasinoStore


class BattleRegistry:
    """Active battles of this process and the creation cooldowns."""

    def __init__(self):
        self.battles: Dict[UUID, BattleModel] = {}
        self.last_creation: Dict[UUID, float] = {}
        self.lock = asyncio.Lock()

    def get(self, battle_id: UUID) -> Optional[BattleModel]:
        return self.battles.get(battle_id)

    def add(self, battle: BattleModel) -> None:
        self.battles[battle.battle_id] = battle

    def remove(self, battle_id: UUID) -> None:
        self.battles.pop(battle_id, None)

    def active(self) -> List[BattleModel]:
        return list(self.battles.values())

    def hit_cooldown(self, user_id: UUID, now: float) -> None:
        """Record a creation attempt, rejecting it inside the cooldown window

        Raises:
            RateLimitError: the user created a battle less than CREATION_COOLDOWN seconds ago
        """
        last = self.last_creation.get(user_id)
        if last is not None and now - last < CREATION_COOLDOWN:
            raise RateLimitError(
                "You are creating battles too quickly. Please wait a moment and try again."
            )
        self.last_creation[user_id] = now

    def purge_cooldowns(self, now: float) -> None:
        for user_id, last in list(self.last_creation.items()):
            if now - last >= CREATION_COOLDOWN:
                del self.last_creation[user_id]


class BattleService:
    def __init__(
        self,
        store: CasinoStore,
        gateway: ConnectionManager,
        scheduler: Scheduler,
        rng: np.random.Generator,
        registry: Optional[BattleRegistry] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.scheduler = scheduler
        self.rng = rng
        self.registry = registry or BattleRegistry()
        self.data_converter = DataConverter()
        self.case_cache: Dict[UUID, Dict[UUID, CaseSchema]] = {}

    async def purge_cooldowns(self) -> None:
        self.registry.purge_cooldowns(self.scheduler.now())

    async def create_battle(self, request: CreateBattleModel) -> BattleModel:
        """Create a battle with the creator in seat 0.

        The creator pays the battle cost, which is the sum of the case prices
        (a case picked twice is paid twice).

        Args:
            request (CreateBattleModel): cases, type, visibility, mode and creator

        Raises:
            RateLimitError: the creator is inside the creation cooldown
            ValidationError: not 1..100 cases, or insufficient balance
            NotFoundError: unknown case or user

        Returns:
            BattleModel: The new battle
        """
        self.registry.hit_cooldown(request.user_id, self.scheduler.now())
        validate_case_count(len(request.cases))

        cases = await self.store.read_cases(request.cases)
        missing = [case_id for case_id in request.cases if case_id not in cases]
        if missing:
            raise NotFoundError(f"Case not found: {missing[0]}")
        battle_cost = to_cents(sum((cases[case_id].case_price for case_id in request.cases), Decimal("0")))

        seats: List[Optional[SeatModel]] = [None] * seat_count(request.mode)
        seats[0] = SeatModel(id=request.user_id)
        battle = BattleModel(
            battle_id=uuid7(),
            cases=request.cases,
            battle_type=request.battle_type,
            mode=request.mode,
            visibility=request.visibility,
            state=BattleStateModel.created,
            battle_cost=battle_cost,
            seats=seats,
        )
        creator = await self.store.create_battle(battle, request.user_id)
        self.registry.add(battle)
        logging.info(f"Battle {battle.battle_id} created by {request.user_id}, cost {battle_cost}")

        await self._send_balance(creator)
        await self.gateway.broadcast_all({"action": "newBattle", "battle": battle})
        return battle

    async def join_battle(self, battle_id: UUID, user_id: UUID, index: int) -> BattleModel:
        """Take a free seat and pay the battle cost.

        Raises:
            NotFoundError: unknown battle or user
            ConflictError: already seated, seat taken, or the battle is no longer open
            ValidationError: seat index out of range, or insufficient balance

        Returns:
            BattleModel: The battle with the new seat filled
        """
        async with self.registry.lock:
            battle = await self._open_battle(battle_id)
            if any(seat is not None and seat.id == user_id for seat in battle.seats):
                raise ConflictError("You are already in this battle")
            self._check_seat(battle, index)

            battle.seats[index] = SeatModel(id=user_id)
            try:
                user = await self.store.join_battle(battle, user_id)
            except Exception:
                battle.seats[index] = None
                raise
            logging.info(f"User {user_id} joined battle {battle_id} at seat {index}")

            await self._send_balance(user)
            await self._broadcast_roster(battle)
            ready = self._mark_ready(battle)
        if ready:
            await self.run_battle(battle)
        return battle

    async def add_bot(self, battle_id: UUID, requester_id: UUID, index: int) -> BattleModel:
        """Fill a seat with a bot. Only the creator may do this.

        Raises:
            NotFoundError: unknown battle
            ForbiddenError: the requester is not in seat 0
            ValidationError: seat index out of range
            ConflictError: seat taken, battle no longer open, or no bot name left

        Returns:
            BattleModel: The battle with the bot seated
        """
        async with self.registry.lock:
            battle = await self._open_battle(battle_id)
            creator = battle.seats[0]
            if creator is None or creator.id != requester_id:
                raise ForbiddenError("Only the battle creator can add a bot")
            self._check_seat(battle, index)

            used_names = [seat.username for seat in battle.seats if seat is not None and seat.bot]
            name = pick_bot_name(used_names, self.rng)
            battle.seats[index] = SeatModel(
                id=uuid7(),
                bot=True,
                username=name,
                level=1,
                exp=Decimal("0"),
                profile_image=f"/bots/bot{name}.png",
            )
            try:
                await self.store.update_battle_seats(battle)
            except Exception:
                battle.seats[index] = None
                raise
            logging.info(f"Bot {name} added to battle {battle_id} at seat {index}")

            await self._broadcast_roster(battle)
            ready = self._mark_ready(battle)
        if ready:
            await self.run_battle(battle)
        return battle

    async def run_battle(self, battle: BattleModel) -> None:
        """Start the countdown of a full battle. The rest is driven by the scheduler."""
        if battle.state != BattleStateModel.ready or battle.countdown is not None:
            return
        battle.countdown = COUNTDOWN_FROM
        await self._run_step(self._begin, battle)

    async def _run_step(self, step, battle: BattleModel, *args) -> None:
        """Run one timed step of a battle, aborting the battle when it fails"""
        try:
            await step(battle, *args)
        except Exception as e:
            await self._abort(battle, e)

    async def _abort(self, battle: BattleModel, error: Exception) -> None:
        """Evict a battle whose run failed and give the entry fees back.

        A battle already settled in the store is only logged: its payouts stand.
        """
        logging.error(f"Battle {battle.battle_id} aborted: {error}")
        self.case_cache.pop(battle.battle_id, None)
        if self.registry.get(battle.battle_id) is None:
            return
        self.registry.remove(battle.battle_id)
        battle.countdown = None

        refunded: Dict[UUID, UserSchema] = {}
        try:
            refunded = await self.store.refund_battle(battle)
        except Exception as e:
            logging.error(f"Refund of battle {battle.battle_id} failed: {e}")
        for user in refunded.values():
            await self._send_balance(user)
        await self.gateway.broadcast_all({"action": "battleAborted", "battle": battle})

    async def _begin(self, battle: BattleModel) -> None:
        self.case_cache[battle.battle_id] = await self.store.read_cases(battle.cases)
        await self._countdown(battle, COUNTDOWN_FROM)

    async def _countdown(self, battle: BattleModel, count: int) -> None:
        if count > 0:
            battle.countdown = count
            self.scheduler.after(COUNTDOWN_STEP, self._run_step, self._countdown, battle, count - 1)
            await self.gateway.broadcast_all({"action": "countdown", "battle": battle})
            return

        battle.countdown = None
        if any(seat is None for seat in battle.seats):
            raise IntegrityError(f"Battle {battle.battle_id} cannot roll with an empty seat")
        battle.state = BattleStateModel.rolling
        logging.info(f"Battle {battle.battle_id} rolling")
        await self._roll_case(battle, 0)

    async def _roll_case(self, battle: BattleModel, index: int) -> None:
        battle.current_case_index = index
        case = self.case_cache.get(battle.battle_id, {}).get(battle.cases[index])
        if case is None:
            logging.error(f"Case {battle.cases[index]} of battle {battle.battle_id} is missing")
            raise IntegrityError("Case data missing for battle roll")

        row: List[Optional[PublicSkinModel]] = []
        for seat in battle.seats:
            if seat is None:
                row.append(None)
                continue
            item = draw(case.skins, 1, self.rng)[0]
            row.append(self.data_converter.convert_item_to_public(item))
        battle.rolled_items.append(row)

        if index + 1 < len(battle.cases):
            self.scheduler.after(ROLL_PAUSE, self._run_step, self._roll_case, battle, index + 1)
            await self.gateway.broadcast_all({"action": "rollItems", "battle": battle})
            return

        await self.gateway.broadcast_all({"action": "rollItems", "battle": battle})
        battle.state = BattleStateModel.finished
        await self.settle_battle(battle)

    async def settle_battle(self, battle: BattleModel) -> Dict[str, List[PublicSkinModel]]:
        """Decide the winners, store the payouts and announce the result.

        Args:
            battle (BattleModel): A battle with every case rolled

        Returns:
            Dict[str, List[PublicSkinModel]]: What every participant received, by participant id
        """
        totals = seat_totals(battle.rolled_items, len(battle.seats))
        plan = plan_settlement(battle.battle_type, battle.mode, totals, battle.battle_cost, self.rng)
        catalog = await self.store.read_catalog() if plan.shares else []

        allocated_skins: Dict[str, List[PublicSkinModel]] = {}
        for index, seat in enumerate(battle.seats):
            if index in plan.keepers:
                allocated_skins[str(seat.id)] = [
                    row[index] for row in battle.rolled_items if row[index] is not None
                ]
            elif index in plan.shares:
                allocated_skins[str(seat.id)] = allocate(catalog, plan.shares[index])

        winners = [battle.seats[index] for index in plan.winners]
        paid = await self.store.finish_battle(battle, winners, plan.is_tie, allocated_skins)
        self.registry.remove(battle.battle_id)
        self.case_cache.pop(battle.battle_id, None)
        logging.info(
            f"Battle {battle.battle_id} finished, winners {plan.winners}, tie {plan.is_tie}"
        )

        users = await self.roster(battle)
        for user in paid.values():
            await self._send_balance(user)
        await self.gateway.broadcast_all(
            {
                "action": "battleEnded",
                "battle": battle,
                "winners": [users[index] for index in plan.winners],
                "isTie": plan.is_tie,
                "allocatedSkins": allocated_skins,
            }
        )
        return allocated_skins

    async def roster(self, battle: BattleModel) -> List[Optional[PublicUserModel]]:
        """Public view of every seat. Bots are never looked up in the store."""
        human_ids = [seat.id for seat in battle.seats if seat is not None and not seat.bot]
        users = await self.store.read_users(human_ids)
        return self.data_converter.convert_seats_to_public(battle.seats, users)

    async def list_battles(self) -> List[BattleSummaryModel]:
        return [
            BattleSummaryModel(battle=battle, users=await self.roster(battle))
            for battle in self.registry.active()
        ]

    async def read_battle(self, battle_id: UUID) -> BattleDetailModel:
        """Read an active battle from memory, or a finished one from the store

        Raises:
            NotFoundError: unknown battle
        """
        battle = self.registry.get(battle_id)
        source = "server"
        stored = None
        if battle is None:
            stored = await self.store.read_battle(battle_id)
            if stored is None:
                raise NotFoundError("Battle not found")
            battle = stored
            source = "database"

        cases = await self.store.read_cases(battle.cases)
        detail = BattleDetailModel(
            battle=BattleModel.model_validate(battle.model_dump()),
            cases=[
                self.data_converter.convert_case_to_public(cases[case_id])
                for case_id in dict.fromkeys(battle.cases)
                if case_id in cases
            ],
            users=await self.roster(battle),
            source=source,
        )
        if stored is not None and stored.state == BattleStateModel.finished:
            users = await self.store.read_users(
                [seat.id for seat in stored.winners or [] if not seat.bot]
            )
            detail.winners = self.data_converter.convert_seats_to_public(stored.winners or [], users)
            detail.is_tie = stored.is_tie
            detail.allocated_skins = stored.allocated_skins
            detail.finished_at = stored.finished_at
        return detail

    async def _open_battle(self, battle_id: UUID) -> BattleModel:
        battle = self.registry.get(battle_id)
        if battle is None:
            stored = await self.store.read_battle(battle_id)
            if stored is None:
                raise NotFoundError("Battle not found")
            raise ConflictError("Battle is no longer open")
        if battle.state != BattleStateModel.created:
            raise ConflictError("Battle already started")
        return battle

    def _check_seat(self, battle: BattleModel, index: int) -> None:
        if index < 0 or index >= len(battle.seats):
            raise ValidationError("Invalid index")
        if battle.seats[index] is not None:
            raise ConflictError("Position already occupied")

    def _mark_ready(self, battle: BattleModel) -> bool:
        if any(seat is None for seat in battle.seats):
            return False
        battle.state = BattleStateModel.ready
        logging.info(f"Battle {battle.battle_id} ready")
        return True

    async def _broadcast_roster(self, battle: BattleModel) -> None:
        users = await self.roster(battle)
        await self.gateway.broadcast_all({"action": "updateBattle", "battle": battle, "users": users})

    async def _send_balance(self, user: UserSchema) -> None:
        await self.gateway.send_to(
            user.user_id,
            {
                "type": "updateBalance",
                "newBalance": user.balance,
                "level": user.level,
                "exp": user.exp,
            },
        )
