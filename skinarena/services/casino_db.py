"""DB service layer for the casino.

- Services never touch DB sessions directly; they call this module.
- This layer owns session/transaction boundaries: every multi-step mutation
  (debit + insert, credit + delete, ...) runs inside one ``session.begin()``,
  so a failure in a later step rolls the earlier ones back.
- CRUD helpers in ``crud.py`` never commit.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from skinarena.crud import CreateData, DeleteData, ReadData, UpdateData
from skinarena.domain.battle_rules import BALANCE_ITEM_NAME
from skinarena.domain.errors import NotFoundError, ValidationError
from skinarena.domain.progression import apply_exp
from skinarena.domain.rewards import to_cents
from skinarena.models.dc_models import (
    BattleModel,
    InventoryItemModel,
    PublicSkinModel,
    SeatModel,
)
from skinarena.models.schema_models import (
    BattleSchema,
    CaseSchema,
    SkinSchema,
    UserSchema,
)

HISTORY_LIMIT = 500


class CasinoStore:
    def __init__(self, Session: async_sessionmaker):
        self.Session: async_sessionmaker = Session

    async def read_user(self, user_id: UUID) -> UserSchema | None:
        async with self.Session() as session:
            return await ReadData.read_user_data(user_id, session)

    async def read_users(self, user_ids: Sequence[UUID]) -> Dict[UUID, UserSchema]:
        async with self.Session() as session:
            users = await ReadData.read_users_data(user_ids, session)
        return {user.user_id: user for user in users}

    async def read_inventory(self, user_id: UUID) -> List[InventoryItemModel]:
        async with self.Session() as session:
            return await ReadData.read_inventory(user_id, session)

    async def read_case(self, case_id: UUID) -> CaseSchema | None:
        async with self.Session() as session:
            return await ReadData.read_case_data(case_id, session)

    async def read_cases(self, case_ids: Sequence[UUID]) -> Dict[UUID, CaseSchema]:
        async with self.Session() as session:
            cases = await ReadData.read_cases_data(case_ids, session)
        return {case.case_id: case for case in cases}

    async def read_catalog(self) -> List[SkinSchema]:
        async with self.Session() as session:
            return await ReadData.read_catalog(session)

    async def read_battle(self, battle_id: UUID) -> BattleSchema | None:
        async with self.Session() as session:
            return await ReadData.read_battle_data(battle_id, session)

    async def create_user(self, user: UserSchema) -> None:
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_user_data(user, session)

    async def create_skin(self, skin: SkinSchema) -> None:
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_skin_data(skin, session)

    async def create_case(self, case: CaseSchema) -> None:
        async with self.Session() as session:
            async with session.begin():
                await CreateData.add_case_data(case, session)

    async def spend(
        self,
        user_id: UUID,
        amount: Decimal,
        action: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> UserSchema:
        """Debit a user and award the exp for the money spent, in one transaction.

        Raises:
            NotFoundError: unknown user
            ValidationError: balance lower than the amount
        """
        async with self.Session() as session:
            async with session.begin():
                return await self._spend(session, user_id, amount, action, destination)

    async def credit(self, user_id: UUID, amount: Decimal) -> UserSchema:
        async with self.Session() as session:
            async with session.begin():
                return await self._credit(session, user_id, amount)

    async def open_case(
        self,
        user_id: UUID,
        case: CaseSchema,
        drawn: Sequence[PublicSkinModel],
        total_cost: Decimal,
    ) -> Tuple[UserSchema, List[InventoryItemModel]]:
        """Charge a case opening and hand over the drawn items in one transaction.

        Args:
            user_id (UUID): The user opening the case
            case (CaseSchema): The opened case
            drawn (Sequence[PublicSkinModel]): Items already drawn for this opening
            total_cost (Decimal): Case price times the number of openings

        Returns:
            Tuple[UserSchema, List[InventoryItemModel]]: Updated user and the new inventory items
        """
        action = "Opened multiple cases" if len(drawn) > 1 else "Opened a case"
        async with self.Session() as session:
            async with session.begin():
                user = await self._spend(
                    session, user_id, total_cost, action, f"/case/{case.case_id}"
                )
                items = await CreateData.add_inventory_items(user_id, drawn, session)
        return user, items

    async def sell_items(
        self, user_id: UUID, item_ids: Sequence[UUID]
    ) -> Tuple[UserSchema, List[InventoryItemModel]]:
        """Sell owned items: credit their price, move them to the history, record the sale.

        Raises:
            NotFoundError: unknown user, or none of the items is owned by the user
        """
        async with self.Session() as session:
            async with session.begin():
                rows = await ReadData.read_owned_items(user_id, item_ids, session)
                if not rows:
                    raise NotFoundError("Skin already sold or not found in inventory")
                sold = [InventoryItemModel.model_validate(row) for row in rows]
                total = sum((row.price for row in rows), Decimal("0"))

                user = await self._credit(session, user_id, total)

                history_count = await ReadData.count_inventory_history(user_id, session)
                excess = history_count + len(rows) - HISTORY_LIMIT
                await DeleteData.delete_oldest_history(user_id, excess, session)
                await CreateData.add_inventory_history(rows, session)
                await DeleteData.delete_inventory_items([row.item_id for row in rows], session)

                action = "Sold multiple skins" if len(rows) > 1 else "Sold a skin"
                await CreateData.add_transaction_data(user_id, to_cents(total), user.balance, action, session)
        return user, sold

    async def create_battle(self, battle: BattleModel, creator_id: UUID) -> UserSchema:
        """Charge the creator and store the new battle in one transaction"""
        async with self.Session() as session:
            async with session.begin():
                user = await self._spend(
                    session,
                    creator_id,
                    battle.battle_cost,
                    "Created a battle",
                    f"/battles/{battle.battle_id}",
                )
                await CreateData.add_battle_data(battle, session)
        return user

    async def join_battle(self, battle: BattleModel, user_id: UUID) -> UserSchema:
        """Charge a joining user and store the new seats in one transaction"""
        async with self.Session() as session:
            async with session.begin():
                user = await self._spend(
                    session,
                    user_id,
                    battle.battle_cost,
                    "Joined a battle",
                    f"/battles/{battle.battle_id}",
                )
                if not await UpdateData.update_battle_seats(battle, session):
                    raise NotFoundError("Battle not found")
        return user

    async def update_battle_seats(self, battle: BattleModel) -> None:
        async with self.Session() as session:
            async with session.begin():
                if not await UpdateData.update_battle_seats(battle, session):
                    raise NotFoundError("Battle not found")

    async def finish_battle(
        self,
        battle: BattleModel,
        winners: List[SeatModel],
        is_tie: bool,
        allocated_skins: Dict[str, List[PublicSkinModel]],
    ) -> Dict[UUID, UserSchema]:
        """Store the battle outcome and pay every human seat in one transaction.

        Skins go to the inventory, a Balance item is credited to the balance.
        Bots are skipped.

        Returns:
            Dict[UUID, UserSchema]: Updated users that received something
        """
        paid: Dict[UUID, UserSchema] = {}
        async with self.Session() as session:
            async with session.begin():
                if not await UpdateData.update_finished_battle(
                    battle, winners, is_tie, allocated_skins, session
                ):
                    raise NotFoundError("Battle not found")

                for seat in battle.seats:
                    if seat is None or seat.bot:
                        continue
                    skins = allocated_skins.get(str(seat.id), [])
                    if not skins:
                        continue
                    items = [skin for skin in skins if skin.name != BALANCE_ITEM_NAME]
                    cash = sum(
                        (skin.price for skin in skins if skin.name == BALANCE_ITEM_NAME),
                        Decimal("0"),
                    )
                    await CreateData.add_inventory_items(seat.id, items, session)
                    user = await self._credit(session, seat.id, cash)
                    value = sum((skin.price for skin in skins), Decimal("0"))
                    await CreateData.add_transaction_data(
                        seat.id,
                        to_cents(value),
                        user.balance,
                        "Battle payout",
                        session,
                        destination=f"/battles/{battle.battle_id}",
                    )
                    paid[seat.id] = user
        return paid

    async def refund_battle(self, battle: BattleModel) -> Dict[UUID, UserSchema]:
        """Give the battle cost back to every human seat of an aborted battle, in one transaction

        Returns:
            Dict[UUID, UserSchema]: Updated users that were refunded
        """
        refunded: Dict[UUID, UserSchema] = {}
        async with self.Session() as session:
            async with session.begin():
                for seat in battle.seats:
                    if seat is None or seat.bot:
                        continue
                    user = await self._credit(session, seat.id, battle.battle_cost)
                    await CreateData.add_transaction_data(
                        seat.id,
                        to_cents(battle.battle_cost),
                        user.balance,
                        "Battle refund",
                        session,
                        destination=f"/battles/{battle.battle_id}",
                    )
                    refunded[seat.id] = user
        return refunded

    async def _spend(
        self,
        session: AsyncSession,
        user_id: UUID,
        amount: Decimal,
        action: Optional[str],
        destination: Optional[str],
    ) -> UserSchema:
        row = await ReadData.read_user_for_update(user_id, session)
        if row is None:
            raise NotFoundError("User not found")
        if row.balance < amount:
            raise ValidationError("Insufficient balance")
        row.balance = to_cents(row.balance - amount)
        row.exp, row.level = apply_exp(row.exp, row.level, amount)
        await session.flush()
        if action is not None:
            await CreateData.add_transaction_data(
                user_id, -to_cents(amount), row.balance, action, session, destination=destination
            )
        return UserSchema.model_validate(row)

    async def _credit(self, session: AsyncSession, user_id: UUID, amount: Decimal) -> UserSchema:
        row = await ReadData.read_user_for_update(user_id, session)
        if row is None:
            raise NotFoundError("User not found")
        row.balance = to_cents(row.balance + amount)
        await session.flush()
        return UserSchema.model_validate(row)
