from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID
from uuid6 import uuid7
import logging

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
from skinarena.models.schemas import (
    Battle,
    Case,
    InventoryHistory,
    InventoryItem,
    Skin,
    Transaction,
    User,
)

# None of these helpers commit: the caller owns the transaction (see services/casino_db.py)


class ReadData:
    @staticmethod
    async def read_user_data(user_id: UUID, session: AsyncSession) -> UserSchema | None:
        """Read a user by id

        Args:
            user_id (UUID): To identify the user

        Returns:
            UserSchema | None: The user, None if there is no such user
        """
        try:
            result = await session.execute(select(User).where(User.user_id == user_id))
            result = result.scalars().first()
            if result is None:
                return None
            return UserSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read user data: {e}")
            raise

    @staticmethod
    async def read_users_data(user_ids: Sequence[UUID], session: AsyncSession) -> List[UserSchema]:
        if not user_ids:
            return []
        try:
            result = await session.execute(select(User).where(User.user_id.in_(list(user_ids))))
            return [UserSchema.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read users data: {e}")
            raise

    @staticmethod
    async def read_user_for_update(user_id: UUID, session: AsyncSession) -> User | None:
        """Read and lock the user row for a balance change

        Args:
            user_id (UUID): To identify the user

        Returns:
            User | None: The locked row
        """
        try:
            stmt = select(User).where(User.user_id == user_id).with_for_update()
            result = await session.execute(stmt)
            return result.scalars().first()
        except SQLAlchemyError as e:
            logging.error(f"Failed to lock user data: {e}")
            raise

    @staticmethod
    async def read_case_data(case_id: UUID, session: AsyncSession) -> CaseSchema | None:
        try:
            result = await session.execute(select(Case).where(Case.case_id == case_id))
            result = result.scalars().first()
            if result is None:
                return None
            return CaseSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read case data: {e}")
            raise

    @staticmethod
    async def read_cases_data(case_ids: Sequence[UUID], session: AsyncSession) -> List[CaseSchema]:
        if not case_ids:
            return []
        try:
            result = await session.execute(select(Case).where(Case.case_id.in_(list(set(case_ids)))))
            return [CaseSchema.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read cases data: {e}")
            raise

    @staticmethod
    async def read_catalog(session: AsyncSession) -> List[SkinSchema]:
        """Read every catalog skin in insertion order (uuid7 keys are time ordered)"""
        try:
            result = await session.execute(select(Skin).order_by(Skin.skin_id))
            return [SkinSchema.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read skin catalog: {e}")
            raise

    @staticmethod
    async def read_inventory(user_id: UUID, session: AsyncSession) -> List[InventoryItemModel]:
        """Read the inventory of a user, newest item first"""
        try:
            stmt = (
                select(InventoryItem)
                .where(InventoryItem.user_id == user_id)
                .order_by(desc(InventoryItem.item_id))
            )
            result = await session.execute(stmt)
            return [InventoryItemModel.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            logging.error(f"Failed to read inventory: {e}")
            raise

    @staticmethod
    async def read_owned_items(
        user_id: UUID, item_ids: Sequence[UUID], session: AsyncSession
    ) -> List[InventoryItem]:
        try:
            stmt = select(InventoryItem).where(
                InventoryItem.item_id.in_(list(item_ids)),
                InventoryItem.user_id == user_id,
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logging.error(f"Failed to read inventory items: {e}")
            raise

    @staticmethod
    async def count_inventory_history(user_id: UUID, session: AsyncSession) -> int:
        try:
            stmt = select(func.count()).select_from(InventoryHistory).where(InventoryHistory.user_id == user_id)
            result = await session.execute(stmt)
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            logging.error(f"Failed to count inventory history: {e}")
            raise

    @staticmethod
    async def read_battle_data(battle_id: UUID, session: AsyncSession) -> BattleSchema | None:
        try:
            result = await session.execute(select(Battle).where(Battle.battle_id == battle_id))
            result = result.scalars().first()
            if result is None:
                return None
            return BattleSchema.model_validate(result)
        except SQLAlchemyError as e:
            logging.error(f"Failed to read battle data: {e}")
            raise


class CreateData:
    @staticmethod
    async def add_user_data(user: UserSchema, session: AsyncSession):
        try:
            session.add(User(**user.model_dump()))
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create user data: {e}")
            raise

    @staticmethod
    async def add_skin_data(skin: SkinSchema, session: AsyncSession):
        try:
            session.add(Skin(**skin.model_dump()))
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create skin data: {e}")
            raise

    @staticmethod
    async def add_case_data(case: CaseSchema, session: AsyncSession):
        """Add a case. The weighted items are stored as one JSON document

        Args:
            case (CaseSchema): Validated case with its computed price
        """
        try:
            new_case = Case(
                case_id=case.case_id,
                name=case.name,
                case_type=case.case_type,
                image=case.image,
                skins=[skin.model_dump(mode="json") for skin in case.skins],
                case_price=case.case_price,
            )
            session.add(new_case)
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create case data: {e}")
            raise

    @staticmethod
    async def add_inventory_items(
        user_id: UUID, items: Sequence[PublicSkinModel], session: AsyncSession
    ) -> List[InventoryItemModel]:
        """Give fresh item instances to a user

        Args:
            user_id (UUID): Owner of the new items
            items (Sequence[PublicSkinModel]): Drawn or allocated skins

        Returns:
            List[InventoryItemModel]: The stored items with their new ids
        """
        try:
            new_items = [
                InventoryItem(
                    item_id=uuid7(),
                    user_id=user_id,
                    name=item.name,
                    price=item.price,
                    rarity=item.rarity,
                    image=item.image,
                )
                for item in items
            ]
            session.add_all(new_items)
            await session.flush()
            return [InventoryItemModel.model_validate(item) for item in new_items]
        except SQLAlchemyError as e:
            logging.error(f"Failed to create inventory items: {e}")
            raise

    @staticmethod
    async def add_inventory_history(items: Sequence[InventoryItem], session: AsyncSession):
        try:
            sold_at = datetime.now()
            session.add_all(
                [
                    InventoryHistory(
                        history_id=uuid7(),
                        item_id=item.item_id,
                        user_id=item.user_id,
                        name=item.name,
                        price=item.price,
                        rarity=item.rarity,
                        image=item.image,
                        status="sold",
                        sold_at=sold_at,
                    )
                    for item in items
                ]
            )
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create inventory history: {e}")
            raise

    @staticmethod
    async def add_transaction_data(
        user_id: UUID,
        amount: Decimal,
        balance: Decimal,
        action: str,
        session: AsyncSession,
        destination: Optional[str] = None,
    ):
        try:
            session.add(
                Transaction(
                    transaction_id=uuid7(),
                    user_id=user_id,
                    amount=amount,
                    balance=balance,
                    action=action,
                    destination=destination,
                )
            )
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create transaction data: {e}")
            raise

    @staticmethod
    async def add_battle_data(battle: BattleModel, session: AsyncSession):
        try:
            dumped = battle.model_dump(mode="json")
            session.add(
                Battle(
                    battle_id=battle.battle_id,
                    cases=dumped["cases"],
                    battle_type=battle.battle_type.value,
                    mode=battle.mode.value,
                    visibility=battle.visibility.value,
                    state=battle.state.value,
                    battle_cost=battle.battle_cost,
                    seats=dumped["seats"],
                    rolled_items=dumped["rolled_items"],
                    current_case_index=battle.current_case_index,
                )
            )
            await session.flush()
        except SQLAlchemyError as e:
            logging.error(f"Failed to create battle data: {e}")
            raise


class UpdateData:
    @staticmethod
    async def update_battle_seats(battle: BattleModel, session: AsyncSession) -> bool:
        """Store the current seats and state of an active battle

        Args:
            battle (BattleModel): The in-memory battle
        """
        try:
            result = await session.execute(select(Battle).where(Battle.battle_id == battle.battle_id))
            result = result.scalars().first()
            if result is None:
                return False
            dumped = battle.model_dump(mode="json")
            result.seats = dumped["seats"]
            result.state = battle.state.value
            await session.flush()
            return True
        except SQLAlchemyError as e:
            logging.error(f"Failed to update battle seats: {e}")
            raise

    @staticmethod
    async def update_finished_battle(
        battle: BattleModel,
        winners: List[SeatModel],
        is_tie: bool,
        allocated_skins: Dict[str, List[PublicSkinModel]],
        session: AsyncSession,
    ) -> bool:
        """Store the outcome of a finished battle

        Args:
            battle (BattleModel): The battle with its complete roll log
            winners (List[SeatModel]): Winning seats
            is_tie (bool): The winner was picked at random among equal totals
            allocated_skins (Dict[str, List[PublicSkinModel]]): What every participant received
        """
        try:
            result = await session.execute(select(Battle).where(Battle.battle_id == battle.battle_id))
            result = result.scalars().first()
            if result is None:
                return False
            dumped = battle.model_dump(mode="json")
            result.state = battle.state.value
            result.seats = dumped["seats"]
            result.rolled_items = dumped["rolled_items"]
            result.current_case_index = battle.current_case_index
            result.winners = [winner.model_dump(mode="json") for winner in winners]
            result.is_tie = is_tie
            result.allocated_skins = {
                participant: [skin.model_dump(mode="json") for skin in skins]
                for participant, skins in allocated_skins.items()
            }
            result.finished_at = datetime.now()
            await session.flush()
            return True
        except SQLAlchemyError as e:
            logging.error(f"Failed to update finished battle: {e}")
            raise


class DeleteData:
    @staticmethod
    async def delete_inventory_items(item_ids: Sequence[UUID], session: AsyncSession):
        try:
            await session.execute(delete(InventoryItem).where(InventoryItem.item_id.in_(list(item_ids))))
        except SQLAlchemyError as e:
            logging.error(f"Failed to delete inventory items: {e}")
            raise

    @staticmethod
    async def delete_oldest_history(user_id: UUID, count: int, session: AsyncSession):
        """Delete the ``count`` oldest history entries of a user"""
        if count <= 0:
            return
        try:
            stmt = (
                select(InventoryHistory.history_id)
                .where(InventoryHistory.user_id == user_id)
                .order_by(InventoryHistory.sold_at, InventoryHistory.history_id)
                .limit(count)
            )
            result = await session.execute(stmt)
            oldest = list(result.scalars().all())
            await session.execute(delete(InventoryHistory).where(InventoryHistory.history_id.in_(oldest)))
        except SQLAlchemyError as e:
            logging.error(f"Failed to trim inventory history: {e}")
            raise
