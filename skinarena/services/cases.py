import logging
from decimal import Decimal
from typing import List
from uuid import UUID

import numpy as np
from uuid6 import uuid7

from skinarena.converter import DataConverter
from skinarena.domain.errors import IntegrityError, NotFoundError, ValidationError
from skinarena.domain.rewards import case_price, draw, to_cents, validate_chances
from skinarena.manager import ConnectionManager
from skinarena.models.dc_models import (
    OpenCaseResultModel,
    ProfileModel,
    PublicCaseModel,
    SellResultModel,
    UploadCaseModel,
)
from skinarena.models.schema_models import CaseSchema
from skinarena.services.casino_db import CasinoStore


class CaseService:
    """Case catalog, case openings and the sale of inventory items."""

    def __init__(self, store: CasinoStore, gateway: ConnectionManager, rng: np.random.Generator):
        self.store = store
        self.gateway = gateway
        self.rng = rng
        self.data_converter = DataConverter()

    async def upload_case(self, request: UploadCaseModel) -> PublicCaseModel:
        """Validate the item chances, price the case and store it

        Args:
            request (UploadCaseModel): name, type, image and weighted skins

        Raises:
            ValidationError: a chance outside [0, 100] or a total other than 100

        Returns:
            PublicCaseModel: The stored case with its price
        """
        validate_chances(request.skins)
        case = CaseSchema(
            case_id=uuid7(),
            name=request.name,
            case_type=request.type,
            image=request.image,
            skins=request.skins,
            case_price=case_price(request.skins),
        )
        await self.store.create_case(case)
        logging.info(f"Case {case.name} uploaded at price {case.case_price}")
        return self.data_converter.convert_case_to_public(case)

    async def read_case(self, case_id: UUID) -> PublicCaseModel:
        case = await self.store.read_case(case_id)
        if case is None:
            raise NotFoundError("Case not found")
        return self.data_converter.convert_case_to_public(case)

    async def open_case(self, case_id: UUID, user_id: UUID, num_cases: int = 1) -> OpenCaseResultModel:
        """Open a case ``num_cases`` times.

        The items are drawn before anything is written, so a failed draw leaves
        the balance untouched.

        Args:
            case_id (UUID): The case to open
            user_id (UUID): The paying user
            num_cases (int): Number of openings, at least 1

        Raises:
            ValidationError: fewer than one opening or insufficient balance
            NotFoundError: unknown case or user
            IntegrityError: the draw selected nothing

        Returns:
            OpenCaseResultModel: Received items, new balance, level and exp
        """
        if num_cases < 1:
            raise ValidationError("Number of cases must be at least 1")
        case = await self.store.read_case(case_id)
        if case is None:
            raise NotFoundError("Case not found")
        user = await self.store.read_user(user_id)
        if user is None:
            raise NotFoundError("User not found")

        total_cost = to_cents(case.case_price * num_cases)
        if user.balance < total_cost:
            raise ValidationError("Insufficient balance")

        try:
            drawn = draw(case.skins, num_cases, self.rng)
        except IntegrityError:
            logging.error(f"Error selecting skin from case {case_id}")
            raise
        skins = [self.data_converter.convert_item_to_public(item) for item in drawn]

        updated, items = await self.store.open_case(user_id, case, skins, total_cost)
        logging.info(f"User {user_id} opened {case.name} x{num_cases}")
        await self.gateway.send_to(
            user_id,
            {
                "type": "updateBalance",
                "newBalance": updated.balance,
                "level": updated.level,
                "exp": updated.exp,
            },
        )
        return OpenCaseResultModel(
            skins=items,
            new_balance=updated.balance,
            level=updated.level,
            exp=updated.exp,
        )

    async def sell_item(self, user_id: UUID, item_id: UUID) -> SellResultModel:
        user, sold = await self.store.sell_items(user_id, [item_id])
        logging.info(f"User {user_id} sold {sold[0].name} for {sold[0].price}")
        return SellResultModel(message="Skin sold successfully", new_balance=user.balance)

    async def sell_items(self, user_id: UUID, item_ids: List[UUID]) -> SellResultModel:
        """Sell every listed item the user still owns. Unknown ids are skipped.

        Raises:
            NotFoundError: none of the items is owned by the user
        """
        if not item_ids:
            raise ValidationError("No items to sell")
        user, sold = await self.store.sell_items(user_id, item_ids)
        total = sum((item.price for item in sold), Decimal("0"))
        logging.info(f"User {user_id} sold {len(sold)} skins for {total}")
        return SellResultModel(
            message=f"{len(sold)} skins sold successfully", new_balance=user.balance
        )

    async def read_profile(self, user_id: UUID) -> ProfileModel:
        user = await self.store.read_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        inventory = await self.store.read_inventory(user_id)
        return self.data_converter.convert_user_to_profile(user, inventory)
