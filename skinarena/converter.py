from typing import Dict, List, Optional
from uuid import UUID

from skinarena.models.dc_models import (
    CaseItemModel,
    InventoryItemModel,
    ProfileModel,
    PublicCaseModel,
    PublicSkinModel,
    PublicUserModel,
    SeatModel,
)
from skinarena.models.schema_models import CaseSchema, UserSchema


class DataConverter:
    """Build the public views sent to clients.

    Balances never leave the server except in a user's own profile.
    """

    def convert_user_to_public(self, user: UserSchema) -> PublicUserModel:
        """Convert a stored user to the view other participants may see

        Args:
            user (UserSchema): The stored user
        Returns:
            PublicUserModel: id, username, role, exp, level and image
        """
        return PublicUserModel(
            id=user.user_id,
            username=user.username,
            role=user.role,
            exp=user.exp,
            level=user.level,
            profile_image=user.profile_image,
            bot=False,
        )

    def convert_seat_to_public(
        self, seat: Optional[SeatModel], users: Dict[UUID, UserSchema]
    ) -> Optional[PublicUserModel]:
        """Convert a battle seat using the users loaded for the battle

        Args:
            seat (Optional[SeatModel]): Empty, human or bot seat
            users (Dict[UUID, UserSchema]): Human participants by id

        Returns:
            Optional[PublicUserModel]: None for an empty seat or an unknown user
        """
        if seat is None:
            return None
        if seat.bot:
            return PublicUserModel(
                id=seat.id,
                username=seat.username or "",
                role="bot",
                exp=seat.exp,
                level=seat.level,
                profile_image=seat.profile_image,
                bot=True,
            )
        user = users.get(seat.id)
        return self.convert_user_to_public(user) if user is not None else None

    def convert_seats_to_public(
        self, seats: List[Optional[SeatModel]], users: Dict[UUID, UserSchema]
    ) -> List[Optional[PublicUserModel]]:
        return [self.convert_seat_to_public(seat, users) for seat in seats]

    def convert_item_to_public(self, item: CaseItemModel) -> PublicSkinModel:
        return PublicSkinModel(name=item.name, price=item.price, rarity=item.rarity, image=item.image)

    def convert_case_to_public(self, case: CaseSchema) -> PublicCaseModel:
        return PublicCaseModel(
            case_id=case.case_id,
            name=case.name,
            case_type=case.case_type,
            image=case.image,
            case_price=case.case_price,
            skins=case.skins,
        )

    def convert_user_to_profile(
        self, user: UserSchema, inventory: List[InventoryItemModel]
    ) -> ProfileModel:
        return ProfileModel(
            id=user.user_id,
            username=user.username,
            balance=user.balance,
            role=user.role,
            exp=user.exp,
            level=user.level,
            profile_image=user.profile_image,
            inventory=inventory,
        )
