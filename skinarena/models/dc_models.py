from pydantic import BaseModel, Field
from enum import Enum
from decimal import Decimal
from datetime import datetime
from uuid import UUID
from typing import Optional, Dict, List


class ColorModel(str, Enum):
    red = "red"
    black = "black"
    green = "green"  # only number 0


class BattleModeModel(str, Enum):
    one_v_one = "1v1"
    one_v_one_v_one = "1v1v1"
    one_v_one_v_one_v_one = "1v1v1v1"
    two_v_two = "2v2"
    free_for_all_2 = "2"
    free_for_all_3 = "3"
    free_for_all_4 = "4"


class BattleTypeModel(str, Enum):
    standard = "Standard"  # highest drawn value wins
    crazy = "Crazy"  # lowest drawn value wins
    razem = "Razem"  # pooled, everybody gets an even share


class BattleVisibilityModel(str, Enum):
    public = "public"
    private = "private"


class BattleStateModel(str, Enum):
    created = "created"
    ready = "ready"
    rolling = "rolling"
    finished = "finished"


class CaseItemModel(BaseModel):
    name: str
    price: Decimal
    chance: Decimal
    rarity: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class PublicSkinModel(BaseModel):
    name: str
    price: Decimal
    rarity: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryItemModel(BaseModel):
    item_id: UUID
    user_id: UUID
    name: str
    price: Decimal
    rarity: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class PublicUserModel(BaseModel):
    id: UUID
    username: str
    role: str = "user"
    exp: Decimal = Decimal("0")
    level: int = 1
    profile_image: Optional[str] = None
    bot: bool = False


class PublicCaseModel(BaseModel):
    case_id: UUID
    name: str
    case_type: Optional[str] = None
    image: Optional[str] = None
    case_price: Decimal
    skins: List[CaseItemModel]


class SeatModel(BaseModel):
    """A filled battle seat. Humans carry only their id, bots carry their whole profile."""

    id: UUID
    bot: bool = False
    username: Optional[str] = None
    level: int = 1
    exp: Decimal = Decimal("0")
    profile_image: Optional[str] = None


class BattleModel(BaseModel):
    battle_id: UUID
    cases: List[UUID]
    battle_type: BattleTypeModel
    mode: BattleModeModel
    visibility: BattleVisibilityModel
    state: BattleStateModel = BattleStateModel.created
    battle_cost: Decimal
    seats: List[Optional[SeatModel]]
    rolled_items: List[List[Optional[PublicSkinModel]]] = []
    current_case_index: int = 0
    countdown: Optional[int] = None

    class Config:
        from_attributes = True


class BetModel(BaseModel):
    user_id: UUID
    color: ColorModel
    amount: Decimal
    username: str
    profile_image: Optional[str] = None
    level: int
    exp: Decimal


class BetRequestModel(BaseModel):
    user_id: UUID
    color: ColorModel
    amount: Decimal


class RoundSnapshotModel(BaseModel):
    current_number: int
    red_bets: List[BetModel]
    green_bets: List[BetModel]
    black_bets: List[BetModel]
    last_numbers: List[int]
    time_to_spin: int


class UploadCaseModel(BaseModel):
    name: str
    type: Optional[str] = None
    image: Optional[str] = None
    skins: List[CaseItemModel]


class OpenCaseModel(BaseModel):
    user_id: UUID
    num_cases: int = Field(default=1, ge=1)


class OpenCaseResultModel(BaseModel):
    success: bool = True
    skins: List[InventoryItemModel]
    new_balance: Decimal
    level: int
    exp: Decimal


class SellItemModel(BaseModel):
    item_id: UUID


class SellItemsModel(BaseModel):
    item_ids: List[UUID]


class SellResultModel(BaseModel):
    message: str
    new_balance: Decimal


class ProfileModel(BaseModel):
    id: UUID
    username: str
    balance: Decimal
    role: str
    exp: Decimal
    level: int
    profile_image: Optional[str] = None
    inventory: List[InventoryItemModel] = []


class CreateBattleModel(BaseModel):
    user_id: UUID
    cases: List[UUID]
    battle_type: BattleTypeModel
    visibility: BattleVisibilityModel = BattleVisibilityModel.public
    mode: BattleModeModel


class SeatRequestModel(BaseModel):
    user_id: UUID
    index: int


class BattleDetailModel(BaseModel):
    success: bool = True
    battle: BattleModel
    cases: List[PublicCaseModel] = []
    users: List[Optional[PublicUserModel]]
    source: str
    winners: Optional[List[Optional[PublicUserModel]]] = None
    is_tie: Optional[bool] = None
    allocated_skins: Optional[Dict[str, List[PublicSkinModel]]] = None
    finished_at: Optional[datetime] = None


class OperationResultModel(BaseModel):
    success: bool = True
    message: str
    path: Optional[str] = None


class BattleSummaryModel(BaseModel):
    battle: BattleModel
    users: List[Optional[PublicUserModel]]
