from pydantic import BaseModel
from typing import Optional, Dict, List
from decimal import Decimal
from uuid import UUID
from datetime import datetime

from skinarena.models.dc_models import (
    BattleModel,
    CaseItemModel,
    PublicSkinModel,
    SeatModel,
)


class UserSchema(BaseModel):
    user_id: UUID
    username: str
    role: str = "user"
    balance: Decimal = Decimal("0.00")
    exp: Decimal = Decimal("0")
    level: int = 1
    profile_image: Optional[str] = "/defaultpfp.png"

    class Config:
        from_attributes = True


class SkinSchema(BaseModel):
    skin_id: UUID
    name: str
    price: Decimal
    rarity: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class CaseSchema(BaseModel):
    case_id: UUID
    name: str
    case_type: Optional[str] = None
    image: Optional[str] = None
    skins: List[CaseItemModel]
    case_price: Decimal

    class Config:
        from_attributes = True


class TransactionSchema(BaseModel):
    transaction_id: UUID
    user_id: UUID
    amount: Decimal
    balance: Decimal
    action: str
    destination: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class BattleSchema(BattleModel):
    """Persisted battle, including the settlement written when it finishes"""

    winners: Optional[List[SeatModel]] = None
    is_tie: bool = False
    allocated_skins: Optional[Dict[str, List[PublicSkinModel]]] = None
    created_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    class Config:
        from_attributes = True
