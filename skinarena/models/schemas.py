from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column, ForeignKey
from sqlalchemy.types import Boolean, Integer, Numeric, String, Uuid, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from uuid6 import uuid7
from datetime import datetime

# JSON documents are stored as JSONB on Postgres and plain JSON elsewhere (sqlite)
Document = JSON().with_variant(JSONB(), "postgresql")
Money = Numeric(12, 2)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    user_id = Column(Uuid, primary_key=True, default=uuid7)
    username = Column(String, nullable=False)
    role = Column(String, default="user")
    balance = Column(Money, default=0)
    exp = Column(Numeric(14, 2), default=0)
    level = Column(Integer, default=1)
    profile_image = Column(String, default="/defaultpfp.png")
    created_at = Column(DateTime, default=datetime.now)


class Skin(Base):
    """Catalog skin, used when converting a value into a bundle of items"""

    __tablename__ = "skins"
    skin_id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    price = Column(Money, nullable=False)
    rarity = Column(String)
    category = Column(String)
    image = Column(String)


class Case(Base):
    __tablename__ = "cases"
    case_id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    case_type = Column(String)
    image = Column(String)
    skins = Column(Document)  # [{name, price, chance, rarity, image}]
    case_price = Column(Money, nullable=False)
    created_at = Column(DateTime, default=datetime.now)


class InventoryItem(Base):
    __tablename__ = "inventory"
    item_id = Column(Uuid, primary_key=True, default=uuid7)
    user_id = Column(Uuid, ForeignKey("users.user_id"), index=True)
    name = Column(String, nullable=False)
    price = Column(Money, nullable=False)
    rarity = Column(String)
    image = Column(String)
    created_at = Column(DateTime, default=datetime.now)


class InventoryHistory(Base):
    __tablename__ = "inventory_history"
    history_id = Column(Uuid, primary_key=True, default=uuid7)
    item_id = Column(Uuid)
    user_id = Column(Uuid, ForeignKey("users.user_id"), index=True)
    name = Column(String, nullable=False)
    price = Column(Money, nullable=False)
    rarity = Column(String)
    image = Column(String)
    status = Column(String, default="sold")
    sold_at = Column(DateTime, default=datetime.now)


class Transaction(Base):
    __tablename__ = "transactions"
    transaction_id = Column(Uuid, primary_key=True, default=uuid7)
    user_id = Column(Uuid, ForeignKey("users.user_id"), index=True)
    amount = Column(Money, nullable=False)
    balance = Column(Money, nullable=False)
    action = Column(String)
    destination = Column(String)
    timestamp = Column(DateTime, default=datetime.now)


class Battle(Base):
    __tablename__ = "battles"
    battle_id = Column(Uuid, primary_key=True, default=uuid7)
    cases = Column(Document)  # ordered case ids, repeats allowed
    battle_type = Column(String)
    mode = Column(String)
    visibility = Column(String)
    state = Column(String, default="created")
    battle_cost = Column(Money, default=0)
    seats = Column(Document)
    rolled_items = Column(Document)
    current_case_index = Column(Integer, default=0)
    winners = Column(Document)
    is_tie = Column(Boolean, default=False)
    allocated_skins = Column(Document)
    created_at = Column(DateTime, default=datetime.now)
    finished_at = Column(DateTime, nullable=True)
