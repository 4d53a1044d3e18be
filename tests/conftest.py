from decimal import Decimal
from typing import List

import pytest
from uuid6 import uuid7

from skinarena.context import build_context
from skinarena.create_sqlite_engine import create_sqlite_engine
from skinarena.db import create_session_factory, create_tables
from skinarena.models.dc_models import CaseItemModel
from skinarena.models.schema_models import CaseSchema, SkinSchema, UserSchema
from skinarena.services.casino_db import CasinoStore
from tests.fakes import RecordingGateway, ScriptedRng, VirtualScheduler


@pytest.fixture
async def engine():
    engine = create_sqlite_engine("sqlite+aiosqlite://")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return CasinoStore(create_session_factory(engine))


@pytest.fixture
def gateway(scheduler):
    return RecordingGateway(scheduler)


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def rng():
    return ScriptedRng()


@pytest.fixture
def context(store, gateway, scheduler, rng):
    return build_context(store, gateway, scheduler, rng)


@pytest.fixture
def make_user(store):
    async def _make_user(balance="100.00", username="player", level=1, exp="0") -> UserSchema:
        user = UserSchema(
            user_id=uuid7(),
            username=username,
            balance=Decimal(balance),
            level=level,
            exp=Decimal(exp),
        )
        await store.create_user(user)
        return user

    return _make_user


def items(*entries) -> List[CaseItemModel]:
    """(name, price, chance) tuples to case items"""
    return [
        CaseItemModel(name=name, price=Decimal(price), chance=Decimal(chance), rarity="Mil-Spec")
        for name, price, chance in entries
    ]


@pytest.fixture
def make_case(store):
    async def _make_case(skins: List[CaseItemModel], price="5.00", name="Test case") -> CaseSchema:
        case = CaseSchema(
            case_id=uuid7(), name=name, case_type="standard", skins=skins, case_price=Decimal(price)
        )
        await store.create_case(case)
        return case

    return _make_case


@pytest.fixture
async def catalog(store):
    skins = [
        SkinSchema(skin_id=uuid7(), name="AK-47 | Redline", price=Decimal("8.00"), rarity="Classified"),
        SkinSchema(skin_id=uuid7(), name="P250 | Sand Dune", price=Decimal("0.05"), rarity="Consumer"),
        SkinSchema(skin_id=uuid7(), name="Glock-18 | Fade", price=Decimal("3.00"), rarity="Restricted"),
    ]
    for skin in skins:
        await store.create_skin(skin)
    return skins
