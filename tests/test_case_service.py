from decimal import Decimal
from uuid import uuid4

import pytest

from skinarena.domain.errors import IntegrityError, NotFoundError, ValidationError
from skinarena.models.dc_models import UploadCaseModel
from tests.conftest import items
from tests.fakes import ScriptedRng


@pytest.fixture
def rng():
    return ScriptedRng(randoms=[0.1, 0.9, 0.1])


def upload(*entries):
    return UploadCaseModel(name="Dreams", type="standard", image="/dreams.png", skins=items(*entries))


@pytest.mark.parametrize("chance", ["49.99", "50.01"])
async def test_upload_rejects_chances_not_summing_to_100(context, chance):
    with pytest.raises(ValidationError):
        await context.cases.upload_case(upload(("A", "1.00", "50"), ("B", "3.00", chance)))


async def test_upload_prices_and_stores_the_case(context):
    case = await context.cases.upload_case(upload(("A", "1.00", "50"), ("B", "3.00", "50")))

    assert case.case_price == Decimal("2.30")
    stored = await context.cases.read_case(case.case_id)
    assert [skin.name for skin in stored.skins] == ["A", "B"]
    assert stored.skins[1].chance == Decimal("50")


async def test_read_unknown_case(context):
    with pytest.raises(NotFoundError):
        await context.cases.read_case(uuid4())


async def test_open_case_charges_and_fills_the_inventory(context, store, make_user, make_case):
    user = await make_user("20.00")
    case = await make_case(items(("Cheap", "1.00", "50"), ("Knife", "30.00", "50")), price="4.00")

    result = await context.cases.open_case(case.case_id, user.user_id, 3)

    assert [skin.name for skin in result.skins] == ["Cheap", "Knife", "Cheap"]
    assert result.new_balance == Decimal("8.00")
    assert result.exp == Decimal("12.00")
    inventory = await store.read_inventory(user.user_id)
    assert sorted(item.name for item in inventory) == ["Cheap", "Cheap", "Knife"]


async def test_open_case_with_insufficient_balance(context, store, make_user, make_case):
    user = await make_user("7.99")
    case = await make_case(items(("A", "1.00", "100")), price="4.00")

    with pytest.raises(ValidationError):
        await context.cases.open_case(case.case_id, user.user_id, 2)
    assert (await store.read_user(user.user_id)).balance == Decimal("7.99")


async def test_failed_draw_commits_nothing(context, store, make_user, make_case):
    user = await make_user("10.00")
    case = await make_case(items(("Ghost", "1.00", "0")), price="1.00")

    with pytest.raises(IntegrityError):
        await context.cases.open_case(case.case_id, user.user_id)
    assert (await store.read_user(user.user_id)).balance == Decimal("10.00")
    assert await store.read_inventory(user.user_id) == []


async def test_sell_item_credits_its_price(context, store, make_user, make_case):
    user = await make_user("4.00")
    case = await make_case(items(("Knife", "30.00", "100")), price="4.00")
    opened = await context.cases.open_case(case.case_id, user.user_id)

    result = await context.cases.sell_item(user.user_id, opened.skins[0].item_id)

    assert result.new_balance == Decimal("30.00")
    assert await store.read_inventory(user.user_id) == []
    with pytest.raises(NotFoundError):
        await context.cases.sell_item(user.user_id, opened.skins[0].item_id)


async def test_sell_items_skips_items_of_other_users(context, store, make_user, make_case):
    owner = await make_user("8.00")
    other = await make_user("4.00", username="other")
    case = await make_case(items(("Gloves", "5.00", "100")), price="4.00")
    mine = await context.cases.open_case(case.case_id, owner.user_id, 2)
    theirs = await context.cases.open_case(case.case_id, other.user_id)

    item_ids = [item.item_id for item in mine.skins] + [theirs.skins[0].item_id]
    result = await context.cases.sell_items(owner.user_id, item_ids)

    assert result.new_balance == Decimal("10.00")
    assert len(await store.read_inventory(other.user_id)) == 1


async def test_profile_lists_the_inventory(context, make_user, make_case):
    user = await make_user("4.00", username="collector")
    case = await make_case(items(("Knife", "30.00", "100")), price="4.00")
    await context.cases.open_case(case.case_id, user.user_id)

    profile = await context.cases.read_profile(user.user_id)
    assert profile.username == "collector"
    assert profile.balance == Decimal("0.00")
    assert [item.name for item in profile.inventory] == ["Knife"]
