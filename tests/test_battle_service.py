from decimal import Decimal
from uuid import uuid4

import pytest

from skinarena.domain.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from skinarena.models.dc_models import BattleStateModel, CreateBattleModel
from tests.conftest import items

HIGH = 0.1  # draws "High" from a 50/50 case
LOW = 0.9  # draws "Low"


@pytest.fixture
async def cases(make_case):
    first = await make_case(items(("High", "9.00", "50"), ("Low", "1.00", "50")), price="6.00")
    second = await make_case(items(("High", "9.00", "50"), ("Low", "1.00", "50")), price="4.00")
    return [first.case_id, second.case_id]


def request(user_id, cases, battle_type="Standard", mode="1v1"):
    return CreateBattleModel(user_id=user_id, cases=cases, battle_type=battle_type, mode=mode)


async def test_create_battle_charges_the_creator(context, store, gateway, make_user, cases):
    creator = await make_user("25.00")

    battle = await context.battles.create_battle(request(creator.user_id, cases))

    assert battle.battle_cost == Decimal("10.00")
    assert battle.seats[0].id == creator.user_id
    assert battle.seats[1] is None
    assert (await store.read_user(creator.user_id)).balance == Decimal("15.00")
    assert gateway.actions() == ["newBattle"]
    assert (await store.read_battle(battle.battle_id)).state == BattleStateModel.created


async def test_repeated_cases_are_paid_for_each_time(context, make_user, cases):
    creator = await make_user("25.00")
    battle = await context.battles.create_battle(request(creator.user_id, [cases[1]] * 3))
    assert battle.battle_cost == Decimal("12.00")


async def test_creation_cooldown(context, scheduler, make_user, cases):
    creator = await make_user("100.00")
    await context.battles.create_battle(request(creator.user_id, cases))

    with pytest.raises(RateLimitError):
        await context.battles.create_battle(request(creator.user_id, cases))

    await scheduler.advance(5)
    await context.battles.create_battle(request(creator.user_id, cases))
    assert len(context.registry.active()) == 2


async def test_create_with_unknown_case(context, make_user, cases):
    creator = await make_user("100.00")
    with pytest.raises(NotFoundError):
        await context.battles.create_battle(request(creator.user_id, cases + [uuid4()]))


async def test_create_without_enough_balance(context, store, make_user, cases):
    creator = await make_user("9.99")
    with pytest.raises(ValidationError):
        await context.battles.create_battle(request(creator.user_id, cases))
    assert context.registry.active() == []
    assert (await store.read_user(creator.user_id)).balance == Decimal("9.99")


async def test_seat_checks(context, make_user, cases):
    creator = await make_user("100.00")
    joiner = await make_user("100.00", username="joiner")
    battle = await context.battles.create_battle(request(creator.user_id, cases, mode="1v1v1"))

    with pytest.raises(ValidationError):
        await context.battles.join_battle(battle.battle_id, joiner.user_id, 3)
    with pytest.raises(ConflictError):
        await context.battles.join_battle(battle.battle_id, joiner.user_id, 0)
    with pytest.raises(ConflictError):
        await context.battles.join_battle(battle.battle_id, creator.user_id, 1)
    with pytest.raises(ForbiddenError):
        await context.battles.add_bot(battle.battle_id, joiner.user_id, 1)
    with pytest.raises(NotFoundError):
        await context.battles.join_battle(uuid4(), joiner.user_id, 1)

    await context.battles.join_battle(battle.battle_id, joiner.user_id, 2)
    assert battle.seats[2].id == joiner.user_id
    assert battle.state == BattleStateModel.created


async def test_failed_join_frees_the_seat(context, make_user, cases):
    creator = await make_user("100.00")
    poor = await make_user("1.00", username="poor")
    battle = await context.battles.create_battle(request(creator.user_id, cases))

    with pytest.raises(ValidationError):
        await context.battles.join_battle(battle.battle_id, poor.user_id, 1)
    assert battle.seats[1] is None


async def test_one_v_one_against_a_bot(context, store, gateway, scheduler, rng, make_user, cases, catalog):
    creator = await make_user("20.00")
    rng.ints.append(0)
    rng.randoms.extend([HIGH, LOW, HIGH, LOW])
    battle = await context.battles.create_battle(request(creator.user_id, cases))

    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)
    bot = battle.seats[1]
    assert bot.bot and bot.username == "Skibidi"
    assert bot.profile_image == "/bots/botSkibidi.png"

    await scheduler.run_all()

    assert gateway.actions() == [
        "newBattle",
        "updateBattle",
        "countdown",
        "countdown",
        "countdown",
        "rollItems",
        "rollItems",
        "battleEnded",
    ]
    ended = gateway.last("battleEnded")
    assert ended["isTie"] is False
    assert [winner["id"] for winner in ended["winners"]] == [str(creator.user_id)]
    assert [skin["name"] for skin in ended["allocatedSkins"][str(creator.user_id)]] == ["High", "High"]
    assert sum(skin["price"] for skin in ended["allocatedSkins"][str(bot.id)]) == pytest.approx(0.10)

    inventory = await store.read_inventory(creator.user_id)
    assert sorted(item.name for item in inventory) == ["High", "High"]
    assert context.registry.active() == []

    stored = await context.battles.read_battle(battle.battle_id)
    assert stored.source == "database"
    assert stored.battle.state == BattleStateModel.finished
    assert stored.winners[0].id == creator.user_id
    assert len(stored.battle.rolled_items) == 2


async def test_loser_receives_a_consolation_bundle(context, store, scheduler, rng, make_user, cases, catalog):
    creator = await make_user("10.00", username="creator")
    joiner = await make_user("10.00", username="joiner")
    rng.randoms.extend([LOW, HIGH, LOW, HIGH])
    battle = await context.battles.create_battle(request(creator.user_id, cases))

    await context.battles.join_battle(battle.battle_id, joiner.user_id, 1)
    assert battle.state == BattleStateModel.ready
    await scheduler.run_all()

    assert battle.state == BattleStateModel.finished
    creator_items = await store.read_inventory(creator.user_id)
    assert sorted(item.price for item in creator_items) == [Decimal("0.05"), Decimal("0.05")]
    joiner_items = await store.read_inventory(joiner.user_id)
    assert sorted(item.name for item in joiner_items) == ["High", "High"]
    assert (await store.read_user(joiner.user_id)).balance == Decimal("0.00")


async def test_razem_pays_everyone_an_even_share(context, store, scheduler, rng, make_user, cases, catalog):
    creator = await make_user("10.00")
    rng.ints.append(1)
    rng.randoms.extend([HIGH, LOW, HIGH, LOW])
    battle = await context.battles.create_battle(request(creator.user_id, cases, battle_type="Razem"))
    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)

    await scheduler.run_all()

    # 10.00 share: 8.00 + nine 0.05 skins, the remaining 1.55 as balance
    inventory = await store.read_inventory(creator.user_id)
    assert len(inventory) == 10
    assert sum(item.price for item in inventory) == Decimal("8.45")
    assert (await store.read_user(creator.user_id)).balance == Decimal("1.55")


async def test_joining_a_full_battle_is_rejected(context, make_user, cases):
    creator = await make_user("100.00")
    late = await make_user("100.00", username="late")
    battle = await context.battles.create_battle(request(creator.user_id, cases))
    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)

    with pytest.raises(ConflictError):
        await context.battles.join_battle(battle.battle_id, late.user_id, 1)


async def test_never_rolls_with_an_empty_seat(context, store, gateway, scheduler, make_user, cases):
    creator = await make_user("100.00")
    battle = await context.battles.create_battle(request(creator.user_id, cases))
    battle.state = BattleStateModel.ready

    await context.battles.run_battle(battle)
    await scheduler.run_all()

    assert battle.state != BattleStateModel.rolling
    assert battle.rolled_items == []
    assert context.registry.active() == []
    assert gateway.actions()[-1] == "battleAborted"
    assert (await store.read_user(creator.user_id)).balance == Decimal("100.00")


async def test_list_and_read_active_battles(context, make_user, cases):
    creator = await make_user("100.00", username="host")
    battle = await context.battles.create_battle(request(creator.user_id, cases, mode="2v2"))

    summaries = await context.battles.list_battles()
    assert len(summaries) == 1
    assert summaries[0].users[0].username == "host"
    assert summaries[0].users[1:] == [None, None, None]

    detail = await context.battles.read_battle(battle.battle_id)
    assert detail.source == "server"
    assert [case.case_id for case in detail.cases] == cases


async def test_purge_drops_expired_cooldowns(context, scheduler, make_user, cases):
    creator = await make_user("100.00")
    await context.battles.create_battle(request(creator.user_id, cases))
    await scheduler.advance(60)
    await context.battles.purge_cooldowns()
    assert context.registry.last_creation == {}


async def test_countdown_and_roll_timing(context, gateway, scheduler, rng, make_user, make_case, catalog):
    creator = await make_user("30.00")
    case = await make_case(items(("High", "9.00", "50"), ("Low", "1.00", "50")), price="3.00")
    rng.randoms.extend([HIGH, LOW] * 3)
    battle = await context.battles.create_battle(request(creator.user_id, [case.case_id] * 3))
    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)

    assert gateway.timeline()[-1] == (0, "countdown")
    assert gateway.last("countdown")["battle"]["countdown"] == 3
    await scheduler.advance(1)
    assert gateway.last("countdown")["battle"]["countdown"] == 2
    await scheduler.advance(1)
    assert gateway.last("countdown")["battle"]["countdown"] == 1
    await scheduler.advance(1)
    assert battle.state == BattleStateModel.rolling
    assert len(battle.rolled_items) == 1

    await scheduler.advance(2.9)
    assert len(battle.rolled_items) == 1
    await scheduler.advance(6.1)

    assert gateway.timeline() == [
        (0, "newBattle"),
        (0, "updateBattle"),
        (0, "countdown"),
        (1, "countdown"),
        (2, "countdown"),
        (3, "rollItems"),
        (6, "rollItems"),
        (9, "rollItems"),
        (9, "battleEnded"),
    ]
    assert scheduler.pending() == 0


async def test_failed_settlement_evicts_and_refunds(
    context, store, gateway, scheduler, rng, make_user, cases, catalog, monkeypatch
):
    async def broken_finish(*args):
        raise RuntimeError("database gone")

    creator = await make_user("20.00")
    rng.randoms.extend([HIGH, LOW, HIGH, LOW])
    battle = await context.battles.create_battle(request(creator.user_id, cases))
    monkeypatch.setattr(store, "finish_battle", broken_finish)

    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)
    await scheduler.run_all()

    assert context.registry.active() == []
    assert await context.battles.list_battles() == []
    assert context.battles.case_cache == {}
    assert gateway.actions()[-1] == "battleAborted"
    assert "battleEnded" not in gateway.actions()
    assert (await store.read_user(creator.user_id)).balance == Decimal("20.00")
    assert await store.read_inventory(creator.user_id) == []


async def test_failed_case_load_aborts_before_the_countdown(
    context, store, gateway, make_user, cases, monkeypatch
):
    async def broken_read_cases(case_ids):
        raise RuntimeError("database gone")

    creator = await make_user("20.00")
    battle = await context.battles.create_battle(request(creator.user_id, cases))
    monkeypatch.setattr(store, "read_cases", broken_read_cases)

    await context.battles.add_bot(battle.battle_id, creator.user_id, 1)

    assert context.registry.active() == []
    assert "countdown" not in gateway.actions()
    assert gateway.actions()[-1] == "battleAborted"
    assert (await store.read_user(creator.user_id)).balance == Decimal("20.00")


async def test_two_v_two_pays_the_winning_team(
    context, store, gateway, scheduler, rng, make_user, cases, catalog
):
    creator = await make_user("20.00", username="creator")
    joiner = await make_user("20.00", username="joiner")
    rng.ints.extend([0, 0])
    # seats 0 and 2 draw High, seats 1 and 3 draw Low
    rng.randoms.extend([HIGH, LOW, HIGH, LOW])
    battle = await context.battles.create_battle(request(creator.user_id, [cases[1]], mode="2v2"))
    await context.battles.join_battle(battle.battle_id, joiner.user_id, 1)
    await context.battles.add_bot(battle.battle_id, creator.user_id, 2)
    await context.battles.add_bot(battle.battle_id, creator.user_id, 3)

    await scheduler.run_all()

    ended = gateway.last("battleEnded")
    assert ended["isTie"] is False
    assert [winner["id"] for winner in ended["winners"]] == [str(creator.user_id), str(battle.seats[2].id)]

    # pool 20.00, 10.00 per winner: 8.00 + nine 0.05 skins and 1.55 balance
    creator_items = await store.read_inventory(creator.user_id)
    assert len(creator_items) == 10
    assert sum(item.price for item in creator_items) == Decimal("8.45")
    assert (await store.read_user(creator.user_id)).balance == Decimal("17.55")

    # 1% of 4.00 is below the cheapest skin, which is handed out instead
    joiner_items = await store.read_inventory(joiner.user_id)
    assert [item.price for item in joiner_items] == [Decimal("0.05")]
    assert (await store.read_user(joiner.user_id)).balance == Decimal("16.00")


async def test_crazy_lowest_total_keeps_its_items(
    context, store, gateway, scheduler, rng, make_user, cases, catalog
):
    creator = await make_user("10.00", username="creator")
    joiner = await make_user("10.00", username="joiner")
    rng.randoms.extend([LOW, HIGH, LOW, HIGH])
    battle = await context.battles.create_battle(request(creator.user_id, cases, battle_type="Crazy"))
    await context.battles.join_battle(battle.battle_id, joiner.user_id, 1)

    await scheduler.run_all()

    ended = gateway.last("battleEnded")
    assert [winner["id"] for winner in ended["winners"]] == [str(creator.user_id)]
    assert sorted(item.name for item in await store.read_inventory(creator.user_id)) == ["Low", "Low"]
    joiner_items = await store.read_inventory(joiner.user_id)
    assert sorted(item.price for item in joiner_items) == [Decimal("0.05"), Decimal("0.05")]
