import json
import logging
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

from fastapi import WebSocketDisconnect
from redis.exceptions import ConnectionError as RedisConnectionError

from skinarena.manager import ConnectionManager
from skinarena.redis_subscriber import RedisSubscriber
from skinarena.routers.events import EventAPI


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.messages = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        self.messages.append(data)


class FakeRedis:
    def __init__(self):
        self.published = []

    async def publish(self, channel, message):
        self.published.append((channel, message))


async def test_broadcast_reaches_every_socket_and_the_channel():
    redis = FakeRedis()
    manager = ConnectionManager(redis, "arena")
    first, second = FakeWebSocket(), FakeWebSocket()
    await manager.connect(first)
    await manager.connect(second)

    await manager.broadcast_all({"type": "updateBets", "bets": [], "total": Decimal("1.50")})

    assert first.accepted and second.accepted
    assert first.messages == second.messages == [{"type": "updateBets", "bets": [], "total": 1.5}]
    channel, payload = redis.published[0]
    assert channel == "arena"
    assert json.loads(payload)["type"] == "updateBets"


async def test_send_to_only_reaches_the_registered_user():
    manager = ConnectionManager()
    mine, other = FakeWebSocket(), FakeWebSocket()
    user_id = uuid4()
    await manager.connect(mine)
    await manager.connect(other)
    manager.register(mine, str(user_id))

    await manager.send_to(user_id, {"type": "updateBalance", "newBalance": Decimal("3.00")})

    assert mine.messages == [{"type": "updateBalance", "newBalance": 3.0}]
    assert other.messages == []


async def test_send_to_a_disconnected_user_is_dropped(caplog):
    manager = ConnectionManager()
    with caplog.at_level(logging.WARNING):
        await manager.send_to(uuid4(), {"type": "updateBalance"})
    assert "No WebSocket found" in caplog.text


async def test_failing_socket_is_disconnected():
    manager = ConnectionManager()
    broken = FakeWebSocket(fail=True)
    await manager.connect(broken)
    manager.register(broken, "someone")

    await manager.broadcast_all({"timeRemaining": 3})

    assert manager.active_connections == []
    assert manager.user_connections == {}


def test_sse_event_names():
    assert RedisSubscriber.event_name({"action": "rollItems"}) == "rollItems"
    assert RedisSubscriber.event_name({"type": "updateBets"}) == "updateBets"
    assert RedisSubscriber.event_name({"timeRemaining": 4}) == "round"


async def test_failed_redis_publish_is_logged_not_raised(caplog):
    class FailingRedis:
        async def publish(self, channel, message):
            raise RedisConnectionError("redis down")

    manager = ConnectionManager(FailingRedis())
    socket = FakeWebSocket()
    await manager.connect(socket)

    with caplog.at_level(logging.ERROR):
        await manager.broadcast_all({"timeRemaining": 3})

    assert socket.messages == [{"timeRemaining": 3}]
    assert "redis down" in caplog.text


class ScriptedWebSocket(FakeWebSocket):
    """Socket that delivers queued text frames, then disconnects"""

    def __init__(self, manager, frames):
        super().__init__()
        self.frames = list(frames)
        self.app = SimpleNamespace(state=SimpleNamespace(context=SimpleNamespace(gateway=manager)))

    async def receive_text(self):
        if not self.frames:
            raise WebSocketDisconnect()
        return self.frames.pop(0)


class RecordingManager(ConnectionManager):
    def __init__(self):
        super().__init__()
        self.registered = []

    def register(self, websocket, user_id):
        self.registered.append(user_id)
        super().register(websocket, user_id)


async def test_malformed_websocket_message_keeps_the_connection():
    manager = RecordingManager()
    socket = ScriptedWebSocket(manager, ["not json", json.dumps({"id": "user-1"})])

    await EventAPI.websocket_endpoint(socket)

    assert socket.frames == []
    assert manager.registered == ["user-1"]
    assert manager.active_connections == []
