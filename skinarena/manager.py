from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from typing import Dict, List, Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
import logging
import json


class ConnectionManager:
    """Push channel to the connected clients.

    Every socket receives the broadcasts. A socket that sent ``{"id": ...}``
    also receives the messages directed to that user. Broadcasts are also
    published on a redis channel for the SSE stream.
    """

    def __init__(self, redis: Optional[Redis] = None, channel: str = "skinarena:broadcast"):
        self.active_connections: List[WebSocket] = []
        self.user_connections: Dict[str, WebSocket] = {}
        self.redis: Optional[Redis] = redis
        self.channel: str = channel

    async def connect(self, websocket: WebSocket):
        """Accept a websocket and add it to the broadcast list

        Args:
            websocket (WebSocket): New client connection
        """
        await websocket.accept()
        self.active_connections.append(websocket)

    def register(self, websocket: WebSocket, user_id: str):
        """Bind a websocket to a user id for directed messages

        Args:
            websocket (WebSocket): Client connection
            user_id (str): The user that owns this connection
        """
        self.user_connections[str(user_id)] = websocket

    def disconnect(self, websocket: WebSocket):
        """Forget a websocket and every user id bound to it

        Args:
            websocket (WebSocket): Closed client connection
        """
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        for user_id, connection in list(self.user_connections.items()):
            if connection is websocket:
                del self.user_connections[user_id]

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        await websocket.send_json(jsonable_encoder(message))

    async def send_to(self, user_id, message: dict):
        """Send a message to one user. A user without a connection misses it."""
        websocket = self.user_connections.get(str(user_id))
        if websocket is None:
            logging.warning(f"No WebSocket found for user {user_id}.")
            return
        try:
            await self.send_personal_message(message, websocket)
        except Exception as e:
            logging.error(f"Error sending message to user {user_id}: {e}")
            self.disconnect(websocket)

    async def broadcast_all(self, message: dict):
        payload = jsonable_encoder(message)
        logging.debug(f"Broadcasting message: {payload}")
        for connection in list(self.active_connections):
            try:
                await connection.send_json(payload)
            except Exception as e:
                logging.error(f"WebSocket send error: {e}")
                self.disconnect(connection)
        if self.redis is not None:
            try:
                await self.redis.publish(self.channel, json.dumps(payload))
            except (RedisError, OSError) as e:
                logging.error(f"Redis publish error: {e}")

    async def receive_json(self, websocket: WebSocket):
        data = await websocket.receive_text()
        return json.loads(data)
