import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse

from skinarena.context import AppContext, get_context
from skinarena.redis_subscriber import RedisSubscriber

event_router = APIRouter()


class EventAPI:
    @staticmethod
    @event_router.get("/health")
    async def health():
        return "OK"

    @staticmethod
    @event_router.get("/stream")
    async def stream_events(context: AppContext = Depends(get_context)):
        """Relay every broadcast to the client as Server-Sent Events

        The current round snapshot is sent first.
        """
        if context.redis is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Event stream is not configured",
            )
        redis_subscriber = RedisSubscriber(context.roulette.fetch_round_snapshot)
        return StreamingResponse(
            redis_subscriber.event_generator(context.gateway.channel, context.redis),
            media_type="text/event-stream; charset=utf-8",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @staticmethod
    @event_router.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Push channel. A ``{"id": ...}`` message binds the socket to a user."""
        manager = websocket.app.state.context.gateway
        await manager.connect(websocket)
        try:
            while True:
                try:
                    data = await manager.receive_json(websocket)
                except ValueError as e:
                    logging.info(f"Malformed WebSocket message: {e}")
                    continue
                if isinstance(data, dict) and data.get("id"):
                    manager.register(websocket, data["id"])
                    logging.info(f"WebSocket registered for user {data['id']}")
        except WebSocketDisconnect:
            logging.info("WebSocket disconnected")
        finally:
            manager.disconnect(websocket)
