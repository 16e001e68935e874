from typing import Dict, Set
from fastapi import WebSocket
from prometheus_client import Gauge
import asyncio
import json
import logging
from . import core

logger = logging.getLogger(__name__)

WS_EVENTS_CHANNEL = 'ws_events'
PRESENCE_TTL = 60
LISTENER_RETRY_DELAY = 3  # seconds

ACTIVE_CONNECTIONS = Gauge('ws_active_connections', 'Open websocket sessions on this instance')

class RedisPubSubManager:
    """
    Live sessions per user. Deliveries go through Redis pub/sub when it is
    available so that the instance holding the receiver's socket picks them up.
    """

    def __init__(self):
        self.connections: Dict[str, Set[WebSocket]] = {}
        self.listening = False

    async def connect(self, user_id: str, websocket: WebSocket):
        await websocket.accept()
        self.connections.setdefault(user_id, set()).add(websocket)
        ACTIVE_CONNECTIONS.inc()
        if core.REDIS:
            await core.REDIS.set(f'presence:{user_id}', 'online', ex=PRESENCE_TTL)

    async def disconnect(self, user_id: str, websocket: WebSocket):
        sockets = self.connections.get(user_id, set())
        if websocket in sockets:
            sockets.discard(websocket)
            ACTIVE_CONNECTIONS.dec()
        if not sockets:
            self.connections.pop(user_id, None)
            if core.REDIS:
                await core.REDIS.delete(f'presence:{user_id}')

    async def send_to_user(self, user_id: str, destination: str, payload: dict):
        """Push payload to every session of user_id, on whichever instance holds it"""
        frame = {'destination': destination, 'body': payload}
        if core.REDIS:
            await core.REDIS.publish(WS_EVENTS_CHANNEL, json.dumps({'user_id': user_id, 'frame': frame}))
        else:
            await self.send_personal(user_id, frame)

    async def send_personal(self, user_id: str, frame: dict):
        for ws in list(self.connections.get(user_id, set())):
            try:
                await ws.send_json(frame)
            except Exception as e:
                logger.warning(f'Dropping websocket of user {user_id}: {e}')
                await self.disconnect(user_id, ws)

    # Redis pub/sub listener to route deliveries between app instances
    async def start_redis_listener(self, retry_delay: float = LISTENER_RETRY_DELAY):
        """Consume ws_events until stopped, resubscribing whenever the subscription breaks"""
        self.listening = True
        while self.listening and core.REDIS:
            try:
                await self._listen()
            except Exception:
                logger.exception(f'{WS_EVENTS_CHANNEL} listener failed, resubscribing in {retry_delay}s')
                await asyncio.sleep(retry_delay)
            else:
                if self.listening:
                    logger.warning(f'{WS_EVENTS_CHANNEL} subscription ended, resubscribing in {retry_delay}s')
                    await asyncio.sleep(retry_delay)
        logger.info(f'{WS_EVENTS_CHANNEL} listener stopped')

    def stop_redis_listener(self):
        self.listening = False

    async def _listen(self):
        pubsub = core.REDIS.pubsub()
        await pubsub.subscribe(WS_EVENTS_CHANNEL)
        try:
            async for item in pubsub.listen():
                if item and item.get('type') == 'message':
                    await self.route_event(item.get('data'))
        finally:
            await pubsub.aclose()

    async def route_event(self, data: str):
        try:
            event = json.loads(data)
            user_id, frame = event['user_id'], event['frame']
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f'Ignoring malformed {WS_EVENTS_CHANNEL} event: {e}')
            return
        await self.send_personal(user_id, frame)


manager = RedisPubSubManager()
