"""
FastAPI WebSocket server for the Canadian Salad game.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional, Tuple

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..constants import STATUS_FINISHED
from ..engine import SaladEngine
from ..errors import ActionResult, GameError
from ..models import RoomState
from ..persistence import StatePersistence
from ..rules import RuleConfig, rules_from_env
from ..serialization import game_over_view, view_for
from .events import (
    ErrorCode, JoinEvent, NextRoundEvent, PlayEvent, RequestStateEvent,
    StartEvent, create_error_event, create_game_over_event,
    create_join_success_event, create_players_removed_event,
    create_state_full_event, parse_inbound_event,
)

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Maps live WebSocket connections to the room seat they occupy."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.seats: Dict[str, Tuple[str, str]] = {}  # connection id -> (room code, player id)

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.active_connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} opened")
        return connection_id

    def disconnect(self, connection_id: str) -> Optional[Tuple[str, str]]:
        self.active_connections.pop(connection_id, None)
        seat = self.seats.pop(connection_id, None)
        logger.info(f"Connection {connection_id} closed")
        return seat

    def seat(self, connection_id: str, room_code: str, player_id: str):
        self.seats[connection_id] = (room_code, player_id)

    def release_seat(self, room_code: str, player_id: str, keep: str):
        """Forget every other connection still mapped to this seat."""
        for connection_id, seat in list(self.seats.items()):
            if seat == (room_code, player_id) and connection_id != keep:
                del self.seats[connection_id]

    def seat_of(self, connection_id: str) -> Optional[Tuple[str, str]]:
        return self.seats.get(connection_id)

    async def send(self, connection_id: Optional[str], event: BaseModel):
        websocket = self.active_connections.get(connection_id) if connection_id else None
        if websocket is None:
            return
        try:
            await websocket.send_text(event.model_dump_json())
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.error(f"Error sending to {connection_id}: {e}")
            self.active_connections.pop(connection_id, None)


class GameServer:
    def __init__(self, rules: RuleConfig):
        self.rules = rules
        self.engine = SaladEngine(rules)
        self.persistence = StatePersistence(rules.snapshot_dir, rules.snapshot_keep)
        self.connections = ConnectionManager()
        self.started_at = time.time()
        self._tasks = []

    # Broadcasting

    async def broadcast_state(self, room: RoomState):
        """Push each connected player their own projection of the room."""
        for player in list(room.players):
            if player.connected:
                await self.connections.send(
                    player.connection_id, create_state_full_event(view_for(room, player.id))
                )

    async def broadcast(self, room: RoomState, event: BaseModel):
        for player in list(room.players):
            if player.connected:
                await self.connections.send(player.connection_id, event)

    async def send_error(self, connection_id: str, code: ErrorCode, message: str):
        await self.connections.send(connection_id, create_error_event(code, message))

    async def send_result_error(self, connection_id: str, result: ActionResult):
        await self.send_error(connection_id, ErrorCode(result.error_code), result.error_message)

    # Event handlers

    async def handle_event(self, connection_id: str, event):
        if isinstance(event, JoinEvent):
            await self.handle_join(connection_id, event)
            return

        seat = self.connections.seat_of(connection_id)
        if seat is None:
            await self.send_error(connection_id, ErrorCode.NOT_IN_ROOM, "Not in a room")
            return
        room_code, player_id = seat

        if isinstance(event, StartEvent):
            result = self.engine.start_game(room_code, requested_by=player_id)
        elif isinstance(event, PlayEvent):
            result = self.engine.play_card(room_code, player_id, event.card)
        elif isinstance(event, NextRoundEvent):
            result = self.engine.advance_round(room_code)
        elif isinstance(event, RequestStateEvent):
            room = self.engine.get_room(room_code)
            if room is None:
                await self.send_error(connection_id, ErrorCode.ROOM_NOT_FOUND, "Room not found")
                return
            await self.connections.send(connection_id, create_state_full_event(view_for(room, player_id)))
            return
        else:
            raise ValueError(f"Unhandled event type: {type(event)}")

        if not result.success:
            await self.send_result_error(connection_id, result)
            return

        await self.broadcast_state(result.state)
        if isinstance(event, NextRoundEvent) and result.state.status == STATUS_FINISHED:
            await self.broadcast(result.state, create_game_over_event(game_over_view(result.state)))

    async def handle_join(self, connection_id: str, event: JoinEvent):
        if event.room_code is None:
            room = self.engine.create_room(connection_id, event.name)
        elif event.player_id:
            result = self.engine.reconnect(
                event.room_code, event.player_id, connection_id, event.reconnect_token
            )
            if not result.success:
                await self.send_result_error(connection_id, result)
                return
            room = result.state
        else:
            result = self.engine.join_room(event.room_code, connection_id, event.name)
            if not result.success:
                await self.send_result_error(connection_id, result)
                return
            room = result.state

        player = room.find_by_connection(connection_id)
        self.connections.release_seat(room.id, player.id, keep=connection_id)
        self.connections.seat(connection_id, room.id, player.id)
        await self.connections.send(
            connection_id, create_join_success_event(room.id, player.id, player.reconnect_token)
        )
        await self.broadcast_state(room)

    async def handle_disconnect(self, connection_id: str):
        seat = self.connections.disconnect(connection_id)
        if seat is None:
            return
        room_code, player_id = seat
        room = self.engine.get_room(room_code)
        player = room.get_player(player_id) if room else None
        # A newer connection already took over this seat
        if player is None or player.connection_id != connection_id:
            return

        self.engine.connection_changed(room_code, player_id, False)
        await self.broadcast_state(room)
        self._spawn(self._expire_after_grace(room_code))

    async def _expire_after_grace(self, room_code: str):
        await asyncio.sleep(self.rules.disconnect_grace + 1)
        await self.expire_room(room_code)

    async def expire_room(self, room_code: str):
        room = self.engine.get_room(room_code)
        if room is None:
            return
        was_finished = room.status == STATUS_FINISHED
        removed = self.engine.expire_disconnected(room_code)
        if not removed:
            return
        if not room.players:
            self.engine.delete_room(room_code)
            return
        await self.broadcast_state(room)
        await self.broadcast(room, create_players_removed_event(removed))
        if not was_finished and room.status == STATUS_FINISHED:
            await self.broadcast(room, create_game_over_event(game_over_view(room)))

    # Background housekeeping

    def _spawn(self, coro):
        task = asyncio.create_task(coro)
        self._tasks.append(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task):
        if task in self._tasks:
            self._tasks.remove(task)

    async def sweep_loop(self):
        while True:
            await asyncio.sleep(self.rules.cleanup_interval)
            removed = self.engine.sweep_expired_rooms()
            if removed:
                logger.info(f"Swept {len(removed)} expired rooms")

    async def snapshot_loop(self):
        while True:
            await asyncio.sleep(self.rules.snapshot_interval)
            await self.save_snapshot()

    async def save_snapshot(self) -> Optional[Path]:
        """Encode rooms on the loop, write the file in a worker thread."""
        snapshot = self.persistence.encode_snapshot(self.engine.all_rooms())
        if snapshot is None:
            return None
        return await asyncio.to_thread(self.persistence.write_snapshot, *snapshot)

    def startup(self):
        if self.rules.restore_on_startup:
            rooms = self.persistence.load_latest_snapshot()
            if rooms:
                self.engine.restore_rooms(rooms)
        self._spawn(self.sweep_loop())
        self._spawn(self.snapshot_loop())
        logger.info(f"State persistence enabled (snapshots every {self.rules.snapshot_interval}s)")

    async def shutdown(self):
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.persistence.save_before_shutdown(self.engine.all_rooms())


def create_app(rules: Optional[RuleConfig] = None) -> FastAPI:
    server = GameServer(rules or rules_from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        server.startup()
        yield
        await server.shutdown()

    app = FastAPI(title="Canadian Salad Game Server", version="1.0.0", lifespan=lifespan)
    app.state.server = server

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "rooms": server.engine.room_count(),
            "uptime": time.time() - server.started_at,
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        connection_id = await server.connections.connect(websocket)
        try:
            while True:
                raw_data = await websocket.receive_text()
                try:
                    event = parse_inbound_event(orjson.loads(raw_data))
                    await server.handle_event(connection_id, event)
                except (ValueError, GameError) as e:
                    # orjson.JSONDecodeError is a ValueError
                    await server.send_error(connection_id, ErrorCode.INVALID_EVENT, str(e))
                except Exception as e:
                    logger.exception(f"Error handling event from {connection_id}: {e}")
                    await server.send_error(connection_id, ErrorCode.INTERNAL, "Internal server error")
        except WebSocketDisconnect:
            logger.info(f"WebSocket {connection_id} disconnected")
        finally:
            await server.handle_disconnect(connection_id)

    return app
