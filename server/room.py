"""
Room management for Not-a-Hat party sessions.

This module tracks the WebSocket connections attached to each room and
owns the per-room GameState they all mirror.

A Room contains:
    - The room id taken from the connection URL
    - Every open connection, whether or not it has joined the table
    - A GameState with the seated players, deck and discard history
    - A lock that serializes state mutations and their broadcasts
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from game import GameState

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A party room that one group of players shares.

    Connections and seated players are tracked separately: a browser tab
    connects first (and receives the state snapshot) and only becomes a
    player after sending a join message.

    Attributes:
        room_id: Identifier from the URL path.
        connections: Dict mapping connection IDs to open WebSockets.
        state: The shared table state.
        lock: asyncio.Lock held while a handler mutates and broadcasts.
    """

    room_id: str
    connections: dict[str, WebSocket] = field(default_factory=dict)
    state: GameState = field(default_factory=GameState)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def connect(self, connection_id: str, websocket: WebSocket) -> None:
        """Attach a connection so it receives broadcasts."""
        self.connections[connection_id] = websocket

    def disconnect(self, connection_id: str) -> Optional[WebSocket]:
        """Detach a connection; returns its socket, or None if unknown."""
        return self.connections.pop(connection_id, None)

    def is_empty(self) -> bool:
        """Check if the room has no open connections."""
        return len(self.connections) == 0

    def player_count(self) -> int:
        return len(self.state.players)

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to every open connection in the room.

        Sends run concurrently. A failed send is logged and skipped.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional connection ID to skip.
        """
        await asyncio.gather(*(
            self.send_to(connection_id, message)
            for connection_id in list(self.connections)
            if connection_id != exclude
        ))

    async def send_to(self, connection_id: str, message: dict) -> None:
        """
        Send a message to a single connection.

        Args:
            connection_id: ID of the recipient connection.
            message: JSON-serializable message dict.
        """
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Send to {connection_id} in room {self.room_id} failed: {e}")


class RoomManager:
    """
    Registry of every room this process serves.

    Rooms are created on first connection and kept, idle, once everyone has
    left; they only disappear when the process exits.
    """

    def __init__(self) -> None:
        """Initialize an empty room manager."""
        self.rooms: dict[str, Room] = {}

    def get_or_create(self, room_id: str) -> Room:
        """
        Get a room by id, creating it on first use.

        Args:
            room_id: Identifier from the connection URL.

        Returns:
            The existing or newly created Room.
        """
        room = self.rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id)
            self.rooms[room_id] = room
            logger.info(f"Room {room_id} created")
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        """Get a room by id, or None if it was never opened."""
        return self.rooms.get(room_id)

    def connection_count(self) -> int:
        """Total open connections across all rooms."""
        return sum(len(room.connections) for room in self.rooms.values())
