"""
Inbound WebSocket message payloads.

Clients send JSON objects of the form {"type": ..., **payload}. Each
payload with fields is validated by a pydantic model before it reaches a
handler; a ValidationError is treated as a malformed message and dropped.
Field aliases keep the camelCase names the browser client sends.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    """Base for inbound payloads (unknown extra keys are ignored)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JoinMessage(InboundMessage):
    """Take a seat at the table (a missing or blank name becomes "Player")."""
    name: Optional[str] = "Player"


class SlotMessage(InboundMessage):
    """Act on one of the sender's own slots (flip)."""
    slot_index: int = Field(alias="slotIndex", ge=0)


class MoveCardMessage(InboundMessage):
    """Move a card from one player's slot to another's."""
    from_player_id: str = Field(alias="fromPlayerId")
    from_slot: int = Field(alias="fromSlot", ge=0)
    to_player_id: str = Field(alias="toPlayerId")
    to_slot: int = Field(alias="toSlot", ge=0)


class SwapCardsMessage(InboundMessage):
    """Swap slots 0 and 1 for a player."""
    player_id: str = Field(alias="playerId")


class DiscardMessage(InboundMessage):
    """Send a player's card to the penalty zone."""
    player_id: str = Field(alias="playerId")
    slot_index: int = Field(alias="slotIndex", ge=0)


class ToggleHardModeMessage(InboundMessage):
    """Switch between 2 and 3 slots per player."""
    enabled: bool
