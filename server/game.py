"""
Game state for the Not-a-Hat sandbox.

This module holds the shared table state that a room mirrors to every
connected player: the roster and their card slots, the deck, and the
discard history. There is no rules engine. Players move cards around by
hand and the state only refuses mutations that are physically impossible
(drawing into a full hand, moving onto an occupied slot, and so on).

Slot Layout (normal mode):
    [0] [1]        <- cards stack from slot 0 upward

Slot Layout (hard mode):
    [0] [1] [2]

After any move or discard, a player's slots are compacted so that every
occupied slot precedes every empty one.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from constants import (
    BACK_BLACK,
    BACK_WHITE,
    BLACK_BACK_COUNT,
    DECK_SIZE,
    FRONT_TEMPLATE,
    MAX_PENALTIES,
    NORMAL_SLOT_COUNT,
    card_id_for,
    slot_count_for,
)


@dataclass
class Card:
    """
    A single game card.

    Attributes:
        id: Stable identifier, e.g. "card_042".
        front: Path of the face image.
        back: Path of the back image (black or white variant).
        is_flipped: True when the card is face down, False when face up.
    """

    id: str
    front: str
    back: str
    is_flipped: bool = False

    def flip(self) -> bool:
        """Toggle the face state and return the new is_flipped value."""
        self.is_flipped = not self.is_flipped
        return self.is_flipped

    def to_dict(self) -> dict:
        """Convert card to the JSON shape clients render."""
        return {
            "id": self.id,
            "front": self.front,
            "back": self.back,
            "isFlipped": self.is_flipped,
        }


class Deck:
    """
    The 110-card draw pile.

    Cards 1..55 carry the black back, 56..110 the white back. The top of the
    deck is the end of the list, so draw() pops from the end.
    """

    def __init__(self, rng: Optional[random.Random] = None, fill: bool = True) -> None:
        """
        Build and shuffle a deck.

        Args:
            rng: Optional random source (tests pass a seeded Random).
            fill: If False, start empty (the table before a game starts).
        """
        self.rng = rng or random.Random()
        self.cards: list[Card] = build_cards() if fill else []
        self.shuffle()

    def shuffle(self) -> None:
        """Apply a uniform random permutation (Fisher-Yates) to the cards."""
        self.rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        """Pop the top card, or None when the deck is empty."""
        if self.cards:
            return self.cards.pop()
        return None

    def top_card(self) -> Optional[Card]:
        """Peek at the top card without removing it."""
        if self.cards:
            return self.cards[-1]
        return None

    def cards_remaining(self) -> int:
        """Return the number of cards left in the deck."""
        return len(self.cards)

    def to_list(self) -> list[dict]:
        """Serialize the deck bottom-to-top."""
        return [card.to_dict() for card in self.cards]


def build_cards() -> list[Card]:
    """Generate the unshuffled card list in id order."""
    cards = []
    for num in range(1, DECK_SIZE + 1):
        card_id = card_id_for(num)
        cards.append(Card(
            id=card_id,
            front=FRONT_TEMPLATE.format(num=f"{num:03d}"),
            back=BACK_BLACK if num <= BLACK_BACK_COUNT else BACK_WHITE,
        ))
    return cards


@dataclass
class Player:
    """
    A player seated at the table.

    Attributes:
        id: Connection identifier of the player.
        name: Display name.
        cards: Fixed-size slot list; None marks an empty slot.
        penalties: Number of discards so far (game over at MAX_PENALTIES).
    """

    id: str
    name: str
    cards: list[Optional[Card]] = field(default_factory=lambda: [None] * NORMAL_SLOT_COUNT)
    penalties: int = 0

    def first_empty_slot(self) -> Optional[int]:
        """Lowest empty slot index, or None when every slot is occupied."""
        for index, card in enumerate(self.cards):
            if card is None:
                return index
        return None

    def card_at(self, slot: int) -> Optional[Card]:
        """Card in the given slot, or None if empty or out of range."""
        if 0 <= slot < len(self.cards):
            return self.cards[slot]
        return None

    def is_slot_empty(self, slot: int) -> bool:
        """True only for an in-range slot holding no card."""
        return 0 <= slot < len(self.cards) and self.cards[slot] is None

    def occupied_count(self) -> int:
        return sum(1 for card in self.cards if card is not None)

    def compact(self) -> None:
        """Shift cards toward slot 0 so no gap precedes an occupied slot."""
        held = [card for card in self.cards if card is not None]
        self.cards = held + [None] * (len(self.cards) - len(held))

    def resize(self, slot_count: int) -> None:
        """Resize the slot list, keeping cards at their index."""
        self.cards = (self.cards + [None] * slot_count)[:slot_count]

    def clear(self, slot_count: int) -> None:
        """Empty every slot and zero the penalty counter."""
        self.cards = [None] * slot_count
        self.penalties = 0

    def is_out(self) -> bool:
        """Check if the player has reached the penalty limit."""
        return self.penalties >= MAX_PENALTIES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "cards": [card.to_dict() if card else None for card in self.cards],
            "penalties": self.penalties,
        }


@dataclass
class DiscardRecord:
    """One entry of the append-only discard history."""

    card: Card
    player_id: str
    player_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "card": self.card.to_dict(),
            "playerId": self.player_id,
            "playerName": self.player_name,
            "timestamp": int(self.timestamp.timestamp() * 1000),
        }


@dataclass
class DrawResult:
    """Outcome of a successful draw."""

    slot_index: int
    card: Card


@dataclass
class DiscardResult:
    """Outcome of a successful discard, with the penalty count as it stood then."""

    player: Player
    record: DiscardRecord
    penalties: int
    game_over: bool


class GameState:
    """
    Authoritative state of one room's table.

    Mutating methods return a result (or True) on success and None/False when
    the mutation is impossible; nothing is changed in the failure case.
    Precondition checks that produce a reply to the sender live in the
    message handlers.

    Attributes:
        players: Seated players in join order.
        deck: Remaining draw pile (empty until the game starts).
        discard_history: Every discarded card with who discarded it.
        game_started: Whether the host has started the game.
        host_id: Player allowed to start and toggle hard mode.
        hard_mode: Whether players have 3 slots instead of 2.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self.players: list[Player] = []
        self.deck: Deck = Deck(self.rng, fill=False)
        self.discard_history: list[DiscardRecord] = []
        self.game_started: bool = False
        self.host_id: Optional[str] = None
        self.hard_mode: bool = False

    @property
    def slot_count(self) -> int:
        return slot_count_for(self.hard_mode)

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """
        Find a player by ID.

        Args:
            player_id: The player's unique ID.

        Returns:
            Player if found, None otherwise.
        """
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def add_player(self, player_id: str, name: str) -> Player:
        """
        Seat a player, or return the existing seat for a repeated join.

        The player becomes host when they are the only one seated.
        """
        player = self.get_player(player_id)
        if player is None:
            player = Player(id=player_id, name=name, cards=[None] * self.slot_count)
            self.players.append(player)

        if len(self.players) == 1:
            self.host_id = player_id

        return player

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player, handing host to the next seat if needed.

        Returns:
            The removed Player, or None if they were not seated.
        """
        player = self.get_player(player_id)
        if player is None:
            return None

        self.players.remove(player)
        if self.host_id == player_id and self.players:
            self.host_id = self.players[0].id
        return player

    def is_host(self, player_id: str) -> bool:
        return self.host_id is not None and self.host_id == player_id

    # -------------------------------------------------------------------------
    # Game lifecycle
    # -------------------------------------------------------------------------

    def start_game(self) -> None:
        """Deal a fresh shuffled deck and mark the game started."""
        self.deck = Deck(self.rng)
        self.game_started = True

    def reset(self) -> None:
        """Empty every hand, zero penalties, clear history, reshuffle the deck."""
        for player in self.players:
            player.clear(self.slot_count)
        self.discard_history = []
        self.deck = Deck(self.rng)

    def set_hard_mode(self, enabled: bool) -> None:
        """Switch difficulty and resize every player's slots to match."""
        self.hard_mode = enabled
        for player in self.players:
            player.resize(self.slot_count)

    # -------------------------------------------------------------------------
    # Card actions
    # -------------------------------------------------------------------------

    def draw_card(self, player_id: str) -> Optional[DrawResult]:
        """
        Draw the top card face up into the player's lowest empty slot.

        Returns:
            DrawResult, or None if the deck is empty, the player is unknown,
            or the player has no empty slot.
        """
        player = self.get_player(player_id)
        if player is None or self.deck.cards_remaining() == 0:
            return None

        slot = player.first_empty_slot()
        if slot is None:
            return None

        card = self.deck.draw()
        card.is_flipped = False
        player.cards[slot] = card
        return DrawResult(slot_index=slot, card=card)

    def flip_card(self, player_id: str, slot: int) -> Optional[bool]:
        """
        Toggle the face of one of the player's own cards.

        Returns:
            The card's new is_flipped value, or None if there is no card.
        """
        player = self.get_player(player_id)
        card = player.card_at(slot) if player else None
        if card is None:
            return None
        return card.flip()

    def move_card(
        self,
        from_player_id: str,
        from_slot: int,
        to_player_id: str,
        to_slot: int,
    ) -> Optional[Card]:
        """
        Move a card between any two slots on the table.

        The source must hold a card and the destination must be empty. Both
        players are compacted afterwards, so the card may not end up in
        to_slot exactly.

        Returns:
            The moved Card, or None if the move is impossible.
        """
        from_player = self.get_player(from_player_id)
        to_player = self.get_player(to_player_id)
        if from_player is None or to_player is None:
            return None

        card = from_player.card_at(from_slot)
        if card is None or not to_player.is_slot_empty(to_slot):
            return None

        from_player.cards[from_slot] = None
        to_player.cards[to_slot] = card

        from_player.compact()
        to_player.compact()
        return card

    def swap_cards(self, player_id: str) -> bool:
        """Swap slots 0 and 1 of a player; requires both to be occupied."""
        player = self.get_player(player_id)
        if player is None or player.card_at(0) is None or player.card_at(1) is None:
            return False

        player.cards[0], player.cards[1] = player.cards[1], player.cards[0]
        return True

    def discard_card(self, player_id: str, slot: int) -> Optional[DiscardResult]:
        """
        Send a card to the discard history and charge a penalty.

        Returns:
            DiscardResult, or None if the slot holds no card.
        """
        player = self.get_player(player_id)
        card = player.card_at(slot) if player else None
        if card is None:
            return None

        record = DiscardRecord(card=card, player_id=player.id, player_name=player.name)
        self.discard_history.append(record)

        player.cards[slot] = None
        player.penalties += 1
        player.compact()
        return DiscardResult(
            player=player,
            record=record,
            penalties=player.penalties,
            game_over=player.is_out(),
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def players_to_list(self) -> list[dict]:
        return [player.to_dict() for player in self.players]

    def history_to_list(self) -> list[dict]:
        return [record.to_dict() for record in self.discard_history]

    def to_dict(self) -> dict:
        """Full snapshot sent to a client when it connects."""
        return {
            "players": self.players_to_list(),
            "deck": self.deck.to_list(),
            "discardHistory": self.history_to_list(),
            "gameStarted": self.game_started,
            "hostId": self.host_id,
            "hardMode": self.hard_mode,
            "slotCount": self.slot_count,
        }
