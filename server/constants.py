"""
Game constants for the Not-a-Hat sandbox.

Values come from config.py (and therefore the environment) so there is one
place to tune room size, penalty limit, slot counts and deck composition.

Sandbox rules:
    - Up to 8 players per room, at least 2 to start
    - Each player has 2 card slots (3 in hard mode)
    - Every discard is a penalty; 3 penalties ends the game for that player
    - The deck holds 110 cards, half with a black back and half with a white one
"""

from config import config


# =============================================================================
# Room Constants
# =============================================================================

MAX_PLAYERS = config.MAX_PLAYERS_PER_ROOM
MIN_PLAYERS_TO_START = config.MIN_PLAYERS_TO_START
MAX_PENALTIES = config.MAX_PENALTIES

NORMAL_SLOT_COUNT = config.NORMAL_SLOT_COUNT
HARD_SLOT_COUNT = config.HARD_SLOT_COUNT


# =============================================================================
# Deck Constants
# =============================================================================

DECK_SIZE = config.deck.card_count
BLACK_BACK_COUNT = config.deck.black_back_count
FRONT_TEMPLATE = config.deck.front_template
BACK_BLACK = config.deck.back_black
BACK_WHITE = config.deck.back_white


# =============================================================================
# Drag Constants
# =============================================================================

DRAG_THRESHOLD_PX = config.drag.threshold_px
DOUBLE_TAP_WINDOW_MS = config.drag.double_tap_window_ms


# =============================================================================
# Helper Functions
# =============================================================================

def slot_count_for(hard_mode: bool) -> int:
    """Number of card slots per player for the given difficulty."""
    return HARD_SLOT_COUNT if hard_mode else NORMAL_SLOT_COUNT


def card_id_for(number: int) -> str:
    """Card identifier for a 1-based card number, e.g. 7 -> 'card_007'."""
    return f"card_{number:03d}"
