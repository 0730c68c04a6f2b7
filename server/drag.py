"""
Drag-and-drop controller for card manipulation.

Unifies mouse and touch input into one drag lifecycle:

    press -> (movement past threshold) -> start -> move ... -> release/drop

Nothing here touches a real rendering surface. Side effects go through a
DragSurface (clone, dim, highlight) and hit-testing goes through a
TargetResolver that reports what lies under a point. The browser client
implements both against the DOM; tests implement them with plain objects.

Drop target priority:
    1. A penalty zone anywhere under the pointer -> {"type": "penalty"}
    2. Otherwise the first player area under the pointer, if it still has an
       empty slot -> {"type": "player", "playerId", "slotIndex", "isEmpty"}
    3. Otherwise no target (None)
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol

from constants import DOUBLE_TAP_WINDOW_MS, DRAG_THRESHOLD_PX


PENALTY = "penalty"
PLAYER = "player"


@dataclass(frozen=True)
class Rect:
    """Bounding box of an element in viewport coordinates."""

    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class DragData:
    """Where the dragged card came from."""

    card_id: Optional[str]
    from_player_id: str
    from_slot: int

    def to_dict(self) -> dict:
        return {
            "cardId": self.card_id,
            "fromPlayerId": self.from_player_id,
            "fromSlot": self.from_slot,
        }


@dataclass(frozen=True)
class Candidate:
    """
    One drop-target element found under the pointer.

    Attributes:
        kind: PENALTY or PLAYER.
        element: Surface handle used for highlighting.
        player_id: Owner of a player area.
        empty_slot: First empty slot index of a player area, None when full.
    """

    kind: str
    element: Any = None
    player_id: Optional[str] = None
    empty_slot: Optional[int] = None


@dataclass(frozen=True)
class DropTarget:
    """Resolved drop target handed to on_drop."""

    type: str
    player_id: Optional[str] = None
    slot_index: Optional[int] = None
    is_empty: bool = False

    def to_dict(self) -> dict:
        if self.type == PENALTY:
            return {"type": PENALTY}
        return {
            "type": PLAYER,
            "playerId": self.player_id,
            "slotIndex": self.slot_index,
            "isEmpty": self.is_empty,
        }


class DragSurface(Protocol):
    """Rendering side effects the controller needs."""

    def source_rect(self, element: Any) -> Rect: ...

    def drag_data(self, element: Any) -> Optional[DragData]:
        """Origin of the card, or None when its slot/player ancestors are missing."""

    def create_clone(self, element: Any, rect: Rect) -> Any: ...

    def move_clone(self, clone: Any, left: float, top: float) -> None: ...

    def remove_clone(self, clone: Any) -> None: ...

    def set_dimmed(self, element: Any, dimmed: bool) -> None: ...

    def highlight(self, element: Any) -> None: ...

    def clear_highlights(self) -> None: ...


class TargetResolver(Protocol):
    """Hit-testing: candidates under a point, topmost first."""

    def candidates_at(self, x: float, y: float) -> Iterable[Candidate]: ...


def pick_candidate(candidates: Iterable[Candidate]) -> Optional[Candidate]:
    """
    Apply the drop priority rule to the candidates under the pointer.

    Returns:
        The penalty zone if one is present, else the topmost player area
        that has an empty slot, else None.
    """
    first_player = None
    for candidate in candidates:
        if candidate.kind == PENALTY:
            return candidate
        if candidate.kind == PLAYER and first_player is None:
            first_player = candidate

    if first_player is not None and first_player.empty_slot is not None:
        return first_player
    return None


def to_drop_target(candidate: Optional[Candidate]) -> Optional[DropTarget]:
    if candidate is None:
        return None
    if candidate.kind == PENALTY:
        return DropTarget(type=PENALTY)
    return DropTarget(
        type=PLAYER,
        player_id=candidate.player_id,
        slot_index=candidate.empty_slot,
        is_empty=True,
    )


def drop_to_message(data: Optional[DragData], target: Optional[DropTarget]) -> Optional[dict]:
    """
    Translate a finished drop into the message the client sends the server.

    Returns:
        A discard message for the penalty zone, a moveCard message for a
        player area, or None when there is no origin or no target.
    """
    if data is None or target is None:
        return None
    if target.type == PENALTY:
        return {
            "type": "discard",
            "playerId": data.from_player_id,
            "slotIndex": data.from_slot,
        }
    return {
        "type": "moveCard",
        "fromPlayerId": data.from_player_id,
        "fromSlot": data.from_slot,
        "toPlayerId": target.player_id,
        "toSlot": target.slot_index,
    }


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class _PendingDrag:
    element: Any
    start_x: float
    start_y: float


class DragController:
    """
    Threshold-gated drag state machine for one pointer at a time.

    A press only arms a pending drag. The drag starts once the pointer moves
    more than threshold_px along either axis from the press point; a release
    before that is a tap and produces no drop.
    """

    def __init__(
        self,
        surface: DragSurface,
        resolver: TargetResolver,
        on_drag_start: Optional[Callable[[Optional[DragData]], None]] = None,
        on_drag_move: Optional[Callable[[float, float, Optional[DragData]], None]] = None,
        on_drop: Optional[Callable[[Optional[DragData], Optional[DropTarget]], None]] = None,
        on_drag_end: Optional[Callable[[], None]] = None,
        threshold_px: float = DRAG_THRESHOLD_PX,
        double_tap_window_ms: float = DOUBLE_TAP_WINDOW_MS,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self.surface = surface
        self.resolver = resolver
        self.on_drag_start = on_drag_start or (lambda data: None)
        self.on_drag_move = on_drag_move or (lambda x, y, data: None)
        self.on_drop = on_drop or (lambda data, target: None)
        self.on_drag_end = on_drag_end or (lambda: None)
        self.threshold_px = threshold_px
        self.double_tap_window_ms = double_tap_window_ms
        self.clock = clock

        self.pending: Optional[_PendingDrag] = None
        self.is_dragging = False
        self.drag_element: Any = None
        self.drag_clone: Any = None
        self.drag_data: Optional[DragData] = None
        self.offset_x = 0.0
        self.offset_y = 0.0
        self._recent_taps: list[tuple[Any, float]] = []

    # -------------------------------------------------------------------------
    # Input events
    # -------------------------------------------------------------------------

    def record_tap(self, element: Any, now: Optional[float] = None) -> None:
        """Remember a flip tap so a drag right after it is suppressed."""
        now = self.clock() if now is None else now
        self._prune_taps(now)
        self._recent_taps.append((element, now))

    def _prune_taps(self, now: float) -> None:
        # Keep only taps still inside the suppression window.
        self._recent_taps = [
            (tapped, at) for tapped, at in self._recent_taps
            if now - at < self.double_tap_window_ms
        ]

    def press(self, element: Any, x: float, y: float, now: Optional[float] = None) -> bool:
        """
        Mouse/pointer down on an element.

        Returns:
            True if a pending drag was armed.
        """
        if element is None:
            return False

        now = self.clock() if now is None else now
        self._prune_taps(now)
        if any(tapped is element for tapped, _ in self._recent_taps):
            return False

        self.pending = _PendingDrag(element, x, y)
        return True

    def touch_start(self, element: Any, x: float, y: float, touch_count: int = 1,
                    now: Optional[float] = None) -> bool:
        if touch_count != 1:
            return False
        return self.press(element, x, y, now)

    def move(self, x: float, y: float) -> None:
        """Pointer moved; may start the drag or update a running one."""
        if self.pending is not None and not self.is_dragging:
            pending = self.pending
            if self._past_threshold(x - pending.start_x, y - pending.start_y):
                self.pending = None
                self._start(pending.element, pending.start_x, pending.start_y)
            return

        if not self.is_dragging:
            return
        self._update(x, y)

    def touch_move(self, x: float, y: float, touch_count: int = 1) -> None:
        if touch_count != 1:
            return
        self.move(x, y)

    def release(self, x: float, y: float) -> Optional[DropTarget]:
        """
        Pointer released.

        Returns:
            The resolved target of a completed drag (None for taps or when
            nothing valid is under the pointer).
        """
        self.pending = None
        if not self.is_dragging:
            return None
        return self._end(x, y)

    def touch_end(self, x: float, y: float) -> Optional[DropTarget]:
        return self.release(x, y)

    def destroy(self) -> None:
        """Abandon any pending or running drag without reporting a drop."""
        self.pending = None
        if self.drag_element is not None:
            self.surface.set_dimmed(self.drag_element, False)
        if self.drag_clone is not None:
            self.surface.remove_clone(self.drag_clone)
        self._recent_taps = []
        self.surface.clear_highlights()
        self._clear()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _past_threshold(self, dx: float, dy: float) -> bool:
        return abs(dx) > self.threshold_px or abs(dy) > self.threshold_px

    def _start(self, element: Any, x: float, y: float) -> None:
        rect = self.surface.source_rect(element)
        self.is_dragging = True
        self.drag_element = element
        self.offset_x = x - rect.left
        self.offset_y = y - rect.top

        self.drag_clone = self.surface.create_clone(element, rect)
        self.surface.set_dimmed(element, True)

        self.drag_data = self.surface.drag_data(element)
        self.on_drag_start(self.drag_data)

    def _update(self, x: float, y: float) -> None:
        if self.drag_clone is None:
            return

        self.surface.move_clone(self.drag_clone, x - self.offset_x, y - self.offset_y)

        self.surface.clear_highlights()
        candidate = pick_candidate(self.resolver.candidates_at(x, y))
        if candidate is not None and candidate.element is not None:
            self.surface.highlight(candidate.element)

        self.on_drag_move(x, y, self.drag_data)

    def _end(self, x: float, y: float) -> Optional[DropTarget]:
        if self.drag_element is not None:
            self.surface.set_dimmed(self.drag_element, False)
        if self.drag_clone is not None:
            self.surface.remove_clone(self.drag_clone)
        self.surface.clear_highlights()

        target = to_drop_target(pick_candidate(self.resolver.candidates_at(x, y)))
        self.on_drop(self.drag_data, target)
        self.on_drag_end()

        self._clear()
        return target

    def _clear(self) -> None:
        self.is_dragging = False
        self.drag_element = None
        self.drag_clone = None
        self.drag_data = None
