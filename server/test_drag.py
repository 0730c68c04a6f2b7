"""
Test suite for the drag-and-drop controller.

Uses a recording surface and a scripted resolver in place of the DOM.

Covers:
- Tap vs drag (threshold gating)
- Clone placement, dimming and highlight lifecycle
- Drop target priority (penalty zone over player area)
- Double-tap suppression and multi-touch rejection

Run with: pytest test_drag.py -v
"""

import pytest

from drag import (
    Candidate,
    DragController,
    DragData,
    DropTarget,
    PENALTY,
    PLAYER,
    Rect,
    drop_to_message,
    pick_candidate,
)


# =============================================================================
# Fakes
# =============================================================================

class FakeSurface:
    """Records every side effect the controller asks for."""

    def __init__(self, data=None, rect=Rect(100, 200, 60, 90)):
        self.data = data if data is not None else DragData("card_001", "p0", 0)
        self.rect = rect
        self.clones = []
        self.removed = []
        self.dimmed = {}
        self.highlighted = []
        self.clear_calls = 0

    def source_rect(self, element):
        return self.rect

    def drag_data(self, element):
        return self.data

    def create_clone(self, element, rect):
        clone = {"of": element, "left": rect.left, "top": rect.top}
        self.clones.append(clone)
        return clone

    def move_clone(self, clone, left, top):
        clone["left"] = left
        clone["top"] = top

    def remove_clone(self, clone):
        self.removed.append(clone)

    def set_dimmed(self, element, dimmed):
        self.dimmed[element] = dimmed

    def highlight(self, element):
        self.highlighted.append(element)

    def clear_highlights(self):
        self.clear_calls += 1
        self.highlighted.clear()


class FakeResolver:
    """Returns the same candidate stack for every point unless told otherwise."""

    def __init__(self, candidates=()):
        self.candidates = list(candidates)

    def candidates_at(self, x, y):
        return list(self.candidates)


PENALTY_ZONE = Candidate(kind=PENALTY, element="penalty-zone")
OPEN_AREA = Candidate(kind=PLAYER, element="area-p1", player_id="p1", empty_slot=1)
FULL_AREA = Candidate(kind=PLAYER, element="area-p2", player_id="p2", empty_slot=None)


class Recorder:
    def __init__(self):
        self.starts = []
        self.moves = []
        self.drops = []
        self.ends = 0

    def controller(self, surface, resolver, **kwargs):
        return DragController(
            surface,
            resolver,
            on_drag_start=self.starts.append,
            on_drag_move=lambda x, y, data: self.moves.append((x, y)),
            on_drop=lambda data, target: self.drops.append((data, target)),
            on_drag_end=self._end,
            threshold_px=10,
            double_tap_window_ms=300,
            clock=lambda: 10_000,
            **kwargs,
        )

    def _end(self):
        self.ends += 1


@pytest.fixture
def rec():
    return Recorder()


# =============================================================================
# Tap vs drag
# =============================================================================

class TestThreshold:

    def test_tap_produces_no_drop(self, rec):
        surface = FakeSurface()
        ctl = rec.controller(surface, FakeResolver([PENALTY_ZONE]))

        ctl.press("card", 120, 230)
        ctl.move(125, 235)
        assert ctl.release(125, 235) is None

        assert rec.drops == []
        assert rec.starts == []
        assert surface.clones == []

    def test_movement_exactly_at_threshold_is_still_a_tap(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.press("card", 0, 0)
        ctl.move(10, -10)
        assert not ctl.is_dragging

    def test_drag_over_penalty_zone(self, rec):
        surface = FakeSurface()
        ctl = rec.controller(surface, FakeResolver([PENALTY_ZONE]))

        ctl.press("card", 120, 230)
        ctl.move(140, 230)
        ctl.move(300, 400)
        target = ctl.release(300, 400)

        assert target == DropTarget(type=PENALTY)
        assert rec.drops == [(surface.data, DropTarget(type=PENALTY))]
        assert rec.drops[0][1].to_dict() == {"type": "penalty"}
        assert rec.ends == 1

    def test_threshold_on_either_axis(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.press("card", 0, 0)
        ctl.move(0, 11)
        assert ctl.is_dragging

    def test_release_without_press_is_noop(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver([PENALTY_ZONE]))
        assert ctl.release(0, 0) is None
        assert rec.drops == []


# =============================================================================
# Visual lifecycle
# =============================================================================

class TestVisuals:

    def test_clone_tracks_pointer_with_offset(self, rec):
        surface = FakeSurface(rect=Rect(100, 200, 60, 90))
        ctl = rec.controller(surface, FakeResolver())

        ctl.press("card", 130, 240)
        ctl.move(150, 240)
        clone = surface.clones[0]
        assert (clone["left"], clone["top"]) == (100, 200)
        assert surface.dimmed["card"] is True

        ctl.move(230, 340)
        assert (clone["left"], clone["top"]) == (200, 300)
        assert rec.moves == [(230, 340)]

    def test_release_restores_source_and_removes_clone(self, rec):
        surface = FakeSurface()
        ctl = rec.controller(surface, FakeResolver([OPEN_AREA]))

        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        ctl.move(60, 0)
        assert surface.highlighted == ["area-p1"]

        ctl.release(60, 0)
        assert surface.dimmed["card"] is False
        assert surface.removed == surface.clones
        assert surface.highlighted == []
        assert not ctl.is_dragging
        assert ctl.drag_clone is None

    def test_full_player_area_not_highlighted(self, rec):
        surface = FakeSurface()
        ctl = rec.controller(surface, FakeResolver([FULL_AREA]))
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        ctl.move(60, 0)
        assert surface.highlighted == []

    def test_drag_start_reports_origin(self, rec):
        surface = FakeSurface(data=DragData("card_009", "p3", 1))
        ctl = rec.controller(surface, FakeResolver())
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        assert rec.starts == [DragData("card_009", "p3", 1)]

    def test_card_outside_player_area_has_no_origin(self, rec):
        surface = FakeSurface()
        surface.data = None
        ctl = rec.controller(surface, FakeResolver([PENALTY_ZONE]))
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        ctl.release(50, 0)
        assert rec.starts == [None]
        data, target = rec.drops[0]
        assert data is None
        assert drop_to_message(data, target) is None

    def test_destroy_cleans_up_without_drop(self, rec):
        surface = FakeSurface()
        ctl = rec.controller(surface, FakeResolver([PENALTY_ZONE]))
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        ctl.destroy()
        assert surface.dimmed["card"] is False
        assert surface.removed == surface.clones
        assert rec.drops == []
        assert not ctl.is_dragging


# =============================================================================
# Target resolution
# =============================================================================

class TestTargets:

    def test_penalty_beats_player_area(self):
        assert pick_candidate([OPEN_AREA, PENALTY_ZONE]) is PENALTY_ZONE

    def test_topmost_player_area_wins(self):
        other = Candidate(kind=PLAYER, element="area-p4", player_id="p4", empty_slot=0)
        assert pick_candidate([OPEN_AREA, other]) is OPEN_AREA

    def test_full_topmost_area_gives_no_target(self):
        assert pick_candidate([FULL_AREA, OPEN_AREA]) is None

    def test_nothing_under_pointer(self):
        assert pick_candidate([]) is None

    def test_drop_on_player_area_targets_first_empty_slot(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver([OPEN_AREA]))
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        target = ctl.release(50, 0)
        assert target.to_dict() == {"type": "player", "playerId": "p1", "slotIndex": 1, "isEmpty": True}

    def test_drop_on_nothing_reports_none(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.press("card", 0, 0)
        ctl.move(50, 0)
        ctl.release(50, 0)
        assert len(rec.drops) == 1
        assert rec.drops[0][1] is None


# =============================================================================
# Input filtering
# =============================================================================

class TestInputFiltering:

    def test_press_off_card_ignored(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        assert ctl.press(None, 0, 0) is False

    def test_press_right_after_tap_suppressed(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.record_tap("card", now=9_900)
        assert ctl.press("card", 0, 0, now=10_000) is False
        ctl.move(50, 0)
        assert not ctl.is_dragging

    def test_press_after_tap_window_allowed(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.record_tap("card", now=9_000)
        assert ctl.press("card", 0, 0, now=10_000) is True

    def test_tap_on_other_card_does_not_suppress(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        ctl.record_tap("other", now=9_950)
        assert ctl.press("card", 0, 0, now=10_000) is True

    def test_expired_taps_are_forgotten(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        for n in range(50):
            ctl.record_tap(object(), now=n * 1_000)
        assert len(ctl._recent_taps) == 1

    def test_tap_matches_element_identity(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        tapped, fresh = object(), object()
        ctl.record_tap(tapped, now=9_950)
        assert ctl.press(fresh, 0, 0, now=10_000) is True
        ctl.release(0, 0)
        assert ctl.press(tapped, 0, 0, now=10_000) is False

    def test_multi_touch_ignored(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver())
        assert ctl.touch_start("card", 0, 0, touch_count=2) is False
        assert ctl.touch_start("card", 0, 0, touch_count=1) is True
        ctl.touch_move(50, 0, touch_count=2)
        assert not ctl.is_dragging
        ctl.touch_move(50, 0, touch_count=1)
        assert ctl.is_dragging

    def test_touch_drag_to_penalty(self, rec):
        ctl = rec.controller(FakeSurface(), FakeResolver([PENALTY_ZONE]))
        ctl.touch_start("card", 0, 0)
        ctl.touch_move(0, 40)
        assert ctl.touch_end(0, 40) == DropTarget(type=PENALTY)


# =============================================================================
# Drop -> server message
# =============================================================================

class TestDropToMessage:

    def test_penalty_drop_is_discard(self):
        msg = drop_to_message(DragData("card_001", "p0", 1), DropTarget(type=PENALTY))
        assert msg == {"type": "discard", "playerId": "p0", "slotIndex": 1}

    def test_player_drop_is_move(self):
        target = DropTarget(type=PLAYER, player_id="p1", slot_index=0, is_empty=True)
        msg = drop_to_message(DragData("card_001", "p0", 1), target)
        assert msg == {
            "type": "moveCard",
            "fromPlayerId": "p0",
            "fromSlot": 1,
            "toPlayerId": "p1",
            "toSlot": 0,
        }

    def test_missing_origin_or_target(self):
        assert drop_to_message(None, DropTarget(type=PENALTY)) is None
        assert drop_to_message(DragData("card_001", "p0", 0), None) is None
