import time

import pytest

from tickbar.draw_target import MultiProgressAlignment, ProgressDrawTarget
from tickbar.in_memory import InMemoryTerm
from tickbar.multi import InsertKind, InsertLocation, MultiProgress, MultiState


def index_of(mp, target):
    handle, idx = target.remote()
    if mp.state.members[idx].handle is handle:
        return idx
    return None


def term_multi(rows=10, cols=40):
    term = InMemoryTerm(rows, cols)
    mp = MultiProgress(ProgressDrawTarget.term_like(term))
    return mp, term


def paint(target, *lines, orphans=0):
    drawable = target.drawable(True, time.monotonic_ns())
    with drawable.state() as state:
        state.lines.extend(lines)
        state.orphan_lines_count = orphans
    drawable.draw()


def test_multi_is_hidden():
    mp = MultiProgress(ProgressDrawTarget.hidden())
    target = mp.add()
    assert mp.is_hidden() is True
    assert target.is_hidden() is True


def test_hidden_member_can_be_reaped():
    mp = MultiProgress(ProgressDrawTarget.hidden())
    target = mp.add()
    target.mark_zombie()
    assert len(mp.state) == 0
    assert mp.state.ordering == []


def test_multi_progress_modifications():
    mp = MultiProgress()
    p0 = mp.add()
    p1 = mp.add()
    p2 = mp.add()
    p3 = mp.add()
    mp.remove(p2)
    mp.remove(p1)
    p4 = mp.insert(1)

    state = mp.state
    assert len(state.members) == 4
    assert len(state) == 3
    assert state.free_set[-1] == 2
    assert state.ordering == [0, 1, 3]
    assert state.members[2].draw_state is None
    assert index_of(mp, p4) == 1
    assert index_of(mp, p0) == 0
    assert index_of(mp, p1) is None
    assert index_of(mp, p2) is None
    assert index_of(mp, p3) == 3


def test_multi_progress_insert_from_back():
    mp = MultiProgress()
    targets = [mp.add(), mp.add(), mp.add()]
    targets.append(mp.insert_from_back(1))
    targets.append(mp.insert_from_back(10))
    assert mp.state.ordering == [4, 0, 1, 3, 2]
    assert [index_of(mp, t) for t in targets] == [0, 1, 2, 3, 4]


def test_multi_progress_insert_after():
    mp = MultiProgress()
    p0 = mp.add()
    p1 = mp.add()
    p2 = mp.add()
    p3 = mp.insert_after(p2)
    p4 = mp.insert_after(p0)
    assert mp.state.ordering == [0, 4, 1, 2, 3]
    assert [index_of(mp, t) for t in (p0, p1, p2, p3, p4)] == [0, 1, 2, 3, 4]


def test_multi_progress_insert_before():
    mp = MultiProgress()
    p0 = mp.add()
    p1 = mp.add()
    p2 = mp.add()
    p3 = mp.insert_before(p0)
    p4 = mp.insert_before(p2)
    assert mp.state.ordering == [3, 0, 1, 4, 2]
    assert [index_of(mp, t) for t in (p0, p1, p2, p3, p4)] == [0, 1, 2, 3, 4]


def test_multi_progress_insert_before_and_after():
    mp = MultiProgress()
    p0 = mp.add()
    p1 = mp.add()
    p2 = mp.add()
    p3 = mp.insert_before(p0)
    p4 = mp.insert_after(p3)
    p5 = mp.insert_after(p3)
    p6 = mp.insert_before(p1)
    assert mp.state.ordering == [3, 5, 4, 0, 6, 1, 2]
    targets = (p0, p1, p2, p3, p4, p5, p6)
    assert [index_of(mp, t) for t in targets] == [0, 1, 2, 3, 4, 5, 6]


def test_multi_progress_multiple_remove():
    mp = MultiProgress()
    p0 = mp.add()
    p1 = mp.add()
    mp.remove(p0)
    mp.remove(p0)
    mp.remove(p0)

    state = mp.state
    assert len(state.members) == 2
    assert len(state.free_set) == 1
    assert len(state) == 1
    assert state.members[0].draw_state is None
    assert state.free_set[-1] == 0
    assert state.ordering == [1]
    assert index_of(mp, p0) is None
    assert index_of(mp, p1) == 1


def test_stale_remove_does_not_touch_reused_slot():
    mp = MultiProgress()
    p0 = mp.add()
    mp.remove(p0)
    p1 = mp.add()
    mp.remove(p0)
    assert index_of(mp, p1) == 0
    assert mp.state.ordering == [0]


def test_removed_target_is_hidden_and_cannot_anchor():
    mp, _ = term_multi()
    target = mp.add()
    assert target.is_hidden() is False
    mp.remove(target)
    assert target.is_hidden() is True
    assert target.width() == 0
    with pytest.raises(ValueError):
        mp.insert_after(target)


def test_remove_of_foreign_target_raises():
    mp = MultiProgress()
    other = MultiProgress()
    foreign = other.add()
    with pytest.raises(ValueError):
        mp.remove(foreign)


def test_remove_of_plain_target_is_ignored():
    mp = MultiProgress()
    mp.add()
    mp.remove(ProgressDrawTarget.hidden())
    assert len(mp.state) == 1


def test_insert_relative_to_plain_target_raises():
    mp = MultiProgress()
    with pytest.raises(ValueError):
        mp.insert_before(ProgressDrawTarget.hidden())


def test_state_insert_after_unknown_index_raises():
    state = MultiState(ProgressDrawTarget.hidden())
    state.insert(InsertLocation(InsertKind.END))
    with pytest.raises(ValueError):
        state.insert(InsertLocation(InsertKind.AFTER, 7))


def test_member_width_follows_terminal():
    mp, _ = term_multi(cols=40)
    target = mp.add()
    assert target.width() == 40


def test_members_drawn_in_order():
    mp, term = term_multi()
    first = mp.add()
    second = mp.add()
    paint(first, "one")
    paint(second, "two")
    assert term.contents() == "one\ntwo"


def test_redraw_replaces_previous_output():
    mp, term = term_multi()
    target = mp.add()
    paint(target, "one")
    paint(target, "two")
    assert term.contents() == "two"


def test_println_appears_above_members():
    mp, term = term_multi()
    mp.println("hello")
    target = mp.add()
    paint(target, "bar")
    assert term.contents() == "hello\nbar"


def test_println_lines_are_split():
    state = MultiState(ProgressDrawTarget.term_like(InMemoryTerm(10, 40)))
    state.println("a\nb\n", time.monotonic_ns())
    assert state.draw_target.drawable(True, 0) is not None
    term = state.draw_target._kind.term if False else None
    assert term is None
    mp, screen = term_multi()
    mp.println("a\nb\n")
    assert screen.contents() == "a\nb"


def test_orphan_lines_move_above_members():
    mp, term = term_multi()
    target = mp.add()
    drawable = target.drawable(True, time.monotonic_ns())
    with drawable.state() as state:
        state.lines.extend(["log", "bar"])
        state.orphan_lines_count = 1
    idx = target.remote()[1]
    assert mp.state.orphan_lines == ["log"]
    assert mp.state.members[idx].draw_state.lines == ["bar"]
    drawable.draw()
    assert mp.state.orphan_lines == []
    assert term.contents() == "log\nbar"


def test_zombie_at_top_is_kept_on_screen():
    mp, term = term_multi()
    first = mp.add()
    second = mp.add()
    paint(first, "one")
    paint(second, "two")
    first.mark_zombie()
    assert mp.state.ordering == [1]
    assert mp.state.zombie_lines_count == 1
    paint(second, "three")
    assert term.contents() == "one\nthree"


def test_zombie_below_top_is_deferred():
    mp, _ = term_multi()
    first = mp.add()
    second = mp.add()
    paint(first, "one")
    paint(second, "two")
    second.mark_zombie()
    idx = second.remote()[1]
    assert mp.state.members[idx].is_zombie is True
    assert mp.state.ordering == [0, 1]


def test_clear_wipes_everything():
    mp, term = term_multi()
    target = mp.add()
    paint(target, "one")
    mp.clear()
    assert term.contents() == ""


def test_suspend_hides_then_redraws():
    mp, term = term_multi()
    target = mp.add()
    paint(target, "one")
    seen = mp.suspend(term.contents)
    assert seen == ""
    assert term.contents() == "one"


def test_alignment_and_move_cursor_reach_new_draw_states():
    mp, _ = term_multi()
    mp.set_alignment(MultiProgressAlignment.BOTTOM)
    mp.set_move_cursor(True)
    target = mp.add()
    paint(target, "one")
    state = mp.state.members[target.remote()[1]].draw_state
    assert state.alignment is MultiProgressAlignment.BOTTOM
    assert state.move_cursor is True


def test_set_draw_target_replaces_target():
    mp = MultiProgress(ProgressDrawTarget.hidden())
    assert mp.is_hidden() is True
    mp.set_draw_target(ProgressDrawTarget.term_like(InMemoryTerm(5, 20)))
    assert mp.is_hidden() is False
    assert mp.state.width() == 20


def test_disconnecting_member_clears_its_lines():
    mp, term = term_multi()
    target = mp.add()
    paint(target, "one")
    target.disconnect(time.monotonic_ns())
    assert term.contents() == ""
    assert mp.state.members[target.remote()[1]].draw_state.lines == []