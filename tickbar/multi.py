"""Drawing several progress displays together as one block of lines."""

from __future__ import annotations

import contextlib
import enum
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

from tickbar.draw_target import (
    DrawState,
    LineAdjust,
    MultiProgressAlignment,
    ProgressDrawTarget,
)

R = TypeVar("R")


class InsertKind(enum.Enum):
    """Where a new member goes in the visual order."""

    END = "end"
    INDEX = "index"
    INDEX_FROM_BACK = "index_from_back"
    AFTER = "after"
    BEFORE = "before"


@dataclass(frozen=True)
class InsertLocation:
    """An insertion point: a kind plus a position or a member index."""

    kind: InsertKind
    value: int = 0


@dataclass
class _Member:
    draw_state: Optional[DrawState] = None
    is_zombie: bool = False
    handle: Optional["_MemberHandle"] = None


class _MemberHandle:
    """The link from one member's draw target to the shared state.

    Once the member is removed the link is cut and the target behaves
    as a hidden one.
    """

    def __init__(self, state: "MultiState") -> None:
        self.state = state
        self.attached = True

    def is_hidden(self) -> bool:
        with self.state.lock:
            return not self.attached or self.state.is_hidden()

    def width(self) -> int:
        with self.state.lock:
            return self.state.width() if self.attached else 0

    def mark_zombie(self, idx: int) -> None:
        with self.state.lock:
            if self.attached:
                self.state.mark_zombie(idx)

    @contextlib.contextmanager
    def draw_state(self, idx: int) -> Iterator[DrawState]:
        with self.state.lock:
            if self.attached:
                with self.state.draw_state(idx) as draw_state:
                    yield draw_state
            else:
                yield DrawState()

    def draw(self, force_draw: bool, extra_lines: Optional[list[str]], now: int) -> None:
        with self.state.lock:
            if self.attached:
                self.state.draw(force_draw, extra_lines, now)


class MultiState:
    """Shared state of a multi progress: members, their order and the target."""

    def __init__(self, draw_target: ProgressDrawTarget) -> None:
        self.lock = threading.RLock()
        self.members: list[_Member] = []
        self.free_set: list[int] = []
        self.ordering: list[int] = []
        self.draw_target = draw_target
        self.move_cursor = False
        self.alignment = MultiProgressAlignment.TOP
        self.orphan_lines: list[str] = []
        self.zombie_lines_count = 0

    def __repr__(self) -> str:
        return f"MultiState(members={len(self)}, ordering={self.ordering!r})"

    @staticmethod
    def _line_count(member: _Member) -> int:
        return len(member.draw_state.lines) if member.draw_state is not None else 0

    def mark_zombie(self, index: int) -> None:
        """Note that member ``index`` is gone; reap it now if it is on top."""
        with self.lock:
            member = self.members[index]
            if not self.ordering or index != self.ordering[0]:
                member.is_zombie = True
                return
            line_count = self._line_count(member)
            self.zombie_lines_count += line_count
            self.draw_target.adjust_last_line_count(LineAdjust.keep(line_count))
            self.remove_idx(index)

    def draw(self, force_draw: bool, extra_lines: Optional[list[str]], now: int) -> None:
        """Paint every member, with ``extra_lines`` printed above them."""
        with self.lock:
            reap_indices: list[int] = []
            adjust = 0
            for index in self.ordering:
                member = self.members[index]
                if not member.is_zombie:
                    break
                line_count = self._line_count(member)
                self.zombie_lines_count += line_count
                adjust += line_count
                reap_indices.append(index)

            if extra_lines is not None:
                self.draw_target.adjust_last_line_count(
                    LineAdjust.clear(self.zombie_lines_count)
                )
                self.zombie_lines_count = 0

            orphan_lines_count = len(self.orphan_lines)
            force_draw = force_draw or orphan_lines_count > 0
            drawable = self.draw_target.drawable(force_draw, now)
            if drawable is None:
                return

            with drawable.state() as draw_state:
                draw_state.orphan_lines_count = orphan_lines_count
                if extra_lines is not None:
                    draw_state.lines.extend(extra_lines)
                    draw_state.orphan_lines_count += len(extra_lines)
                draw_state.lines.extend(self.orphan_lines)
                self.orphan_lines.clear()
                for index in self.ordering:
                    member_state = self.members[index].draw_state
                    if member_state is not None:
                        draw_state.lines.extend(member_state.lines)

            try:
                drawable.draw()
            finally:
                for index in reap_indices:
                    self.remove_idx(index)
                if extra_lines is None:
                    self.draw_target.adjust_last_line_count(LineAdjust.keep(adjust))

    def println(self, msg: str, now: int) -> None:
        """Print ``msg`` above all members; an empty message prints a blank line."""
        if msg:
            lines = msg.split("\n")
            if lines[-1] == "":
                lines.pop()
            lines = [line[:-1] if line.endswith("\r") else line for line in lines]
        else:
            lines = [""]
        self.draw(True, lines, now)

    @contextlib.contextmanager
    def draw_state(self, idx: int) -> Iterator[DrawState]:
        """Give member ``idx``'s draw state; its orphan lines move out on exit."""
        with self.lock:
            member = self.members[idx]
            if member.draw_state is None:
                member.draw_state = DrawState(
                    move_cursor=self.move_cursor, alignment=self.alignment
                )
            state = member.draw_state
            try:
                yield state
            finally:
                count = state.orphan_lines_count
                self.orphan_lines.extend(state.lines[:count])
                del state.lines[:count]
                state.orphan_lines_count = 0

    def is_hidden(self) -> bool:
        with self.lock:
            return self.draw_target.is_hidden()

    def suspend(self, f: Callable[[], R], now: int) -> R:
        """Clear the display, run ``f``, then draw everything again."""
        with self.lock:
            self.clear(now)
            result = f()
            self.draw(True, None, time.monotonic_ns())
            return result

    def width(self) -> int:
        with self.lock:
            return self.draw_target.width()

    def insert(self, location: InsertLocation) -> int:
        """Add a member at ``location`` and return its index."""
        with self.lock:
            if self.free_set:
                idx = self.free_set.pop()
                self.members[idx] = _Member()
            else:
                self.members.append(_Member())
                idx = len(self.members) - 1

            kind = location.kind
            if kind is InsertKind.END:
                self.ordering.append(idx)
            elif kind is InsertKind.INDEX:
                self.ordering.insert(min(location.value, len(self.ordering)), idx)
            elif kind is InsertKind.INDEX_FROM_BACK:
                self.ordering.insert(max(len(self.ordering) - location.value, 0), idx)
            elif kind is InsertKind.AFTER:
                self.ordering.insert(self.ordering.index(location.value) + 1, idx)
            else:
                self.ordering.insert(self.ordering.index(location.value), idx)

            self._check_consistency()
            return idx

    def clear(self, now: int) -> None:
        """Wipe everything drawn, zombie lines included."""
        with self.lock:
            drawable = self.draw_target.drawable(True, now)
            if drawable is None:
                return
            drawable.adjust_last_line_count(LineAdjust.clear(self.zombie_lines_count))
            self.zombie_lines_count = 0
            drawable.clear()

    def remove_idx(self, idx: int) -> None:
        """Free member ``idx``; removing it twice has no further effect."""
        with self.lock:
            if idx in self.free_set:
                return
            handle = self.members[idx].handle
            if handle is not None:
                handle.attached = False
            self.members[idx] = _Member()
            self.free_set.append(idx)
            self.ordering = [index for index in self.ordering if index != idx]
            self._check_consistency()

    def _check_consistency(self) -> None:
        if len(self) != len(self.ordering):
            raise RuntimeError("Draw state is inconsistent")

    def __len__(self) -> int:
        return len(self.members) - len(self.free_set)


class MultiProgress:
    """Manages several progress displays drawn together, safe across threads.

    Each member is represented by the draw target that ``add`` and the
    ``insert`` methods return.
    """

    def __init__(self, draw_target: Optional[ProgressDrawTarget] = None) -> None:
        if draw_target is None:
            draw_target = ProgressDrawTarget.stderr()
        self.state = MultiState(draw_target)

    def __repr__(self) -> str:
        return f"MultiProgress({self.state!r})"

    def set_draw_target(self, target: ProgressDrawTarget) -> None:
        with self.state.lock:
            self.state.draw_target.disconnect(time.monotonic_ns())
            self.state.draw_target = target

    def set_move_cursor(self, move_cursor: bool) -> None:
        """Move the cursor instead of clearing lines; only for a fixed set of members."""
        with self.state.lock:
            self.state.move_cursor = move_cursor

    def set_alignment(self, alignment: MultiProgressAlignment) -> None:
        with self.state.lock:
            self.state.alignment = alignment

    def _internalize(self, location: InsertLocation) -> ProgressDrawTarget:
        with self.state.lock:
            idx = self.state.insert(location)
            handle = _MemberHandle(self.state)
            self.state.members[idx].handle = handle
            return ProgressDrawTarget.new_remote(handle, idx)

    def _index_of(self, target: ProgressDrawTarget) -> int:
        remote = target.remote()
        if remote is None:
            raise ValueError("draw target is not a member of a multi progress")
        handle, idx = remote
        if not isinstance(handle, _MemberHandle) or handle.state is not self.state:
            raise ValueError("draw target belongs to another multi progress")
        if not handle.attached:
            raise ValueError("draw target has been removed")
        return idx

    def add(self) -> ProgressDrawTarget:
        """Add a member at the end and return its draw target."""
        return self._internalize(InsertLocation(InsertKind.END))

    def insert(self, index: int) -> ProgressDrawTarget:
        """Add a member at position ``index``, or at the end if past it."""
        return self._internalize(InsertLocation(InsertKind.INDEX, index))

    def insert_from_back(self, index: int) -> ProgressDrawTarget:
        """Add a member ``index`` places from the end, or at the start if past it."""
        return self._internalize(InsertLocation(InsertKind.INDEX_FROM_BACK, index))

    def insert_before(self, before: ProgressDrawTarget) -> ProgressDrawTarget:
        """Add a member just before the member ``before``."""
        with self.state.lock:
            idx = self._index_of(before)
            return self._internalize(InsertLocation(InsertKind.BEFORE, idx))

    def insert_after(self, after: ProgressDrawTarget) -> ProgressDrawTarget:
        """Add a member just after the member ``after``."""
        with self.state.lock:
            idx = self._index_of(after)
            return self._internalize(InsertLocation(InsertKind.AFTER, idx))

    def remove(self, target: ProgressDrawTarget) -> None:
        """Remove a member; targets that are not members are ignored."""
        remote = target.remote()
        if remote is None:
            return
        handle, idx = remote
        if not isinstance(handle, _MemberHandle) or handle.state is not self.state:
            raise ValueError("draw target belongs to another multi progress")
        with self.state.lock:
            if not handle.attached:
                return
            self.state.remove_idx(idx)

    def println(self, msg: str) -> None:
        """Print a line above all members; does nothing on a hidden target."""
        with self.state.lock:
            self.state.println(msg, time.monotonic_ns())

    def suspend(self, f: Callable[[], R]) -> R:
        """Hide all members, run ``f`` and draw them again; returns ``f()``."""
        with self.state.lock:
            return self.state.suspend(f, time.monotonic_ns())

    def clear(self) -> None:
        with self.state.lock:
            self.state.clear(time.monotonic_ns())

    def is_hidden(self) -> bool:
        return self.state.is_hidden()