"""Draw targets: where progress output is painted and how often."""

from __future__ import annotations

import contextlib
import enum
import os
import re
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Protocol, TextIO, Union, runtime_checkable

from wcwidth import wcswidth, wcwidth

MAX_BURST = 20
DEFAULT_REFRESH_RATE = 20
_DEFAULT_WIDTH = 79
_NANOS_PER_MILLI = 1_000_000

_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)|\x1b[@-Z\\-_]")


def measure_text_width(text: str) -> int:
    """Return the number of terminal columns ``text`` occupies, ignoring ANSI codes."""
    plain = _ANSI_RE.sub("", text)
    width = wcswidth(plain)
    if width >= 0:
        return width
    return sum(max(wcwidth(char), 0) for char in plain)


@runtime_checkable
class TermLike(Protocol):
    """Anything that can be painted on like a terminal."""

    def width(self) -> int: ...

    def move_cursor_up(self, n: int) -> None: ...

    def move_cursor_down(self, n: int) -> None: ...

    def move_cursor_right(self, n: int) -> None: ...

    def move_cursor_left(self, n: int) -> None: ...

    def write_line(self, s: str) -> None: ...

    def write_str(self, s: str) -> None: ...

    def clear_line(self) -> None: ...

    def flush(self) -> None: ...


class StreamTerm:
    """A buffered terminal over a text stream; output appears on ``flush``."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._buffer: list[str] = []

    def __repr__(self) -> str:
        return f"StreamTerm({self._stream!r})"

    def is_term(self) -> bool:
        isatty = getattr(self._stream, "isatty", None)
        if isatty is None:
            return False
        try:
            return bool(isatty())
        except (OSError, ValueError):
            return False

    def width(self) -> int:
        try:
            return os.get_terminal_size(self._stream.fileno()).columns
        except (AttributeError, OSError, ValueError):
            return _DEFAULT_WIDTH

    def _move(self, n: int, code: str) -> None:
        if n > 0:
            self._buffer.append(f"\x1b[{n}{code}")

    def move_cursor_up(self, n: int) -> None:
        self._move(n, "A")

    def move_cursor_down(self, n: int) -> None:
        self._move(n, "B")

    def move_cursor_right(self, n: int) -> None:
        self._move(n, "C")

    def move_cursor_left(self, n: int) -> None:
        self._move(n, "D")

    def write_line(self, s: str) -> None:
        self._buffer.append(s + "\n")

    def write_str(self, s: str) -> None:
        self._buffer.append(s)

    def clear_line(self) -> None:
        self._buffer.append("\r\x1b[2K")

    def flush(self) -> None:
        if self._buffer:
            self._stream.write("".join(self._buffer))
            self._buffer.clear()
        self._stream.flush()


class MultiProgressAlignment(enum.Enum):
    """Vertical alignment of a multi progress when some of its bars go away."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class LineAdjust:
    """A change to the number of lines the next draw will clear.

    ``clear`` adds lines so they are wiped by the next draw; ``keep``
    subtracts lines so they are left on screen.
    """

    count: int
    keep_lines: bool

    @classmethod
    def clear(cls, count: int) -> "LineAdjust":
        return cls(count, False)

    @classmethod
    def keep(cls, count: int) -> "LineAdjust":
        return cls(count, True)

    def apply(self, last_line_count: int) -> int:
        """Return ``last_line_count`` adjusted, never below zero."""
        if self.keep_lines:
            return max(last_line_count - self.count, 0)
        return last_line_count + self.count


class RateLimiter:
    """Limit draws to a rate while allowing occasional bursts.

    Clock readings are monotonic nanoseconds, as from ``time.monotonic_ns``.
    """

    def __init__(self, rate: int, now: Optional[int] = None) -> None:
        if not 1 <= rate <= 255:
            raise ValueError(f"refresh rate must be between 1 and 255, got {rate}")
        self.interval = 1000 // rate  # milliseconds
        self.capacity = MAX_BURST
        self.prev = time.monotonic_ns() if now is None else now

    def __repr__(self) -> str:
        return f"RateLimiter(interval={self.interval}ms, capacity={self.capacity})"

    def allow(self, now: int) -> bool:
        """Return whether a draw at ``now`` may happen, consuming capacity if so."""
        if now < self.prev:
            return False
        elapsed = now - self.prev
        if self.capacity == 0 and elapsed < self.interval * _NANOS_PER_MILLI:
            return False
        new = (elapsed // _NANOS_PER_MILLI) // self.interval
        remainder = elapsed % self.interval * _NANOS_PER_MILLI
        self.capacity = min(MAX_BURST, self.capacity + new - 1)
        self.prev = now - remainder
        return True


@dataclass
class DrawState:
    """The lines of one element as last rendered."""

    lines: list[str] = field(default_factory=list)
    orphan_lines_count: int = 0
    move_cursor: bool = False
    alignment: MultiProgressAlignment = MultiProgressAlignment.TOP

    def draw_to_term(self, term: Any, last_line_count: int) -> int:
        """Paint the lines over the previous output; return the new line count."""
        if self.lines and self.move_cursor:
            term.move_cursor_up(last_line_count)
        else:
            n = last_line_count
            term.move_cursor_up(max(n - 1, 0))
            for i in range(n):
                term.clear_line()
                if i + 1 != n:
                    term.move_cursor_down(1)
            term.move_cursor_up(max(n - 1, 0))

        shift = 0
        if self.alignment is MultiProgressAlignment.BOTTOM and len(self.lines) < last_line_count:
            shift = last_line_count - len(self.lines)
            for _ in range(shift):
                term.write_line("")

        for position, line in enumerate(self.lines, start=1):
            if position != len(self.lines):
                term.write_line(line)
            else:
                term.write_str(line)
                padding = max(term.width() - measure_text_width(line), 0)
                term.write_str(" " * padding)

        term.flush()
        return len(self.lines) - self.orphan_lines_count + shift

    def reset(self) -> None:
        self.lines.clear()
        self.orphan_lines_count = 0


@dataclass
class _TermLikeKind:
    term: Any
    last_line_count: int = 0
    draw_state: DrawState = field(default_factory=DrawState)


@dataclass
class _TermKind(_TermLikeKind):
    rate_limiter: RateLimiter = field(default_factory=lambda: RateLimiter(DEFAULT_REFRESH_RATE))


@dataclass
class _MultiKind:
    state: Any
    idx: int


@dataclass
class _HiddenKind:
    pass


_Kind = Union[_TermKind, _TermLikeKind, _MultiKind, _HiddenKind]


class Drawable(ABC):
    """A target that is ready to be painted right now."""

    @abstractmethod
    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        """Change how many previously drawn lines the next draw clears."""

    @abstractmethod
    def state(self) -> contextlib.AbstractContextManager[DrawState]:
        """Context manager giving the emptied draw state to fill with lines."""

    @abstractmethod
    def draw(self) -> None:
        """Paint the current draw state."""

    def clear(self) -> None:
        """Paint an empty state, wiping what was drawn."""
        with self.state():
            pass
        self.draw()


class _TermDrawable(Drawable):
    def __init__(self, kind: _TermLikeKind) -> None:
        self._kind = kind

    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        self._kind.last_line_count = adjust.apply(self._kind.last_line_count)

    @contextlib.contextmanager
    def state(self) -> Iterator[DrawState]:
        draw_state = self._kind.draw_state
        draw_state.reset()
        yield draw_state

    def draw(self) -> None:
        kind = self._kind
        kind.last_line_count = kind.draw_state.draw_to_term(kind.term, kind.last_line_count)


class _MultiDrawable(Drawable):
    def __init__(self, state: Any, idx: int, force_draw: bool, now: int) -> None:
        self._state = state
        self._idx = idx
        self._force_draw = force_draw
        self._now = now

    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        """The owning multi progress keeps the line count, so nothing changes here."""

    @contextlib.contextmanager
    def state(self) -> Iterator[DrawState]:
        with self._state.draw_state(self._idx) as draw_state:
            draw_state.reset()
            yield draw_state

    def draw(self) -> None:
        self._state.draw(self._force_draw, None, self._now)


class ProgressDrawTarget:
    """Where a progress bar or multi progress paints, and how often."""

    def __init__(self, kind: _Kind) -> None:
        self._kind = kind

    def __repr__(self) -> str:
        return f"ProgressDrawTarget({type(self._kind).__name__.strip('_')})"

    @classmethod
    def stdout(cls, refresh_rate: int = DEFAULT_REFRESH_RATE) -> "ProgressDrawTarget":
        """Draw to standard output at most ``refresh_rate`` times a second."""
        return cls.term(StreamTerm(sys.stdout), refresh_rate)

    @classmethod
    def stderr(cls, refresh_rate: int = DEFAULT_REFRESH_RATE) -> "ProgressDrawTarget":
        """Draw to standard error at most ``refresh_rate`` times a second."""
        return cls.term(StreamTerm(sys.stderr), refresh_rate)

    @classmethod
    def term(cls, term: Any, refresh_rate: int = DEFAULT_REFRESH_RATE) -> "ProgressDrawTarget":
        """Draw to a terminal; nothing is drawn when it is not attended by a user."""
        limiter = RateLimiter(refresh_rate, time.monotonic_ns())
        return cls(_TermKind(term=term, rate_limiter=limiter))

    @classmethod
    def term_like(cls, term_like: Any) -> "ProgressDrawTarget":
        """Draw to any terminal-like object, without rate limiting."""
        return cls(_TermLikeKind(term=term_like))

    @classmethod
    def hidden(cls) -> "ProgressDrawTarget":
        """A target that never draws."""
        return cls(_HiddenKind())

    @classmethod
    def new_remote(cls, state: Any, idx: int) -> "ProgressDrawTarget":
        """A target that draws as member ``idx`` of a shared multi progress state."""
        return cls(_MultiKind(state=state, idx=idx))

    def is_hidden(self) -> bool:
        kind = self._kind
        if isinstance(kind, _HiddenKind):
            return True
        if isinstance(kind, _TermKind):
            return not kind.term.is_term()
        if isinstance(kind, _MultiKind):
            return kind.state.is_hidden()
        return False

    def width(self) -> int:
        kind = self._kind
        if isinstance(kind, _HiddenKind):
            return 0
        if isinstance(kind, _MultiKind):
            return kind.state.width()
        return kind.term.width()

    def mark_zombie(self) -> None:
        """Tell the owning multi progress, if any, that this bar is gone."""
        kind = self._kind
        if isinstance(kind, _MultiKind):
            kind.state.mark_zombie(kind.idx)

    def drawable(self, force_draw: bool, now: int) -> Optional[Drawable]:
        """Return a drawable if painting is due at ``now``, else ``None``."""
        kind = self._kind
        if isinstance(kind, _TermKind):
            if not kind.term.is_term():
                return None
            if force_draw or kind.rate_limiter.allow(now):
                return _TermDrawable(kind)
            return None
        if isinstance(kind, _MultiKind):
            return _MultiDrawable(kind.state, kind.idx, force_draw, now)
        if isinstance(kind, _TermLikeKind):
            return _TermDrawable(kind)
        return None

    def disconnect(self, now: int) -> None:
        """Detach cleanly, wiping this member's lines from a multi progress."""
        kind = self._kind
        if isinstance(kind, _MultiKind):
            with contextlib.suppress(OSError):
                _MultiDrawable(kind.state, kind.idx, True, now).clear()

    def remote(self) -> Optional[tuple[Any, int]]:
        """Return ``(state, idx)`` for a multi progress member, else ``None``."""
        kind = self._kind
        if isinstance(kind, _MultiKind):
            return kind.state, kind.idx
        return None

    def adjust_last_line_count(self, adjust: LineAdjust) -> None:
        kind = self._kind
        if isinstance(kind, _TermLikeKind):
            kind.last_line_count = adjust.apply(kind.last_line_count)