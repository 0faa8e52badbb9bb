"""A small in-memory terminal emulator for exercising drawing code."""

from __future__ import annotations

import threading
from typing import Optional

from wcwidth import wcwidth

_ESC = "\x1b"

# A cell is None when never written (or erased), "" when it continues a
# wide character to its left, and otherwise the text shown in it.
Cell = Optional[str]


class _Screen:
    """Grid of cells plus a cursor, driven by a tiny escape-sequence parser."""

    def __init__(self, rows: int, cols: int) -> None:
        self.rows = rows
        self.cols = cols
        self.grid: list[list[Cell]] = [self._blank_row() for _ in range(rows)]
        self.row = 0
        self.col = 0
        self._mode = "ground"
        self._params = ""

    def _blank_row(self) -> list[Cell]:
        return [None] * self.cols

    def feed(self, text: str) -> None:
        for char in text:
            if self._mode == "escape":
                self._escape(char)
            elif self._mode == "csi":
                self._csi(char)
            else:
                self._ground(char)

    def _ground(self, char: str) -> None:
        if char == _ESC:
            self._mode = "escape"
        elif char == "\r":
            self.col = 0
        elif char in "\n\x0b\x0c":
            self._linefeed()
        elif char == "\b":
            self.col = max(self.col - 1, 0)
        elif char == "\t":
            self.col = min((self.col // 8 + 1) * 8, self.cols - 1)
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            return
        else:
            self._print(char)

    def _escape(self, char: str) -> None:
        if char == "[":
            self._mode = "csi"
            self._params = ""
        else:
            self._mode = "ground"

    def _csi(self, char: str) -> None:
        code = ord(char)
        if char.isdigit() or char in ";?":
            self._params += char
        elif 0x40 <= code <= 0x7E:
            self._mode = "ground"
            self._dispatch(char, self._params)
        elif code < 0x20 or code > 0x7E:
            self._mode = "ground"

    def _param_list(self, params: str) -> list[int]:
        return [int(part) if part.isdigit() else 0 for part in params.lstrip("?").split(";")]

    def _dispatch(self, final: str, params: str) -> None:
        values = self._param_list(params)
        count = values[0] or 1
        if final == "A":
            self.row = max(self.row - count, 0)
        elif final == "B":
            self.row = min(self.row + count, self.rows - 1)
        elif final == "C":
            self.col = min(self.col + count, self.cols - 1)
        elif final == "D":
            self.col = max(self.col - count, 0)
        elif final == "K":
            self._erase_line(values[0])
        elif final == "J":
            self._erase_display(values[0])
        elif final in "Hf":
            target_row = values[0] or 1
            target_col = (values[1] if len(values) > 1 else 0) or 1
            self.row = min(target_row, self.rows) - 1
            self.col = min(target_col, self.cols) - 1

    def _erase_line(self, mode: int) -> None:
        line = self.grid[self.row]
        col = min(self.col, self.cols - 1)
        if mode == 0:
            span = range(col, self.cols)
        elif mode == 1:
            span = range(0, col + 1)
        elif mode == 2:
            span = range(self.cols)
        else:
            return
        for index in span:
            line[index] = None

    def _erase_display(self, mode: int) -> None:
        if mode == 0:
            self._erase_line(0)
            for index in range(self.row + 1, self.rows):
                self.grid[index] = self._blank_row()
        elif mode == 1:
            self._erase_line(1)
            for index in range(self.row):
                self.grid[index] = self._blank_row()
        elif mode in (2, 3):
            self.grid = [self._blank_row() for _ in range(self.rows)]

    def _linefeed(self) -> None:
        if self.row == self.rows - 1:
            self.grid.pop(0)
            self.grid.append(self._blank_row())
        else:
            self.row += 1

    def _print(self, char: str) -> None:
        width = wcwidth(char)
        if width < 0:
            return
        if width == 0:
            self._attach_combining(char)
            return
        if width > self.cols:
            return
        if self.col + width > self.cols:
            self.col = 0
            self._linefeed()
        line = self.grid[self.row]
        line[self.col] = char
        for extra in range(1, width):
            line[self.col + extra] = ""
        self.col += width

    def _attach_combining(self, char: str) -> None:
        line = self.grid[self.row]
        index = min(self.col, self.cols) - 1
        while index >= 0 and line[index] == "":
            index -= 1
        if index >= 0 and line[index]:
            line[index] += char

    def render_row(self, line: list[Cell]) -> str:
        written = [index for index, cell in enumerate(line) if cell is not None]
        if not written:
            return ""
        return "".join(" " if cell is None else cell for cell in line[: written[-1] + 1])


class InMemoryTerm:
    """A thread-safe terminal that keeps its screen in memory.

    It understands carriage return, line feed, cursor movement and line
    erasing, which is what progress drawing needs. Output is queued and
    applied to the screen on flush or whenever the screen is inspected.
    """

    def __init__(self, rows: int, cols: int) -> None:
        if rows <= 0:
            raise ValueError("rows must be > 0")
        if cols <= 0:
            raise ValueError("cols must be > 0")
        self._lock = threading.Lock()
        self._screen = _Screen(rows, cols)
        self._pending: list[str] = []

    def __repr__(self) -> str:
        return f"InMemoryTerm(rows={self._screen.rows}, cols={self._screen.cols})"

    def _drain(self) -> None:
        """Apply queued output to the screen; the lock must be held."""
        if self._pending:
            text = "".join(self._pending)
            self._pending.clear()
            self._screen.feed(text)

    def reset(self) -> None:
        """Blank the screen and home the cursor, keeping the size."""
        with self._lock:
            self._pending.clear()
            self._screen = _Screen(self._screen.rows, self._screen.cols)

    def contents(self) -> str:
        """Return the screen text, one line per row, without trailing blanks."""
        with self._lock:
            self._drain()
            lines = [self._screen.render_row(line) for line in self._screen.grid]
        while lines and not lines[-1]:
            lines.pop()
        return "\n".join(line.rstrip() for line in lines)

    def width(self) -> int:
        with self._lock:
            return self._screen.cols

    def cursor_position(self) -> tuple[int, int]:
        """Return the cursor as ``(row, col)``, both zero based."""
        with self._lock:
            self._drain()
            return self._screen.row, self._screen.col

    def _write(self, text: str) -> None:
        with self._lock:
            self._pending.append(text)

    def move_cursor_up(self, n: int) -> None:
        if n:
            self._write(f"{_ESC}[{n}A")

    def move_cursor_down(self, n: int) -> None:
        if n:
            self._write(f"{_ESC}[{n}B")

    def move_cursor_right(self, n: int) -> None:
        if n:
            self._write(f"{_ESC}[{n}C")

    def move_cursor_left(self, n: int) -> None:
        if n:
            self._write(f"{_ESC}[{n}D")

    def write_line(self, s: str) -> None:
        """Write ``s`` and move to the start of the next line."""
        body = s[:-1] if s.endswith("\n") else s
        if "\n" in body:
            raise ValueError("calling write_line with embedded newlines is not allowed")
        self._write(s + "\r\n")

    def write_str(self, s: str) -> None:
        self._write(s)

    def clear_line(self) -> None:
        self._write(f"\r{_ESC}[2K")

    def flush(self) -> None:
        """Apply all queued output to the screen."""
        with self._lock:
            self._drain()