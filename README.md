# tickbar

Building blocks for progress reporting in the terminal:

- `tickbar.format` has helpers that turn durations, byte sizes and counts into
  text that people can read.
- `tickbar.draw_target` decides where progress lines are painted. They can go
  to a terminal stream through a rate limiter, to any terminal-like object, or
  nowhere.
- `tickbar.multi` has `MultiProgress`, which keeps several lines stacked in a
  chosen order. You can insert and remove lines and print text above them.
- `tickbar.in_memory` has `InMemoryTerm`, a small virtual terminal for tests.
  It handles carriage return, line feed, cursor movement and line erasing.

## Installation

```
pip install tickbar
```

## Formatting

```python
from datetime import timedelta
from tickbar.format import (
    binary_bytes, decimal_bytes, formatted_duration, human_bytes,
    human_count, human_duration, human_float_count,
)

human_bytes(3 * 1024 * 1024)                          # '3.00 MiB'
human_duration(timedelta(seconds=8))                  # '8 seconds'
human_duration(timedelta(minutes=2), alternate=True)  # '2m'
formatted_duration(timedelta(hours=26, seconds=5))    # '1d 02:00:05'
human_count(33857009)                                 # '33,857,009'
human_float_count(33857009.123456)                    # '33,857,009.1235'
```

You can pass a duration as a `timedelta` or as a number of seconds. Negative
values raise `ValueError`. `human_duration` rounds to the nearest unit. It
never shows "1" of any unit larger than a second. Near 1.5 units it moves down
to the next smaller unit, so 89 seconds stays "89 seconds".

## Draw targets

```python
import time
from tickbar.draw_target import ProgressDrawTarget
from tickbar.in_memory import InMemoryTerm

term = InMemoryTerm(10, 80)
target = ProgressDrawTarget.term_like(term)

drawable = target.drawable(True, time.monotonic_ns())
with drawable.state() as state:
    state.lines.append("[#####     ] 50%")
drawable.draw()
print(term.contents())   # '[#####     ] 50%'
```

The next draw paints over the lines from the previous one. Here is what each
constructor gives you:

- `ProgressDrawTarget.stderr()` and `ProgressDrawTarget.stdout()` draw to the
  standard streams. By default they draw at most 20 times a second and allow
  short bursts. If the stream is not a terminal, nothing is drawn, so
  redirected output has no escape codes in it.
- `ProgressDrawTarget.term(term, refresh_rate)` works the same way for any
  object that has `is_term()`, such as `StreamTerm`.
- `ProgressDrawTarget.term_like(obj)` draws to any `TermLike` object and
  applies no rate limit.
- `ProgressDrawTarget.hidden()` never draws.

## Several lines at once

```python
import time
from tickbar.draw_target import ProgressDrawTarget
from tickbar.in_memory import InMemoryTerm
from tickbar.multi import MultiProgress

term = InMemoryTerm(10, 40)
multi = MultiProgress(ProgressDrawTarget.term_like(term))

first = multi.add()
second = multi.insert_after(first)

multi.println("starting!")
print(term.contents())   # 'starting!'

drawable = first.drawable(True, time.monotonic_ns())
with drawable.state() as state:
    state.lines.append("first line")
drawable.draw()

multi.remove(second)
multi.clear()
```

Each call to `add`, `insert`, `insert_from_back`, `insert_before` or
`insert_after` returns the draw target for one new member. The `MultiProgress`
lays out whatever is drawn through that target. Calling `suspend(f)` wipes the
display, runs `f`, draws everything again and returns the result of `f`.
`set_alignment(MultiProgressAlignment.BOTTOM)` keeps the block aligned to its
bottom edge when members go away.

## What it does not do

tickbar has no progress bar object, no template or style language, and no
iterator wrappers. It does not compute a position, a rate or an ETA. You
compose the text of each line and put it into a draw state yourself, as shown
above.

## Running the tests

```
pip install -e .[test]
pytest
```