# a11y_query/core/stack.py
from __future__ import annotations

"""Stack attribution
--------------------
Errors raised inside the polling task carry a stack that ends in the event
loop, not in the test that called find(). The attributor captures the call
site when a public operation starts and, when an error escapes, merges the
two stacks and drops this package's own frames so the trace reads from the
user's call site to the point of failure.
"""

import os
import traceback
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from a11y_query.utils.config import get_settings

PACKAGE_DIR = str(Path(__file__).resolve().parent.parent) + os.sep

Frames = List[traceback.FrameSummary]


def _key(frame: traceback.FrameSummary) -> tuple:
    return (frame.filename, frame.lineno, frame.name)


class StackAttributor:
    """
    Merge a captured caller stack into an error's stack.

    `markers` are path fragments; any frame whose filename contains one is
    internal and is dropped. The package directory is always a marker.
    """

    def __init__(self, markers: Optional[Iterable[str]] = None) -> None:
        extra = list(markers) if markers is not None else list(get_settings().INTERNAL_STACK_MARKERS)
        self.markers: tuple[str, ...] = tuple([PACKAGE_DIR, *extra])

    def is_internal(self, frame: traceback.FrameSummary) -> bool:
        return any(m in frame.filename for m in self.markers)

    def trim(self, frames: Sequence[traceback.FrameSummary]) -> Frames:
        """Drop internal frames and repeats, keeping outermost-first order."""
        seen: set[tuple] = set()
        out: Frames = []
        for f in frames:
            k = _key(f)
            if k in seen or self.is_internal(f):
                continue
            seen.add(k)
            out.append(f)
        return out

    def capture(self) -> Frames:
        """Stack of the current call site, without internal frames."""
        return self.trim(traceback.extract_stack())

    def own_frames(self, error: BaseException) -> Frames:
        stack = getattr(error, "stack", None)
        if isinstance(stack, list) and all(isinstance(f, traceback.FrameSummary) for f in stack):
            return list(stack)
        return list(traceback.extract_tb(error.__traceback__))

    def attribute(self, error: BaseException, caller: Sequence[traceback.FrameSummary]) -> BaseException:
        """
        Attach the merged stack to `error` (as `error.stack`) and return it.
        Already attributed errors are returned untouched.
        """
        if getattr(error, "attributed", False):
            return error

        callsite = self.trim(caller)
        error.stack = self.trim([*callsite, *self.own_frames(error)])  # type: ignore[attr-defined]
        error.attributed = True  # type: ignore[attr-defined]
        if callsite:
            top = callsite[-1]
            error.add_note(f"Query started at {top.filename}:{top.lineno} in {top.name}")
        return error


def format_stack(error: BaseException) -> str:
    """Render an attributed error like a traceback, most recent call last."""
    frames = getattr(error, "stack", None) or traceback.extract_tb(error.__traceback__)
    name = getattr(error, "name", type(error).__name__)
    lines = ["Traceback (most recent call last):\n"]
    lines.extend(traceback.format_list(frames))
    lines.append(f"{name}: {error}\n")
    return "".join(lines)
