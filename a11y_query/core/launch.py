# a11y_query/core/launch.py
from __future__ import annotations

"""Chromium launch arguments
----------------------------
Element.computedRole / computedName only exist when Blink's
ComputedAccessibilityInfo feature is on. These helpers add it to a set of
launch arguments without disturbing other enabled features.
"""

from typing import Any, Dict, List, Optional, Sequence

from a11y_query.utils.config import Settings, get_settings

BLINK_FEATURES_FLAG = "--enable-blink-features="
ACCESSIBILITY_FEATURE = "ComputedAccessibilityInfo"


def launch_args(args: Optional[Sequence[str]] = None) -> List[str]:
    """
    Return a copy of `args` with the accessibility feature enabled.

    launch_args()                                  -> ["--enable-blink-features=ComputedAccessibilityInfo"]
    launch_args(["--enable-blink-features=Foo"])   -> ["--enable-blink-features=Foo,ComputedAccessibilityInfo"]
    """
    out = list(args or [])
    idx = next((i for i, a in enumerate(out) if a.startswith(BLINK_FEATURES_FLAG)), -1)
    if idx == -1:
        out.append(BLINK_FEATURES_FLAG + ACCESSIBILITY_FEATURE)
        return out
    features = out[idx][len(BLINK_FEATURES_FLAG):].split(",")
    if ACCESSIBILITY_FEATURE not in features:
        out[idx] += "," + ACCESSIBILITY_FEATURE
    return out


def launch_options(settings: Optional[Settings] = None, **overrides: Any) -> Dict[str, Any]:
    """Keyword arguments for `playwright.chromium.launch()`."""
    s = settings or get_settings()
    kwargs: Dict[str, Any] = {
        "headless": s.HEADLESS,
        "args": launch_args(s.LAUNCH_ARGS),
    }
    if s.BROWSER_CHANNEL:
        kwargs["channel"] = s.BROWSER_CHANNEL
    kwargs.update(overrides)
    if "args" in overrides:
        kwargs["args"] = launch_args(overrides["args"])
    return kwargs
