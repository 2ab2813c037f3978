from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True, slots=True)
class TimeControl:
    name: str
    initial_seconds: int
    increment_seconds: int = 0
    rating_field: str | None = None

    @property
    def label(self) -> str:
        return f"{self.initial_seconds // 60}+{self.increment_seconds}"


PRESETS: Dict[str, TimeControl] = {
    "bullet": TimeControl("bullet", 60, rating_field="bullet_elo"),
    "blitz": TimeControl("blitz", 180, rating_field="blitz_elo"),
    "rapid": TimeControl("rapid", 600, rating_field="rapid_elo"),
    "casual": TimeControl("casual", 600),
}

# (mode, preset) pairs offered on the dashboard.
QUICK_START: Tuple[Tuple[str, str], ...] = (
    ("ai", "bullet"),
    ("ai", "blitz"),
    ("ai", "rapid"),
    ("online", "blitz"),
    ("online", "rapid"),
    ("local", "casual"),
)


def get_time_control(name: str) -> TimeControl:
    try:
        return PRESETS[name.lower()]
    except (AttributeError, KeyError) as exc:
        raise ValueError(f"Unknown time control {name!r}; expected one of {sorted(PRESETS)}.") from exc


def classify(initial_seconds: int) -> TimeControl:
    """Map an arbitrary starting clock onto the preset whose rating it affects."""
    if initial_seconds < 180:
        return PRESETS["bullet"]
    if initial_seconds < 600:
        return PRESETS["blitz"]
    return PRESETS["rapid"]


__all__ = ["PRESETS", "QUICK_START", "TimeControl", "classify", "get_time_control"]
