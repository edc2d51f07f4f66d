"""Citrus juice id-prefix convention.

Citrus juice mixtures carry ids such as ``__citrus-lemon__<random>``. The
prefix survives cloning and serialization, which lets the pH solver find
acids that came from natural juice.

Natural juices hold most of their citric acid as citrate, balanced by
minerals the composition model does not track. The factors below are the
fraction treated as already dissociated; they were calibrated to measured
juice pH (lemon 2.3, lime 2.4, orange 3.3, grapefruit 3.3).
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

from mixcalc.errors import InvalidInputError
from mixcalc.models import component_id

CITRUS_NAMES: Tuple[str, ...] = ("lemon", "lime", "orange", "grapefruit")

DISSOCIATION_FACTORS: Dict[str, float] = {
    "lemon": 0.9057,
    "lime": 0.93828,
    "orange": 0.99157,
    "grapefruit": 0.9924,
}

_PREFIX_PATTERN = re.compile(r"^__[-\w]+?__", re.IGNORECASE)
_CITRUS_PATTERN = re.compile(
    r"^__citrus-(" + "|".join(CITRUS_NAMES) + r")__", re.IGNORECASE
)


def id_prefix(identifier: str) -> Optional[str]:
    match = _PREFIX_PATTERN.match(identifier)
    return match.group(0) if match else None


def citrus_prefix(name: str) -> str:
    if name not in CITRUS_NAMES:
        raise InvalidInputError(f"Unknown citrus juice: {name}")
    return f"__citrus-{name}__"


def citrus_id(name: str, suffix: Optional[str] = None) -> str:
    return f"{citrus_prefix(name)}{suffix or component_id()}"


def citrus_name(identifier: str) -> Optional[str]:
    match = _CITRUS_PATTERN.match(identifier)
    return match.group(1).lower() if match else None


def dissociation_factor(identifier: str) -> float:
    """Fraction of citric acid treated as pre-dissociated; 0 for non-citrus ids."""
    name = citrus_name(identifier)
    return DISSOCIATION_FACTORS[name] if name else 0.0
