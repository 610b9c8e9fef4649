"""Production stages of a batch.

A batch starts in ``pressing`` and moves forward one stage at a time until it
is ``bottled``. There is no transition out of ``bottled`` and no way to skip
or go back; the next stage is always derived from the current one.
"""
from __future__ import annotations

from typing import Final, Optional

INITIAL_STAGE: Final[str] = "pressing"
TERMINAL_STAGE: Final[str] = "bottled"

TRANSITIONS: Final[dict[str, Optional[str]]] = {
    "pressing": "fermenting",
    "fermenting": "aging",
    "aging": "bottled",
    "bottled": None,
}


def is_valid_stage(stage: str) -> bool:
    return stage in TRANSITIONS


def next_stage(stage: str) -> Optional[str]:
    """Return the successor of ``stage``, or None when ``stage`` is terminal.

    Raises ValueError for an unknown stage so a corrupted row is never
    silently advanced.
    """
    if stage not in TRANSITIONS:
        raise ValueError(f"unknown stage: {stage!r}")
    return TRANSITIONS[stage]


def is_complete(stage: str) -> bool:
    return next_stage(stage) is None


def stage_sequence() -> list[str]:
    seq = [INITIAL_STAGE]
    nxt = TRANSITIONS[INITIAL_STAGE]
    while nxt is not None:
        seq.append(nxt)
        nxt = TRANSITIONS[nxt]
    return seq
