"""Dataclasses shared by the classifier, the correction engine and the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class ClassificationVerdict:
    """Per-file defect flags, computed once and never mutated.

    The flags are not mutually exclusive. ``is_fine`` is derived so it can
    never disagree with them.
    """

    is_before_si_patch: bool = False
    is_from_broken_patch: bool = False
    remove_switch_state_readings: bool = False

    @property
    def is_fine(self) -> bool:
        return not (self.is_before_si_patch or self.is_from_broken_patch or self.remove_switch_state_readings)

    def as_dict(self) -> Dict[str, bool]:
        return {
            "is_before_si_patch": self.is_before_si_patch,
            "is_from_broken_patch": self.is_from_broken_patch,
            "remove_switch_state_readings": self.remove_switch_state_readings,
            "is_fine": self.is_fine,
        }


@dataclass
class DedupState:
    """Last value of one reading kind within one file."""

    last: Tuple[float, ...] = ()
    has_previous: bool = False
    skipped: int = 0

    def remember(self, values: Tuple[float, ...]) -> None:
        self.last = values
        self.has_previous = True
