from dataclasses import dataclass, field
from typing import List

from skinarena.domain.roulette_rules import SPIN_INTERVAL


@dataclass
class RoundState:
    """The live roulette round. Only the RoundClock changes it."""

    current_number: int = 0
    last_numbers: List[int] = field(default_factory=list)  # newest first
    remaining: int = SPIN_INTERVAL
    spinning: bool = False
    processing: bool = False

    @property
    def phase(self) -> str:
        if self.processing:
            return "processing"
        if self.spinning:
            return "spinning"
        return "counting-down"
