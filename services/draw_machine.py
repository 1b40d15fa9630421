# services/draw_machine.py
"""Lucky-draw reveal flow for the staff screen.

The machine is pure state: the page stores it in ``st.session_state`` and
drives it from buttons and its refresh loop, so the flow can be tested
without timers.

    IDLE --start--> DRAWING --stop_shuffle--> REVEALING --reveal_next/all--> COMPLETE
      ^                                                                          |
      +-------------------------------- reset ----------------------------------+
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from domain.errors import RuleViolation
from domain.models import DrawSlot, PrizeTemplate, User
from services.draws_service import pick_winners

log = logging.getLogger(__name__)

IDLE = "idle"
DRAWING = "drawing"
REVEALING = "revealing"
COMPLETE = "complete"


class DrawMachine:
    def __init__(self, template: PrizeTemplate, candidates: Sequence[User],
                 rng: Optional[random.Random] = None):
        self.template = template
        self.candidates = list(candidates)
        self.rng = rng or random.SystemRandom()
        self.state = IDLE
        self.slots: List[DrawSlot] = []

    def _expect(self, *states: str) -> None:
        if self.state not in states:
            raise RuleViolation(f"Cannot do that while the draw is {self.state}")

    @property
    def revealed_count(self) -> int:
        return sum(1 for s in self.slots if s.is_revealed)

    def start(self) -> List[DrawSlot]:
        """Pick the winners up front; the shuffle only hides them."""
        self._expect(IDLE)
        if not self.candidates:
            raise RuleViolation("No eligible participants")
        count = min(self.template.slot_count, len(self.candidates))
        winners = pick_winners(self.candidates, count, self.rng)
        self.slots = [DrawSlot(slot_number=i, winner=w) for i, w in enumerate(winners, start=1)]
        self.state = DRAWING
        log.info("draw started: %s, %d slot(s) from %d candidate(s)",
                 self.template.name, count, len(self.candidates))
        return self.slots

    def tick(self) -> Dict[int, User]:
        """One shuffle frame: slot number -> participant shown."""
        self._expect(DRAWING, REVEALING)
        frame = {}
        for s in self.slots:
            frame[s.slot_number] = s.winner if s.is_revealed else self.rng.choice(self.candidates)
        return frame

    def stop_shuffle(self) -> None:
        self._expect(DRAWING)
        self.state = REVEALING

    def reveal_next(self) -> DrawSlot:
        self._expect(REVEALING)
        slot = next(s for s in self.slots if not s.is_revealed)
        slot.is_revealed = True
        if self.revealed_count == len(self.slots):
            self.state = COMPLETE
        return slot

    def reveal_all(self) -> List[DrawSlot]:
        self._expect(DRAWING, REVEALING)
        for s in self.slots:
            s.is_revealed = True
        self.state = COMPLETE
        return self.slots

    def winners(self) -> List[User]:
        self._expect(COMPLETE)
        return [s.winner for s in self.slots]

    def reset(self, candidates: Optional[Sequence[User]] = None) -> None:
        if candidates is not None:
            self.candidates = list(candidates)
        self.slots = []
        self.state = IDLE
