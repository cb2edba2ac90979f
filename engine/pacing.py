"""Animation pacing: the fixed suspension points of a turn."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from config import ATTACK_DELAY, DEATH_DELAY, MOVEMENT_STEP_DELAY, TURN_HANDOFF_DELAY


@dataclass
class Pacing:
    """Delays, in seconds, at which a turn sequence yields to the event loop."""
    step_delay: float = MOVEMENT_STEP_DELAY
    attack_delay: float = ATTACK_DELAY
    death_delay: float = DEATH_DELAY
    handoff_delay: float = TURN_HANDOFF_DELAY

    @classmethod
    def instant(cls) -> Pacing:
        """No waiting at all. Still yields once per pause so ordering holds."""
        return cls(step_delay=0.0, attack_delay=0.0, death_delay=0.0, handoff_delay=0.0)

    async def pause(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))

    async def step(self) -> None:
        await self.pause(self.step_delay)

    async def attack(self) -> None:
        await self.pause(self.attack_delay)

    async def death(self) -> None:
        await self.pause(self.death_delay)

    async def handoff(self) -> None:
        await self.pause(self.handoff_delay)
