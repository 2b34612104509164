import asyncio

from backend.app.domains.regeneration.schemas import ReservationOutcome


class CostGuard:
    """Budget of abstract cost units for a single batch.

    With ``enforce=False`` every reservation is granted and the total is
    only tracked for reporting.
    """

    def __init__(self, budget: float, enforce: bool = True):
        if budget < 0:
            raise ValueError("budget must be non-negative")
        self.budget = budget
        self.enforce = enforce
        self._consumed = 0.0
        self._lock = asyncio.Lock()

    @property
    def consumed(self) -> float:
        return self._consumed

    @property
    def remaining(self) -> float | None:
        if not self.enforce:
            return None
        return max(self.budget - self._consumed, 0.0)

    async def reserve(self, cost: float) -> ReservationOutcome:
        if cost < 0:
            raise ValueError(f"cost must be non-negative, got {cost}")

        # Check and increment in one critical section.
        async with self._lock:
            if self.enforce and self._consumed + cost > self.budget:
                return ReservationOutcome.DENIED
            self._consumed += cost
            return ReservationOutcome.GRANTED
