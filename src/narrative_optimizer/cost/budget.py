"""Daily spend tracking against an optional budget."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone

from narrative_optimizer.errors import BudgetExceededError
from narrative_optimizer.models import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetStatus:
    used: float
    limit: float | None
    remaining: float | None
    can_proceed: bool


class BudgetTracker:
    """Accumulates spend per UTC day.

    With no ``max_daily_cost`` every check passes and spend is only tracked.
    """

    def __init__(
        self,
        max_daily_cost: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._limit = max_daily_cost
        self._clock = clock or now_ms
        self._spent: dict[date, float] = {}

    def _today(self) -> date:
        return datetime.fromtimestamp(self._clock() / 1000, tz=timezone.utc).date()

    @property
    def used_today(self) -> float:
        return self._spent.get(self._today(), 0.0)

    def check(self, predicted: float = 0.0) -> BudgetStatus:
        used = self.used_today
        if self._limit is None:
            return BudgetStatus(used=used, limit=None, remaining=None, can_proceed=True)

        return BudgetStatus(
            used=used,
            limit=self._limit,
            remaining=max(0.0, self._limit - used),
            can_proceed=used + predicted <= self._limit,
        )

    def ensure(self, predicted: float) -> BudgetStatus:
        """Check the budget and raise when the request does not fit.

        Raises:
            BudgetExceededError: If ``predicted`` would exceed today's budget.
        """
        status = self.check(predicted)
        if not status.can_proceed:
            logger.warning(
                "Daily budget exceeded: used %.4f of %.2f, request needs %.4f",
                status.used,
                self._limit,
                predicted,
            )
            raise BudgetExceededError(status.used, self._limit or 0.0, predicted)
        return status

    def record(self, cost: float) -> None:
        today = self._today()
        self._spent[today] = self._spent.get(today, 0.0) + cost

    def snapshot(self) -> dict[str, float | None]:
        status = self.check()
        return {"used": status.used, "limit": status.limit, "remaining": status.remaining}
