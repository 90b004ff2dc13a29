"""Live summary kept current by expense change events."""

import logging
from typing import Any, Callable, Iterable, Optional

from summary.aggregation import aggregate_expenses
from summary.models import ExpenseAggregate

logger = logging.getLogger(__name__)


class LiveSummary:
    """
    Subscriber that recomputes the aggregate from the full expense list
    on every change event.

    Register it with ``ExpenseService.subscribe(session, live_summary)`` and
    keep the returned unsubscribe callable.
    """

    def __init__(self, on_change: Optional[Callable[[ExpenseAggregate], None]] = None):
        self.current = ExpenseAggregate()
        self.expense_count = 0
        self._on_change = on_change

    def __call__(self, expenses: Iterable[Any]) -> None:
        expenses = list(expenses)
        self.current = aggregate_expenses(expenses)
        self.expense_count = len(expenses)

        logger.debug(
            f"Summary refreshed: {self.expense_count} expenses, total {self.current.total_spent}"
        )

        if self._on_change:
            self._on_change(self.current)
