"""Aggregation of expenses into totals and category breakdowns."""

from typing import Any, Iterable, Mapping, Union

from summary.models import CategorySummaryEntry, ExpenseAggregate

UNCATEGORIZED = 'No Categorizado'


def _field(expense: Union[Mapping[str, Any], Any], name: str) -> Any:
    if isinstance(expense, Mapping):
        return expense.get(name)
    return getattr(expense, name, None)


def aggregate_expenses(expenses: Iterable[Union[Mapping[str, Any], Any]]) -> ExpenseAggregate:
    """
    Compute total spend and the per-category breakdown.

    Accepts Expense models or raw item dicts in any order. Categories are
    sorted by total, descending; ties keep the order in which the category
    was first seen. A missing or empty category counts as "No Categorizado".

    Args:
        expenses: Expenses to aggregate

    Returns:
        ExpenseAggregate with total_spent and category_data
    """
    total_spent = 0.0
    totals = {}

    for expense in expenses:
        amount = float(_field(expense, 'amount') or 0)
        category = _field(expense, 'category') or UNCATEGORIZED

        total_spent += amount
        totals[category] = totals.get(category, 0.0) + amount

    category_data = [
        CategorySummaryEntry(
            category=category,
            total=total,
            percentage=(total / total_spent) * 100 if total_spent > 0 else 0.0
        )
        for category, total in totals.items()
    ]
    category_data.sort(key=lambda entry: entry.total, reverse=True)

    return ExpenseAggregate(total_spent=total_spent, category_data=category_data)
