"""Unit tests for expense aggregation and the live summary."""

import pytest
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from expenses.models import Expense
from summary.aggregation import aggregate_expenses
from summary.live import LiveSummary


class TestAggregateExpenses:
    """Test cases for aggregate_expenses."""

    @pytest.fixture
    def sample_expenses(self):
        """Sample expenses in no particular order."""
        return [
            {'amount': 20.0, 'category': 'Transporte'},
            {'amount': 45.5, 'category': 'Comida'},
            {'amount': 12.25, 'category': 'Otros'},
            {'amount': 30.0, 'category': 'Comida'},
            {'amount': 7.0, 'category': 'Salud'},
        ]

    def test_two_categories(self):
        """Test the reference example: Comida 100, Otros 50."""
        result = aggregate_expenses([
            {'amount': 100, 'category': 'Comida'},
            {'amount': 50, 'category': 'Otros'}
        ])

        assert result.total_spent == 150
        assert [entry.category for entry in result.category_data] == ['Comida', 'Otros']
        assert result.category_data[0].total == 100
        assert result.category_data[0].percentage == pytest.approx(66.667, abs=0.01)
        assert result.category_data[1].total == 50
        assert result.category_data[1].percentage == pytest.approx(33.333, abs=0.01)

    def test_empty_list(self):
        """Test that no expenses give a zero total and no categories."""
        result = aggregate_expenses([])

        assert result.total_spent == 0
        assert result.category_data == []

    def test_totals_add_up(self, sample_expenses):
        """Test that category totals sum to the grand total."""
        result = aggregate_expenses(sample_expenses)

        assert result.total_spent == pytest.approx(114.75)
        assert sum(entry.total for entry in result.category_data) == pytest.approx(result.total_spent)

    def test_percentages_add_up(self, sample_expenses):
        """Test that percentages are within range and sum to 100."""
        result = aggregate_expenses(sample_expenses)

        assert sum(entry.percentage for entry in result.category_data) == pytest.approx(100)
        for entry in result.category_data:
            assert 0 <= entry.percentage <= 100

    def test_sorted_by_total_descending(self, sample_expenses):
        """Test that categories come largest first."""
        result = aggregate_expenses(sample_expenses)

        totals = [entry.total for entry in result.category_data]
        assert totals == sorted(totals, reverse=True)
        assert result.category_data[0].category == 'Comida'
        assert result.category_data[0].total == pytest.approx(75.5)

    def test_ties_keep_first_seen_order(self):
        """Test that equal totals keep their first-encountered order."""
        result = aggregate_expenses([
            {'amount': 10, 'category': 'Salud'},
            {'amount': 10, 'category': 'Cine'},
            {'amount': 10, 'category': 'Vivienda'},
        ])

        assert [entry.category for entry in result.category_data] == ['Salud', 'Cine', 'Vivienda']

    def test_missing_category_is_uncategorized(self):
        """Test that missing or empty categories are grouped as No Categorizado."""
        result = aggregate_expenses([
            {'amount': 10},
            {'amount': 5, 'category': ''},
            {'amount': 5, 'category': None},
        ])

        assert len(result.category_data) == 1
        assert result.category_data[0].category == 'No Categorizado'
        assert result.category_data[0].total == 20
        assert result.category_data[0].percentage == 100

    def test_accepts_expense_models(self):
        """Test aggregation over Expense models instead of dicts."""
        expenses = [
            Expense(expense_id='a', amount=30, description='Taxi', category='Transporte',
                    created_at='2026-10-01T10:00:00+00:00'),
            Expense(expense_id='b', amount=10, description='Café', category=None,
                    created_at='2026-10-02T10:00:00+00:00'),
        ]

        result = aggregate_expenses(expenses)

        assert result.total_spent == 40
        assert result.category_data[1].category == 'No Categorizado'

    def test_full_recompute_matches_after_change(self, sample_expenses):
        """Test that recomputing after removing an expense matches a fresh aggregate."""
        before = aggregate_expenses(sample_expenses)
        after = aggregate_expenses(sample_expenses[1:])

        assert after.total_spent == pytest.approx(before.total_spent - 20.0)
        assert 'Transporte' not in [entry.category for entry in after.category_data]


class TestLiveSummary:
    """Test cases for LiveSummary."""

    def test_recomputes_on_every_event(self):
        """Test that each event replaces the aggregate."""
        changes = []
        live = LiveSummary(on_change=changes.append)

        live([{'amount': 100, 'category': 'Comida'}])
        assert live.current.total_spent == 100
        assert live.expense_count == 1

        live([])
        assert live.current.total_spent == 0
        assert live.current.category_data == []
        assert live.expense_count == 0
        assert len(changes) == 2

    def test_starts_empty(self):
        """Test the initial state before any event."""
        live = LiveSummary()

        assert live.current.total_spent == 0
        assert live.expense_count == 0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
