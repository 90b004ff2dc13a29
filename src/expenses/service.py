"""Expense service for managing expenses."""

import os
import uuid
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
import logging
from boto3.dynamodb.conditions import Key

from classification.service import ClassificationService
from expenses.models import Expense
from shared.dynamodb import DynamoDBClient
from shared.exceptions import DatabaseError, NotFoundError, ValidationError
from shared.feed import ChangeFeed
from shared.formatting import format_currency, format_percentage
from shared.session import EditSession, SessionContext
from shared.validators import validate_amount, validate_description
from summary.aggregation import aggregate_expenses

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExpenseService:
    """Service for managing expenses."""

    def __init__(
        self,
        classifier: Optional[ClassificationService] = None,
        feed: Optional[ChangeFeed] = None
    ):
        """Initialize expense service."""
        self.expenses_table = DynamoDBClient(os.environ.get('EXPENSES_TABLE'))
        self.classifier = classifier or ClassificationService()
        self.feed = feed or ChangeFeed()

    @staticmethod
    def _key(session: SessionContext, expense_id: str) -> Dict[str, str]:
        return {'owner_id': session.owner_id, 'expense_id': expense_id}

    @staticmethod
    def _to_dict(item: Dict[str, Any]) -> Dict[str, Any]:
        return Expense.from_item(item).model_dump()

    def create_expense(
        self,
        session: SessionContext,
        amount: Any,
        description: str
    ) -> Dict[str, Any]:
        """
        Create a new expense.

        Input is validated before any remote call. The description is then
        classified; a classification failure falls back to the
        "No Categorizado" / "Manual" labels and the expense is still saved.

        Args:
            session: Session context
            amount: Amount as typed by the user
            description: Free text description

        Returns:
            Created expense

        Raises:
            ValidationError: If amount or description is invalid
            ConflictError: If another submission is in progress
            DatabaseError: If the expense could not be saved
        """
        amount = float(validate_amount(amount))
        description = validate_description(description)

        with session.workflow('submission'):
            classification = self.classifier.classify(description)

            now = utc_now()
            item = {
                'owner_id': session.owner_id,
                'expense_id': str(uuid.uuid4()),
                'amount': amount,
                'description': description,
                'category': classification.category,
                'classification': classification.classification,
                'created_at': now,
                'updated_at': now
            }

            saved = self.expenses_table.put_item(item)

        logger.info(f"Created expense {item['expense_id']} ({classification.category})")
        self.publish_expenses(session)
        return self._to_dict(saved)

    def get_expense(self, session: SessionContext, expense_id: str) -> Dict[str, Any]:
        """
        Get expense by ID.

        Args:
            session: Session context
            expense_id: Expense ID

        Returns:
            Expense data

        Raises:
            NotFoundError: If expense not found
        """
        item = self.expenses_table.get_item(self._key(session, expense_id))

        if not item:
            raise NotFoundError("Expense not found")

        return self._to_dict(item)

    def list_expenses(self, session: SessionContext) -> List[Dict[str, Any]]:
        """
        List every expense of the session's user, newest first.

        Args:
            session: Session context

        Returns:
            List of expenses
        """
        items = self.expenses_table.query_all(Key('owner_id').eq(session.owner_id))

        expenses = [self._to_dict(item) for item in items]
        expenses.sort(key=lambda expense: expense['created_at'], reverse=True)
        return expenses

    def begin_edit(self, session: SessionContext, expense_id: str) -> Dict[str, Any]:
        """Open an expense for editing and remember its current description."""
        expense = self.get_expense(session, expense_id)
        session.active_edit = EditSession(
            expense_id=expense_id,
            original_description=expense['description']
        )
        return expense

    def cancel_edit(self, session: SessionContext) -> None:
        session.active_edit = None

    def update_expense(
        self,
        session: SessionContext,
        expense_id: str,
        amount: Optional[Any] = None,
        description: Optional[str] = None,
        original_description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Update an expense with a partial field merge.

        The description is reclassified only when it differs from the text
        the user saw when entering edit mode. Amount-only edits never call
        the classifier.

        Args:
            session: Session context
            expense_id: Expense ID
            amount: Optional new amount
            description: Optional new description
            original_description: Description when edit mode was entered;
                defaults to the open edit session, then the stored value

        Returns:
            Updated expense

        Raises:
            ValidationError: If validation fails
            NotFoundError: If expense not found
            ConflictError: If another submission is in progress
        """
        if amount is None and description is None:
            raise ValidationError("No updates provided")

        updates = {}
        if amount is not None:
            updates['amount'] = float(validate_amount(amount))
        if description is not None:
            updates['description'] = validate_description(description)

        with session.workflow('submission'):
            expense = self.get_expense(session, expense_id)

            if 'description' in updates:
                baseline = self._edit_baseline(session, expense, original_description)
                if updates['description'] != baseline:
                    logger.info(f"Description of expense {expense_id} changed, reclassifying")
                    classification = self.classifier.classify(updates['description'])
                    updates['category'] = classification.category
                    updates['classification'] = classification.classification

            # Build update expression
            update_parts = []
            expr_values = {}
            expr_names = {}

            for key, value in updates.items():
                update_parts.append(f"#{key} = :{key}")
                expr_names[f'#{key}'] = key
                expr_values[f':{key}'] = value

            update_parts.append("#updated_at = :updated_at")
            expr_names['#updated_at'] = 'updated_at'
            expr_values[':updated_at'] = utc_now()

            updated = self.expenses_table.update_item(
                key=self._key(session, expense_id),
                update_expression="SET " + ", ".join(update_parts),
                expression_values=expr_values,
                expression_names=expr_names
            )

        if session.active_edit and session.active_edit.expense_id == expense_id:
            self.cancel_edit(session)

        logger.info(f"Updated expense {expense_id}")
        self.publish_expenses(session)
        return self._to_dict(updated)

    @staticmethod
    def _edit_baseline(
        session: SessionContext,
        expense: Dict[str, Any],
        original_description: Optional[str]
    ) -> str:
        if original_description is not None:
            return original_description.strip()
        edit = session.active_edit
        if edit and edit.expense_id == expense['expense_id']:
            return edit.original_description
        return expense['description']

    def delete_expense(self, session: SessionContext, expense_id: str) -> None:
        """
        Delete expense.

        Args:
            session: Session context
            expense_id: Expense ID

        Raises:
            NotFoundError: If expense not found
        """
        self.get_expense(session, expense_id)

        self.expenses_table.delete_item(self._key(session, expense_id))

        if session.active_edit and session.active_edit.expense_id == expense_id:
            self.cancel_edit(session)

        logger.info(f"Deleted expense {expense_id}")
        self.publish_expenses(session)

    def delete_expenses(
        self,
        session: SessionContext,
        expense_ids: List[str],
        max_workers: int = 10
    ) -> Dict[str, List[str]]:
        """
        Delete several expenses concurrently and wait for all of them.

        Returns:
            Dictionary with 'deleted' and 'failed' expense ID lists
        """
        results = self.expenses_table.delete_items(
            [self._key(session, expense_id) for expense_id in expense_ids],
            max_workers=max_workers
        )

        deleted = [key['expense_id'] for key in results['deleted']]
        failed = [key['expense_id'] for key in results['failed']]

        logger.info(f"Deleted {len(deleted)} expenses, {len(failed)} failed")
        if deleted:
            self.publish_expenses(session)

        return {'deleted': deleted, 'failed': failed}

    def get_summary(self, session: SessionContext) -> Dict[str, Any]:
        """
        Get total spend and category breakdown of the current expenses.

        Args:
            session: Session context

        Returns:
            Summary with raw and display-formatted values
        """
        expenses = self.list_expenses(session)
        aggregate = aggregate_expenses(expenses)

        return {
            'total_spent': aggregate.total_spent,
            'formatted_total': format_currency(aggregate.total_spent),
            'expense_count': len(expenses),
            'category_data': [
                {
                    **entry.model_dump(),
                    'formatted_total': format_currency(entry.total),
                    'formatted_percentage': format_percentage(entry.percentage)
                }
                for entry in aggregate.category_data
            ]
        }

    def subscribe(
        self,
        session: SessionContext,
        callback: Callable[[List[Dict[str, Any]]], None]
    ) -> Callable[[], None]:
        """
        Observe the session's expense list.

        The callback receives the full list right away and again after
        every change made through this service.

        Returns:
            Unsubscribe callable
        """
        unsubscribe = self.feed.subscribe(session.expenses_topic, callback)

        try:
            callback(self.list_expenses(session))
        except DatabaseError:
            unsubscribe()
            raise

        return unsubscribe

    def publish_expenses(self, session: SessionContext) -> None:
        """Push the current expense list to subscribers, if there are any."""
        if not self.feed.has_subscribers(session.expenses_topic):
            return

        try:
            expenses = self.list_expenses(session)
        except DatabaseError as e:
            logger.error(f"Could not refresh expenses for subscribers: {e.message}")
            return

        self.feed.publish(session.expenses_topic, expenses)
