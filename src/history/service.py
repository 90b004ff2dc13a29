"""Archive service: snapshot current expenses into history, then clear them."""

import os
import uuid
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
import logging
from boto3.dynamodb.conditions import Key

from expenses.service import ExpenseService
from history.models import ArchiveRecord, ArchiveResult
from shared.dynamodb import DynamoDBClient
from shared.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    PartialArchivalError,
    ValidationError
)
from shared.formatting import archive_title
from shared.session import SessionContext
from summary.aggregation import aggregate_expenses

logger = logging.getLogger(__name__)


class ArchiveService:
    """Service for archiving the current period's expenses."""

    def __init__(self, expense_service: Optional[ExpenseService] = None):
        """Initialize archive service."""
        self.history_table = DynamoDBClient(os.environ.get('HISTORY_TABLE'))
        self.expense_service = expense_service or ExpenseService()
        self.max_workers = int(os.environ.get('ARCHIVE_MAX_WORKERS', '10'))

    def archive_current_period(
        self,
        session: SessionContext,
        now: Optional[datetime] = None
    ) -> ArchiveResult:
        """
        Write a summary of the current expenses to history and delete them.

        The record is written first. If that fails nothing is deleted. If
        some deletes fail afterwards the record stays and the failures are
        reported; they are not retried.

        Args:
            session: Session context
            now: Archive timestamp (defaults to the current UTC time)

        Returns:
            ArchiveResult for a fully cleared period

        Raises:
            ConflictError: If an edit is open or an archival is running
            ValidationError: If there are no expenses to archive
            DatabaseError: If the archive record could not be written
            PartialArchivalError: If some expenses could not be deleted
        """
        if session.active_edit is not None:
            raise ConflictError("Finish or cancel the current edit before archiving")

        with session.workflow('archive'):
            expenses = self.expense_service.list_expenses(session)
            if not expenses:
                raise ValidationError("There are no expenses to archive")

            aggregate = aggregate_expenses(expenses)
            archive_date = now or datetime.now(timezone.utc)

            record = ArchiveRecord(
                archive_id=str(uuid.uuid4()),
                title=archive_title(archive_date),
                total_spent=aggregate.total_spent,
                category_summary=aggregate.category_data,
                archive_date=archive_date.isoformat(),
                total_expenses_count=len(expenses),
                expense_ids=[expense['expense_id'] for expense in expenses]
            )

            self.history_table.put_item({
                'owner_id': session.owner_id,
                **record.model_dump()
            })
            logger.info(
                f"Archived {record.total_expenses_count} expenses as {record.archive_id}"
            )
            self._publish_history(session)

            return self._clear(session, record, record.expense_ids)

    def list_history(self, session: SessionContext) -> List[Dict[str, Any]]:
        """
        List archive records, most recent first.

        Args:
            session: Session context

        Returns:
            List of archive records
        """
        items = self.history_table.query_all(Key('owner_id').eq(session.owner_id))

        records = [ArchiveRecord.model_validate(item).model_dump() for item in items]
        records.sort(key=lambda record: record['archive_date'], reverse=True)
        return records

    def get_archive(self, session: SessionContext, archive_id: str) -> ArchiveRecord:
        """
        Get an archive record by ID.

        Raises:
            NotFoundError: If the record does not exist
        """
        item = self.history_table.get_item({
            'owner_id': session.owner_id,
            'archive_id': archive_id
        })

        if not item:
            raise NotFoundError("Archive not found")

        return ArchiveRecord.model_validate(item)

    def find_incomplete_archive(self, session: SessionContext) -> Optional[Dict[str, Any]]:
        """
        Detect a latest archive whose expenses were not all cleared.

        Args:
            session: Session context

        Returns:
            The archive and its remaining expense IDs, or None
        """
        history = self.list_history(session)
        if not history:
            return None

        latest = ArchiveRecord.model_validate(history[0])
        remaining = self._remaining_ids(session, latest)
        if not remaining:
            return None

        logger.warning(
            f"Archive {latest.archive_id} has {len(remaining)} expenses left to clear"
        )
        return {'archive': latest.model_dump(), 'remaining_ids': remaining}

    def resume_archive(self, session: SessionContext, archive_id: str) -> ArchiveResult:
        """
        Finish clearing the expenses covered by an earlier archive.

        Raises:
            NotFoundError: If the archive does not exist
            ConflictError: If an archival is running
            PartialArchivalError: If some expenses still could not be deleted
        """
        with session.workflow('archive'):
            record = self.get_archive(session, archive_id)
            remaining = self._remaining_ids(session, record)

            if not remaining:
                logger.info(f"Archive {archive_id} has nothing left to clear")
                return ArchiveResult(archive=record, deleted_count=0)

            logger.info(f"Resuming archive {archive_id}: {len(remaining)} expenses to clear")
            return self._clear(session, record, remaining)

    def _remaining_ids(self, session: SessionContext, record: ArchiveRecord) -> List[str]:
        current_ids = {
            expense['expense_id'] for expense in self.expense_service.list_expenses(session)
        }
        return [expense_id for expense_id in record.expense_ids if expense_id in current_ids]

    def _clear(
        self,
        session: SessionContext,
        record: ArchiveRecord,
        expense_ids: List[str]
    ) -> ArchiveResult:
        results = self.expense_service.delete_expenses(
            session,
            expense_ids,
            max_workers=self.max_workers
        )

        if results['failed']:
            logger.error(
                f"Archive {record.archive_id}: {len(results['failed'])} of "
                f"{len(expense_ids)} deletes failed"
            )
            raise PartialArchivalError(
                archive_id=record.archive_id,
                deleted_count=len(results['deleted']),
                failed_ids=results['failed']
            )

        return ArchiveResult(archive=record, deleted_count=len(results['deleted']))

    def subscribe_history(
        self,
        session: SessionContext,
        callback: Callable[[List[Dict[str, Any]]], None]
    ) -> Callable[[], None]:
        """
        Observe the session's archive history.

        Returns:
            Unsubscribe callable
        """
        unsubscribe = self.expense_service.feed.subscribe(session.history_topic, callback)

        try:
            callback(self.list_history(session))
        except DatabaseError:
            unsubscribe()
            raise

        return unsubscribe

    def _publish_history(self, session: SessionContext) -> None:
        feed = self.expense_service.feed
        if not feed.has_subscribers(session.history_topic):
            return

        try:
            history = self.list_history(session)
        except DatabaseError as e:
            logger.error(f"Could not refresh history for subscribers: {e.message}")
            return

        feed.publish(session.history_topic, history)
