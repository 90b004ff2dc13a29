"""Unit tests for the expense and history Lambda handlers."""

import json
import pytest
from unittest.mock import Mock, patch
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

# Handlers build their services at import time
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('EXPENSES_TABLE', 'test-expenses')
os.environ.setdefault('HISTORY_TABLE', 'test-history')

from expenses import handler as expenses_handler
from history import handler as history_handler
from expenses.service import ExpenseService
from history.models import ArchiveRecord, ArchiveResult
from history.service import ArchiveService
from shared.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    PartialArchivalError,
    ValidationError
)


def make_event(method, path, body=None, path_params=None, user_id='user123'):
    """Build an API Gateway proxy event."""
    event = {
        'httpMethod': method,
        'path': path,
        'pathParameters': path_params,
        'body': json.dumps(body) if body is not None else None,
        'requestContext': {'authorizer': {'claims': {}}}
    }
    if user_id:
        event['requestContext']['authorizer']['claims']['sub'] = user_id
    return event


def parse(response):
    return json.loads(response['body'])


class TestExpensesHandler:
    """Test cases for the expenses handler."""

    @pytest.fixture
    def service(self):
        with patch.object(expenses_handler, 'expense_service') as service:
            yield service

    def test_unauthorized(self, service):
        response = expenses_handler.lambda_handler(make_event('GET', '/expenses', user_id=None), None)

        assert response['statusCode'] == 401
        service.list_expenses.assert_not_called()

    def test_create(self, service):
        service.create_expense.return_value = {'expense_id': 'exp1', 'amount': 100.0}

        response = expenses_handler.lambda_handler(
            make_event('POST', '/expenses', body={'amount': '100', 'description': 'Cena'}),
            None
        )

        assert response['statusCode'] == 201
        assert parse(response)['data']['expense_id'] == 'exp1'
        session = service.create_expense.call_args[0][0]
        assert session.user_id == 'user123'
        assert service.create_expense.call_args.kwargs == {'amount': '100', 'description': 'Cena'}

    def test_create_missing_fields(self, service):
        response = expenses_handler.lambda_handler(
            make_event('POST', '/expenses', body={'amount': '100'}),
            None
        )

        assert response['statusCode'] == 400
        service.create_expense.assert_not_called()

    def test_create_rejects_non_text_description(self, service):
        response = expenses_handler.lambda_handler(
            make_event('POST', '/expenses', body={'amount': '100', 'description': 42}),
            None
        )

        assert response['statusCode'] == 400
        assert 'description' in parse(response)['error']['message']
        service.create_expense.assert_not_called()

    def test_update_rejects_non_text_original_description(self, service):
        response = expenses_handler.lambda_handler(
            make_event(
                'PUT',
                '/expenses/exp1',
                body={'description': 'Cine', 'original_description': ['Cena']},
                path_params={'id': 'exp1'}
            ),
            None
        )

        assert response['statusCode'] == 400
        service.update_expense.assert_not_called()

    def test_create_invalid_json(self, service):
        event = make_event('POST', '/expenses')
        event['body'] = '{not json'

        response = expenses_handler.lambda_handler(event, None)

        assert response['statusCode'] == 400

    def test_create_validation_error(self, service):
        service.create_expense.side_effect = ValidationError("Amount must be greater than 0")

        response = expenses_handler.lambda_handler(
            make_event('POST', '/expenses', body={'amount': '0', 'description': 'Cena'}),
            None
        )

        assert response['statusCode'] == 400
        assert parse(response)['error']['code'] == 'VALIDATION_ERROR'

    def test_persistence_error_hides_details(self, service):
        service.create_expense.side_effect = DatabaseError("Failed to put item: AccessDenied arn:aws:...")

        response = expenses_handler.lambda_handler(
            make_event('POST', '/expenses', body={'amount': '10', 'description': 'Cena'}),
            None
        )

        body = parse(response)
        assert response['statusCode'] == 500
        assert body['error']['code'] == 'PERSISTENCE_ERROR'
        assert 'AccessDenied' not in body['error']['message']

    def test_list(self, service):
        service.list_expenses.return_value = [{'expense_id': 'a'}, {'expense_id': 'b'}]

        response = expenses_handler.lambda_handler(make_event('GET', '/expenses'), None)

        assert response['statusCode'] == 200
        assert parse(response)['data']['count'] == 2

    def test_summary(self, service):
        service.get_summary.return_value = {'total_spent': 150, 'category_data': []}

        response = expenses_handler.lambda_handler(make_event('GET', '/expenses/summary'), None)

        assert response['statusCode'] == 200
        assert parse(response)['data']['total_spent'] == 150
        service.get_expense.assert_not_called()

    def test_update_passes_original_description(self, service):
        service.update_expense.return_value = {'expense_id': 'exp1'}

        response = expenses_handler.lambda_handler(
            make_event(
                'PUT',
                '/expenses/exp1',
                body={'amount': '20', 'description': 'Cine', 'original_description': 'Cena'},
                path_params={'id': 'exp1'}
            ),
            None
        )

        assert response['statusCode'] == 200
        assert service.update_expense.call_args[0][1] == 'exp1'
        assert service.update_expense.call_args.kwargs == {
            'amount': '20',
            'description': 'Cine',
            'original_description': 'Cena'
        }

    def test_update_conflict(self, service):
        service.update_expense.side_effect = ConflictError("A submission is already in progress")

        response = expenses_handler.lambda_handler(
            make_event('PUT', '/expenses/exp1', body={'amount': '20'}, path_params={'id': 'exp1'}),
            None
        )

        assert response['statusCode'] == 409

    def test_delete_not_found(self, service):
        service.delete_expense.side_effect = NotFoundError("Expense not found")

        response = expenses_handler.lambda_handler(
            make_event('DELETE', '/expenses/missing', path_params={'id': 'missing'}),
            None
        )

        assert response['statusCode'] == 404

    def test_unknown_route(self, service):
        response = expenses_handler.lambda_handler(make_event('PATCH', '/expenses'), None)

        assert response['statusCode'] == 404


class TestHistoryHandler:
    """Test cases for the history handler."""

    @pytest.fixture
    def service(self):
        with patch.object(history_handler, 'archive_service') as service:
            yield service

    @pytest.fixture
    def record(self):
        return ArchiveRecord(
            archive_id='a1',
            title='Resumen de Gastos: octubre de 2026',
            total_spent=150.0,
            category_summary=[],
            archive_date='2026-10-17T12:00:00+00:00',
            total_expenses_count=2,
            expense_ids=['exp1', 'exp2']
        )

    def test_archive(self, service, record):
        service.archive_current_period.return_value = ArchiveResult(archive=record, deleted_count=2)

        response = history_handler.lambda_handler(make_event('POST', '/history/archive'), None)

        data = parse(response)['data']
        assert response['statusCode'] == 201
        assert data['archive']['total_expenses_count'] == 2
        assert data['deleted_count'] == 2

    def test_archive_empty(self, service):
        service.archive_current_period.side_effect = ValidationError("There are no expenses to archive")

        response = history_handler.lambda_handler(make_event('POST', '/history/archive'), None)

        assert response['statusCode'] == 400

    def test_archive_partial_failure(self, service):
        service.archive_current_period.side_effect = PartialArchivalError(
            archive_id='a1',
            deleted_count=1,
            failed_ids=['exp2']
        )

        response = history_handler.lambda_handler(make_event('POST', '/history/archive'), None)

        error = parse(response)['error']
        assert response['statusCode'] == 500
        assert error['code'] == 'PARTIAL_ARCHIVAL'
        assert error['details'] == {'archive_id': 'a1', 'deleted_count': 1, 'failed_count': 1}

    def test_archive_in_progress(self, service):
        service.archive_current_period.side_effect = ConflictError("A archive is already in progress")

        response = history_handler.lambda_handler(make_event('POST', '/history/archive'), None)

        assert response['statusCode'] == 409

    def test_archive_refused_while_client_is_editing(self):
        """Test that an open edit reported by the client blocks archival."""
        with patch('expenses.service.DynamoDBClient'), patch('history.service.DynamoDBClient'):
            service = ArchiveService(expense_service=ExpenseService(classifier=Mock()))

        with patch.object(history_handler, 'archive_service', service):
            response = history_handler.lambda_handler(
                make_event('POST', '/history/archive', body={'editing_expense_id': 'exp1'}),
                None
            )

        assert response['statusCode'] == 409
        assert parse(response)['error']['code'] == 'CONFLICT'
        service.expense_service.expenses_table.query_all.assert_not_called()
        service.history_table.put_item.assert_not_called()

    def test_archive_passes_open_edit_to_session(self, service, record):
        service.archive_current_period.return_value = ArchiveResult(archive=record, deleted_count=2)

        history_handler.lambda_handler(
            make_event(
                'POST',
                '/history/archive',
                body={'editing_expense_id': 'exp1', 'original_description': 'Cena'}
            ),
            None
        )

        session = service.archive_current_period.call_args[0][0]
        assert session.active_edit.expense_id == 'exp1'
        assert session.active_edit.original_description == 'Cena'

    def test_archive_invalid_body(self, service):
        event = make_event('POST', '/history/archive')
        event['body'] = '[1, 2]'

        response = history_handler.lambda_handler(event, None)

        assert response['statusCode'] == 400
        service.archive_current_period.assert_not_called()

    def test_list(self, service):
        service.list_history.return_value = [{'archive_id': 'a1'}]

        response = history_handler.lambda_handler(make_event('GET', '/history'), None)

        assert parse(response)['data']['count'] == 1

    def test_pending(self, service):
        service.find_incomplete_archive.return_value = None

        response = history_handler.lambda_handler(make_event('GET', '/history/pending'), None)

        assert response['statusCode'] == 200
        assert parse(response)['data'] is None

    def test_resume(self, service, record):
        service.resume_archive.return_value = ArchiveResult(archive=record, deleted_count=1)

        response = history_handler.lambda_handler(
            make_event('POST', '/history/a1/resume', path_params={'id': 'a1'}),
            None
        )

        assert response['statusCode'] == 200
        assert service.resume_archive.call_args[0][1] == 'a1'

    def test_unauthorized(self, service):
        response = history_handler.lambda_handler(
            make_event('POST', '/history/archive', user_id=None),
            None
        )

        assert response['statusCode'] == 401
        service.archive_current_period.assert_not_called()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
