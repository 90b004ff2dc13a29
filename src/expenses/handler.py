"""Lambda handler for expense operations."""

import json
import os
import logging
from typing import Dict, Any, Optional, Type
import sys

from pydantic import BaseModel, ValidationError as PydanticValidationError

# Add parent directory to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.response import (
    success_response,
    error_response,
    validation_error_response,
    not_found_response,
    conflict_response,
    unauthorized_response
)
from shared.validators import validate_required_fields
from shared.exceptions import (
    ExpenseTrackerException,
    ValidationError,
    NotFoundError,
    ConflictError,
    DatabaseError
)
from shared.session import SessionContext
from expenses.models import ExpenseCreate, ExpenseUpdate
from expenses.service import ExpenseService

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Initialize service
expense_service = ExpenseService()

PERSISTENCE_MESSAGE = "Error processing the expense. Please try again."


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for expense operations.

    Handles:
    - POST /expenses - Create expense (classified automatically)
    - GET /expenses - List expenses, newest first
    - GET /expenses/summary - Total and category breakdown
    - GET /expenses/{id} - Get expense details
    - PUT /expenses/{id} - Update expense
    - DELETE /expenses/{id} - Delete expense

    Args:
        event: Lambda event
        context: Lambda context

    Returns:
        API Gateway response
    """
    try:
        logger.info(f"Request: {event.get('httpMethod')} {event.get('path')}")

        session = get_session(event)
        if session is None:
            return unauthorized_response()

        http_method = event.get('httpMethod')
        path = event.get('path') or ''

        # Route request
        if path == '/expenses' and http_method == 'POST':
            return handle_create(event, session)
        elif path == '/expenses' and http_method == 'GET':
            return handle_list(event, session)
        elif path == '/expenses/summary' and http_method == 'GET':
            return handle_summary(event, session)
        elif path.startswith('/expenses/') and http_method == 'GET':
            return handle_get(event, session)
        elif path.startswith('/expenses/') and http_method == 'PUT':
            return handle_update(event, session)
        elif path.startswith('/expenses/') and http_method == 'DELETE':
            return handle_delete(event, session)
        else:
            return error_response("Route not found", status_code=404)

    except ValidationError as e:
        return validation_error_response(e.message)
    except NotFoundError as e:
        return not_found_response(e.message)
    except ConflictError as e:
        return conflict_response(e.message)
    except DatabaseError as e:
        logger.error(f"Persistence error: {e.message}")
        return error_response(PERSISTENCE_MESSAGE, status_code=500, error_code="PERSISTENCE_ERROR")
    except ExpenseTrackerException as e:
        logger.error(f"Application error: {e.message}")
        return error_response(e.message, status_code=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)


def handle_create(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """
    Handle create expense.

    Args:
        event: Lambda event
        session: Session context

    Returns:
        API Gateway response
    """
    body = parse_body(event)
    validate_required_fields(body, ['amount', 'description'])
    request = parse_request(body, ExpenseCreate)

    expense = expense_service.create_expense(
        session,
        amount=request.amount,
        description=request.description
    )

    return success_response(
        data=expense,
        message="Expense created successfully",
        status_code=201
    )


def handle_list(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle list expenses."""
    expenses = expense_service.list_expenses(session)

    return success_response(data={
        'expenses': expenses,
        'count': len(expenses)
    })


def handle_summary(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle get expense summary."""
    return success_response(data=expense_service.get_summary(session))


def handle_get(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle get expense details."""
    expense_id = get_expense_id(event)
    if not expense_id:
        return validation_error_response("Expense ID is required")

    return success_response(data=expense_service.get_expense(session, expense_id))


def handle_update(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """
    Handle update expense.

    The body may carry ``original_description`` (the text shown when the
    user entered edit mode) so that reclassification only happens when the
    user actually changed the description.

    Args:
        event: Lambda event
        session: Session context

    Returns:
        API Gateway response
    """
    expense_id = get_expense_id(event)
    if not expense_id:
        return validation_error_response("Expense ID is required")

    body = parse_body(event)
    if not body:
        return validation_error_response("No updates provided")

    request = parse_request(body, ExpenseUpdate)

    updated_expense = expense_service.update_expense(
        session,
        expense_id,
        amount=request.amount,
        description=request.description,
        original_description=request.original_description
    )

    return success_response(
        data=updated_expense,
        message="Expense updated successfully"
    )


def handle_delete(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle delete expense."""
    expense_id = get_expense_id(event)
    if not expense_id:
        return validation_error_response("Expense ID is required")

    expense_service.delete_expense(session, expense_id)

    return success_response(message="Expense deleted successfully")


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse the JSON request body.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    try:
        body = json.loads(event.get('body') or '{}')
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON body")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    return body


def parse_request(body: Dict[str, Any], model: Type[BaseModel]) -> Any:
    """
    Validate a parsed body against a request model.

    Raises:
        ValidationError: If a field has the wrong type
    """
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        fields = sorted({str(error['loc'][0]) for error in e.errors() if error['loc']})
        raise ValidationError(f"Invalid fields: {', '.join(fields)}")


def get_expense_id(event: Dict[str, Any]) -> Optional[str]:
    path_params = event.get('pathParameters') or {}
    return path_params.get('id')


def get_session(event: Dict[str, Any]) -> Optional[SessionContext]:
    """
    Build the session context from the authorizer claims.

    Args:
        event: Lambda event

    Returns:
        SessionContext, or None when the request carries no user ID
    """
    request_context = event.get('requestContext') or {}
    authorizer = request_context.get('authorizer') or {}
    claims = authorizer.get('claims') or {}
    user_id = claims.get('sub')

    if not user_id:
        return None

    return SessionContext(user_id=user_id)
