"""Lambda handler for archive (history) operations."""

import json
import os
import logging
from typing import Dict, Any, Optional
import sys

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
from shared.exceptions import (
    ExpenseTrackerException,
    ValidationError,
    NotFoundError,
    ConflictError,
    DatabaseError,
    PartialArchivalError
)
from shared.session import EditSession, SessionContext
from history.service import ArchiveService

# Configure logging
logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Initialize service
archive_service = ArchiveService()

ARCHIVE_FAILED_MESSAGE = "Error archiving the current period. Please try again."


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for archive operations.

    Handles:
    - GET /history - List archive records
    - POST /history/archive - Archive current expenses and clear them
      (409 while the body reports an open edit via editing_expense_id)
    - GET /history/pending - Check for an archive that was not fully cleared
    - POST /history/{id}/resume - Finish clearing an archive

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
        if path == '/history' and http_method == 'GET':
            return handle_list(event, session)
        elif path == '/history/archive' and http_method == 'POST':
            return handle_archive(event, session)
        elif path == '/history/pending' and http_method == 'GET':
            return handle_pending(event, session)
        elif path.startswith('/history/') and path.endswith('/resume') and http_method == 'POST':
            return handle_resume(event, session)
        else:
            return error_response("Route not found", status_code=404)

    except ValidationError as e:
        return validation_error_response(e.message)
    except NotFoundError as e:
        return not_found_response(e.message)
    except ConflictError as e:
        return conflict_response(e.message)
    except PartialArchivalError as e:
        logger.error(f"Partial archival: {e.message}")
        return error_response(
            ARCHIVE_FAILED_MESSAGE,
            status_code=500,
            error_code="PARTIAL_ARCHIVAL",
            details={
                'archive_id': e.archive_id,
                'deleted_count': e.deleted_count,
                'failed_count': len(e.failed_ids)
            }
        )
    except DatabaseError as e:
        logger.error(f"Persistence error: {e.message}")
        return error_response(ARCHIVE_FAILED_MESSAGE, status_code=500, error_code="PERSISTENCE_ERROR")
    except ExpenseTrackerException as e:
        logger.error(f"Application error: {e.message}")
        return error_response(e.message, status_code=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)


def handle_list(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle list archive records."""
    history = archive_service.list_history(session)

    return success_response(data={
        'history': history,
        'count': len(history)
    })


def handle_archive(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """
    Handle archive and reset.

    The body may carry ``editing_expense_id`` when the client has an expense
    open in edit mode; archival is then refused with 409.

    Args:
        event: Lambda event
        session: Session context

    Returns:
        API Gateway response
    """
    body = parse_body(event)

    editing_expense_id = body.get('editing_expense_id')
    if editing_expense_id:
        session.active_edit = EditSession(
            expense_id=str(editing_expense_id),
            original_description=body.get('original_description') or ''
        )

    result = archive_service.archive_current_period(session)

    logger.info(f"Archive {result.archive.archive_id} completed")

    return success_response(
        data={
            'archive': result.archive.model_dump(),
            'deleted_count': result.deleted_count
        },
        message="Period archived successfully",
        status_code=201
    )


def handle_pending(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle incomplete archive check."""
    return success_response(data=archive_service.find_incomplete_archive(session))


def handle_resume(event: Dict[str, Any], session: SessionContext) -> Dict[str, Any]:
    """Handle resume of an interrupted archive."""
    path_params = event.get('pathParameters') or {}
    archive_id = path_params.get('id')

    if not archive_id:
        return validation_error_response("Archive ID is required")

    result = archive_service.resume_archive(session, archive_id)

    return success_response(
        data={
            'archive': result.archive.model_dump(),
            'deleted_count': result.deleted_count
        },
        message="Archive completed"
    )


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse the optional JSON request body.

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
