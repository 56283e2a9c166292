"""
Error handling service for consistent error payloads and logging.
Translates catalog errors into structured dictionaries the request tier can serialize.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timezone
from pydantic import ValidationError as PydanticValidationError
import logging
import uuid

from rental_catalog.utils.exceptions import (
    CatalogError,
    NotAvailableError,
    NotFoundError,
    PoolError,
    PropertyOwnershipError,
    QueryTimeoutError,
)

logger = logging.getLogger(__name__)


class ErrorHandlerService:
    """
    Service for handling and formatting errors consistently.
    Every error becomes ``{"error": {"code", "message", "timestamp", ...}}``.
    """

    @staticmethod
    def format_error_response(
        error_code: str,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Format error response in a consistent structure.

        Args:
            error_code: Error code identifier
            message: Human-readable error message
            details: Optional list of detailed error information
            request_id: Optional request identifier for tracking

        Returns:
            Formatted error response dictionary
        """
        response = {
            "error": {
                "code": error_code,
                "message": message,
                "timestamp": ErrorHandlerService._get_current_timestamp(),
            }
        }

        if details:
            response["error"]["details"] = details

        if request_id:
            response["error"]["request_id"] = request_id

        return response

    @staticmethod
    def handle_catalog_error(exception: CatalogError, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Handle a catalog error, logging it at a level that matches its kind.

        Lookups and business-rule rejections are expected outcomes and log as
        warnings; pool exhaustion and persistence failures log as errors.
        """
        request_id = request_id or ErrorHandlerService._generate_request_id()

        if isinstance(exception, (NotFoundError, NotAvailableError, PropertyOwnershipError)):
            logger.warning(f"Catalog Error [{request_id}]: {exception.error_code} - {exception.detail}")
        elif isinstance(exception, (PoolError, QueryTimeoutError)):
            logger.error(f"Capacity Error [{request_id}]: {exception.error_code} - {exception.detail}")
        else:
            logger.error(
                f"Catalog Error [{request_id}]: {exception.error_code} - {exception.detail}",
                exc_info=exception.__cause__ is not None
            )

        return ErrorHandlerService.format_error_response(
            error_code=exception.error_code,
            message=exception.detail,
            request_id=request_id
        )

    @staticmethod
    def handle_validation_error(
        exception: PydanticValidationError,
        request_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Handle Pydantic validation errors with detailed field information.
        """
        request_id = request_id or ErrorHandlerService._generate_request_id()

        validation_details = []
        for error in exception.errors():
            field_path = " -> ".join(str(loc) for loc in error["loc"])
            validation_details.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
            })

        logger.warning(f"Validation Error [{request_id}]: {len(validation_details)} field errors")

        return ErrorHandlerService.format_error_response(
            error_code="VALIDATION_ERROR",
            message="Input validation failed",
            details=validation_details,
            request_id=request_id
        )

    @staticmethod
    def handle_exception(exception: Exception, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Handle any exception raised by the catalog layer.

        Unknown exceptions are logged with their traceback and reported
        without internal details.
        """
        if isinstance(exception, CatalogError):
            return ErrorHandlerService.handle_catalog_error(exception, request_id)
        if isinstance(exception, PydanticValidationError):
            return ErrorHandlerService.handle_validation_error(exception, request_id)

        request_id = request_id or ErrorHandlerService._generate_request_id()
        logger.error(
            f"Unexpected Error [{request_id}]: {type(exception).__name__} - {exception}",
            exc_info=exception
        )
        return ErrorHandlerService.format_error_response(
            error_code="INTERNAL_ERROR",
            message="An unexpected error occurred",
            request_id=request_id
        )

    @staticmethod
    def _get_current_timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _generate_request_id() -> str:
        return str(uuid.uuid4())
