"""
Router helpers shared by the HTTP modules.
"""

import logging
from typing import NoReturn

from fastapi import HTTPException, status

from mosque_directory.modules.admin_accounts.errors import LifecycleError

logger = logging.getLogger(__name__)


def handle_service_error(e: LifecycleError) -> NoReturn:
    """Convert service errors to HTTPExceptions."""
    raise HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
    ) from e


def internal_error(e: Exception, context: str) -> HTTPException:
    """Log an unexpected error and build the generic 500 response."""
    logger.exception(f"Error {context}: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
