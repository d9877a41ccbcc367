"""Custom exceptions for the SmartShop recommendation service.

Defines specific exception types for better error handling and reporting.
Each carries the HTTP status code the API answers with.
"""

from typing import Any, Dict, Optional


class SmartShopException(Exception):
    """Base exception for SmartShop errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class UserNotFoundError(SmartShopException):
    """Raised when a user does not exist in the user store."""

    def __init__(self, user_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"User {user_id} not found."
        super().__init__(
            message=message,
            status_code=404,
            details=details or {"user_id": user_id},
        )


class InvalidRecommendationError(SmartShopException):
    """Raised when a manually supplied recommendation list is invalid."""

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(
            message=message,
            status_code=400,
            details={"index": index} if index is not None else {},
        )


class StoreError(SmartShopException):
    """Raised when a backing store cannot be read."""

    def __init__(self, store: str, error: Exception):
        message = f"Failed to read {store} store: {str(error)}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "store": store,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class RecommendationError(SmartShopException):
    """Raised when every fallback tier failed to produce recommendations."""

    def __init__(
        self,
        stage: str,
        error: Exception,
        user_id: Optional[str] = None,
    ):
        target = f" for user {user_id}" if user_id is not None else ""
        message = f"Failed to generate recommendations{target} at stage '{stage}': {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "user_id": user_id,
                "stage": stage,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
