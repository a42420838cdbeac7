"""
Domain exceptions raised by the PTO services
"""
from typing import Any, Dict, List, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ConfigurationError(AppException):
    """Malformed PTO type or a missing required relationship. Never retried."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details=details
        )


class TransientStoreError(AppException):
    """Failure while reading or writing the approval / blackout stores."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=503,
            error_code="STORE_ERROR",
            details=details
        )


class BlackoutConflictError(AppException):
    def __init__(self, conflicts: List[Dict[str, Any]]):
        super().__init__(
            message="PTO request conflicts with blackout periods. Emergency override required.",
            status_code=422,
            error_code="BLACKOUT_CONFLICT",
            details={"blackout_conflicts": True, "conflicts": conflicts}
        )


class ApprovalNotAllowedError(AppException):
    def __init__(self, message: str = "You are not authorized to act on this request"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="APPROVAL_NOT_ALLOWED"
        )


class InvalidStateError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_STATE"
        )
