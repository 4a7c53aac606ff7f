"""
Custom Exception Classes

Defines application-specific exceptions for better error handling and logging.
"""

from typing import Any, Dict, Optional


class MiddlewareException(Exception):
    """Base exception for all middleware errors"""

    def __init__(
        self,
        message: str,
        error_code: str = "MIDDLEWARE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class StripeException(MiddlewareException):
    """Stripe API related errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="STRIPE_ERROR", details=details)


class StripeSignatureException(StripeException):
    """Stripe webhook signature verification failed"""

    def __init__(
        self,
        message: str = "Invalid Stripe webhook signature",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details={**(details or {}), "verification": "failed"})


class SevDeskException(MiddlewareException):
    """SevDesk API related errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="SEVDESK_ERROR", details=details)


class SevDeskAPIException(SevDeskException):
    """SevDesk REST API call errors"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if status_code:
            details["status_code"] = status_code
        self.status_code = status_code
        super().__init__(message, details=details)


class LinkageNotFoundException(MiddlewareException):
    """A Stripe object carries no SevDesk id in its metadata"""

    def __init__(self, object_type: str, object_id: str):
        super().__init__(
            f"No SevDesk link found for {object_type} {object_id}",
            error_code="LINKAGE_NOT_FOUND",
            details={"object_type": object_type, "object_id": object_id},
        )


class SecretException(MiddlewareException):
    """Secret store lookup errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="SECRET_ERROR", details=details)


class ConfigurationException(MiddlewareException):
    """Configuration or environment errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFIG_ERROR", details=details)


class ValidationException(MiddlewareException):
    """Data validation errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)
