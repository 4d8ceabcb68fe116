"""
Centralized Error Types for Tankwatch Analytics

The analytics engine maps insufficient data to neutral values (0, 100, None)
rather than raising. Exceptions are reserved for input that is outside the
domain entirely (a reading that cannot describe a real tank) and for
settings that would make the formulas meaningless.
"""

from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# Error Categories
# =============================================================================


class ErrorCategory(str, Enum):
    """Categories for error classification"""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


# =============================================================================
# Custom Exceptions
# =============================================================================


class TankwatchError(Exception):
    """Base exception for Tankwatch"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidReadingError(TankwatchError, ValueError):
    """A reading failed basic domain validation"""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if index is not None:
            details["index"] = index
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details,
        )
        self.index = index
        self.field = field


class InvalidConfigurationError(TankwatchError, ValueError):
    """Settings that would make the analytics formulas meaningless"""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            details=details,
        )
        self.setting = setting
