# =============================================================================
# errors.py
# Exception hierarchy for the OR scheduler
# =============================================================================

from typing import Optional, Dict, Any


class ORSchedulerError(Exception):
    """
    Base exception for all scheduler errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "TIME_001")
        details: Additional context as a dictionary
    """

    default_code = "ORS_000"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidTimeFormat(ORSchedulerError, ValueError):
    """Raised when a clock time is not parseable as HH:mm"""

    default_code = "TIME_001"

    def __init__(self, value: Any):
        super().__init__(
            f"Invalid time '{value}', expected HH:mm",
            details={"value": value},
        )


# =============================================================================
# CASE / DATA EXCEPTIONS
# =============================================================================

class CaseValidationError(ORSchedulerError):
    """Raised when a case record violates the data model"""

    default_code = "CASE_001"

    def __init__(self, message: str, field: Optional[str] = None, case_id: Optional[str] = None):
        details = {}
        if field:
            details["field"] = field
        if case_id:
            details["case_id"] = case_id
        super().__init__(message, details=details)


class CaseNotFoundError(ORSchedulerError):
    """Raised when an operation names a case id the store does not hold"""

    default_code = "CASE_002"

    def __init__(self, case_id: str):
        super().__init__(f"Case '{case_id}' not found", details={"case_id": case_id})


class ConfigurationError(ORSchedulerError):
    """Raised for invalid grid or service configuration"""

    default_code = "CONF_001"


# =============================================================================
# EXTERNAL BOUNDARY EXCEPTIONS
# =============================================================================

class RepositoryError(ORSchedulerError):
    """Raised when loading or persisting cases fails"""

    default_code = "REPO_001"


class OracleError(ORSchedulerError):
    """Raised when the prediction oracle fails or returns unusable data"""

    default_code = "ORACLE_001"


class OptimizationError(ORSchedulerError):
    """Raised when the CP-SAT re-sequencer finds no feasible schedule"""

    default_code = "OPT_001"


class OperationInProgressError(ORSchedulerError):
    """Raised when an operation is triggered again before the first one resolved"""

    default_code = "OPS_001"

    def __init__(self, operation: str):
        super().__init__(
            f"'{operation}' is already running",
            details={"operation": operation},
        )
