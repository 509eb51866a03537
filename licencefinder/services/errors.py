"""
Licence Finder Error Handling

Specific error types with user-friendly messages and debugging context.
Soft outcomes such as "No Match Found" are result values, not errors.
"""
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes for client handling."""
    # Input errors (400s)
    INPUT_CONTRACT = "INPUT_CONTRACT"
    AMBIGUOUS_MAPPING = "AMBIGUOUS_MAPPING"
    INVALID_EXTRACT = "INVALID_EXTRACT"
    INVALID_CONFIG = "INVALID_CONFIG"
    EMPTY_EXTRACT = "EMPTY_EXTRACT"

    # Processing errors (500s)
    RECONCILIATION_FAILED = "RECONCILIATION_FAILED"


class LicenceFinderError(Exception):
    """Base exception with structured error info."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.detail = detail
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to API response format."""
        result = {
            "error": self.code.value,
            "message": self.message
        }
        if self.detail:
            result["detail"] = self.detail
        if self.context:
            result["context"] = self.context
        return result


class InputContractError(LicenceFinderError):
    """A required argument or collaborator is missing or malformed."""

    def __init__(self, argument: str, detail: str):
        super().__init__(
            code=ErrorCode.INPUT_CONTRACT,
            message=f"Invalid argument '{argument}'",
            detail=detail,
            context={"argument": argument}
        )


class AmbiguousMappingError(LicenceFinderError):
    """More than one value is eligible where exactly one is expected."""

    def __init__(self, name: str, candidates: List[str]):
        super().__init__(
            code=ErrorCode.AMBIGUOUS_MAPPING,
            message=f"Unknown which of multiple values to use for {name}",
            detail=", ".join(candidates),
            context={"name": name, "candidates": list(candidates)}
        )


class ExtractParseError(LicenceFinderError):
    """Error parsing an extract file."""

    def __init__(self, source: str, detail: str):
        super().__init__(
            code=ErrorCode.INVALID_EXTRACT,
            message=f"Could not parse {source} extract",
            detail=detail,
            context={"source": source}
        )


class ConfigError(LicenceFinderError):
    """Error in configuration."""

    def __init__(self, field: str, detail: str):
        super().__init__(
            code=ErrorCode.INVALID_CONFIG,
            message=f"Invalid configuration for '{field}'",
            detail=detail,
            context={"field": field}
        )


class EmptyExtractError(LicenceFinderError):
    """No data to process."""

    def __init__(self, source: str):
        super().__init__(
            code=ErrorCode.EMPTY_EXTRACT,
            message=f"No data found in {source}",
            detail="File was parsed but contained no rows",
            context={"source": source}
        )


class ReconciliationError(LicenceFinderError):
    """Error during reconciliation."""

    def __init__(self, stage: str, detail: str):
        super().__init__(
            code=ErrorCode.RECONCILIATION_FAILED,
            message=f"Reconciliation failed at {stage}",
            detail=f"Error occurred while finding licence files: {detail}",
            context={"stage": stage}
        )


def to_http_exception(error: LicenceFinderError) -> HTTPException:
    """Convert LicenceFinderError to HTTPException."""
    status_map = {
        ErrorCode.INPUT_CONTRACT: 400,
        ErrorCode.AMBIGUOUS_MAPPING: 400,
        ErrorCode.INVALID_EXTRACT: 400,
        ErrorCode.INVALID_CONFIG: 400,
        ErrorCode.EMPTY_EXTRACT: 400,
        ErrorCode.RECONCILIATION_FAILED: 500,
    }

    return HTTPException(
        status_code=status_map.get(error.code, 500),
        detail=error.to_dict()
    )


def handle_safely(stage: str):
    """
    Decorator that wraps unexpected failures in a ReconciliationError.

    Usage:
        @handle_safely("licence matching")
        def reconcile(...):
            ...
    """
    def decorator(func):
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except LicenceFinderError:
                raise
            except Exception as e:
                raise ReconciliationError(
                    stage=stage,
                    detail=str(e)
                ) from e
        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper
    return decorator
