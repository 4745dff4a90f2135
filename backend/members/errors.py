"""
Members - Exceptions

Lookups never raise for missing rows, and storage errors
(sqlalchemy.exc.SQLAlchemyError) propagate unwrapped. The exceptions
below cover the remaining failure modes.
"""

from typing import Any, Dict, Optional


class MemberStoreError(Exception):
    """Base exception for member store errors"""
    error = "member_store_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": str(self)}


class MemberValidationError(MemberStoreError):
    """Raised for invalid arguments, before any statement is executed"""
    error = "validation_error"

    def __init__(self, message: str, parameter: Optional[str] = None, value: Optional[Any] = None):
        super().__init__(message)
        self.parameter = parameter
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        response = super().to_dict()
        response["parameter"] = self.parameter
        if self.value is not None:
            response["received_value"] = str(self.value)[:100]
        return response


class InvalidOrderByError(MemberValidationError):
    """Raised when an orderBy string names an unknown field or direction"""
    error = "invalid_order_by"

    def __init__(self, order_by: Any):
        super().__init__(f"Invalid order by: {order_by}!", parameter="orderBy", value=order_by)
        self.order_by = order_by


class InvalidPaginationError(MemberValidationError):
    """Raised for a non-positive limit or a negative offset"""
    error = "invalid_pagination"


class IdentityRowCountMismatchError(MemberStoreError):
    """
    Raised when a batch identity statement touched a different number of
    rows than identities were requested. The statement has been rolled back.
    """
    error = "identity_row_count_mismatch"

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Expected {expected} identity rows to be affected, got {actual}")
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        response = super().to_dict()
        response["expected"] = self.expected
        response["actual"] = self.actual
        return response
