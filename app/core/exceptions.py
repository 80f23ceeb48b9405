"""Custom exception classes."""

from typing import Any, Optional

from fastapi import HTTPException, status


class CredentialsException(HTTPException):
    """Exception for invalid credentials."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(HTTPException):
    """Exception for permission denied."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class TableAdminError(Exception):
    """
    Base class for table administration failures.

    ``kind`` is the stable name clients switch on; ``message`` is shown to
    the admin as-is.
    """

    kind = "TableAdminError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnknownTable(TableAdminError):
    kind = "UnknownTable"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' not found")


class UnknownColumn(TableAdminError):
    kind = "UnknownColumn"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, table_name: str, column_name: str):
        self.table_name = table_name
        self.column_name = column_name
        super().__init__(f"Table '{table_name}' has no column '{column_name}'")


class MissingRequiredField(TableAdminError):
    kind = "MissingRequiredField"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, column_name: str):
        self.column_name = column_name
        super().__init__(f"Column '{column_name}' is required")


class InvalidFieldType(TableAdminError):
    """
    A value that does not fit its column.

    Raised before any statement by coercion, or from the store's own data
    error (value too long, out of range) with ``column_name`` unknown.
    """

    kind = "InvalidFieldType"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        column_name: Optional[str],
        value: Any = None,
        expected: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.column_name = column_name
        self.value = value
        if message is None:
            message = f"Invalid value for column '{column_name}': {value!r}"
            if expected:
                message += f" (expected {expected})"
        super().__init__(message)


class InvalidRequest(TableAdminError):
    kind = "InvalidRequest"
    status_code = status.HTTP_400_BAD_REQUEST


class AmbiguousIdentity(TableAdminError):
    """Raised when a write would rely on a guessed identity column."""

    kind = "AmbiguousIdentity"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, table_name: str, column_name: str, message: Optional[str] = None):
        self.table_name = table_name
        self.column_name = column_name
        super().__init__(
            message
            or (
                f"Table '{table_name}' has no single declared primary key; "
                f"'{column_name}' was guessed as its identity column. "
                "Confirm the identity to proceed."
            )
        )


class ConstraintViolation(TableAdminError):
    """Store-rejected write. The message is the store's own text."""

    kind = "ConstraintViolation"
    status_code = status.HTTP_409_CONFLICT


class RecordNotFound(TableAdminError):
    kind = "RecordNotFound"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, table_name: str, identity_value: Any):
        self.table_name = table_name
        self.identity_value = identity_value
        super().__init__(f"Record '{identity_value}' not found in table '{table_name}'")


class StoreUnavailable(TableAdminError):
    kind = "StoreUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
