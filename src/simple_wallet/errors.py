"""Classified errors raised while retrieving an account's private key.

Every fatal condition maps to exactly one `ErrorKind`. A failure to re-lock
an account after export is never fatal: it is attached to the primary
outcome as ``relock_error`` instead of being raised.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    INVALID_REFERENCE = "invalid reference"
    MISSING_CREDENTIAL = "missing credential"
    UNSUPPORTED_OPERATION = "unsupported operation"
    ACCOUNT_NOT_FOUND = "account not found"
    UNLOCK_FAILED = "unlock failed"
    EXPORT_FAILED = "export failed"
    TIMEOUT = "timeout"
    RELOCK_FAILED = "relock failed"


class KeyRetrievalError(Exception):
    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.relock_error: Optional["RelockFailed"] = None


class InvalidReference(KeyRetrievalError):
    kind = ErrorKind.INVALID_REFERENCE


class MissingCredential(KeyRetrievalError):
    kind = ErrorKind.MISSING_CREDENTIAL


class UnsupportedOperation(KeyRetrievalError):
    kind = ErrorKind.UNSUPPORTED_OPERATION


class AccountNotFound(KeyRetrievalError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class UnlockFailed(KeyRetrievalError):
    kind = ErrorKind.UNLOCK_FAILED


class ExportFailed(KeyRetrievalError):
    kind = ErrorKind.EXPORT_FAILED


class OperationTimeout(KeyRetrievalError):
    kind = ErrorKind.TIMEOUT


class RelockFailed(KeyRetrievalError):
    kind = ErrorKind.RELOCK_FAILED
