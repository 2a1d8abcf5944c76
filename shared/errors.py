"""
Error types for the contact verification pipeline.
Each stage wraps the underlying driver/transport exception with one of these.
"""

from typing import Optional


class VerificationPipelineError(Exception):
    """Base class for all pipeline failures."""


class SelectorReadError(VerificationPipelineError):
    """Streaming the eligible customers from the store failed."""


class VerifierRequestError(VerificationPipelineError):
    """The external verifier could not be reached or rejected the request."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ''):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ReconciliationWriteError(VerificationPipelineError):
    """Bulk status write-back failed."""


class NotificationDecodeError(VerificationPipelineError):
    """An inbound notification payload could not be decoded."""


class UnknownActionError(NotificationDecodeError):
    """The notification carries an action tag this service does not handle."""

    def __init__(self, action):
        super().__init__(f"Unknown notification action: {action!r}")
        self.action = action
