"""
Shared utilities for the Contact Verification Pipeline.
Contains common models, errors, verifier client and store helpers.
"""

from .models import Channel, Contact, VerificationBatch, VerificationResult
from .errors import (
    VerificationPipelineError,
    SelectorReadError,
    VerifierRequestError,
    ReconciliationWriteError,
    NotificationDecodeError,
    UnknownActionError,
)

__all__ = [
    'Channel',
    'Contact',
    'VerificationBatch',
    'VerificationResult',
    'VerificationPipelineError',
    'SelectorReadError',
    'VerifierRequestError',
    'ReconciliationWriteError',
    'NotificationDecodeError',
    'UnknownActionError',
]
