"""
Data models for the contact verification pipeline.
Contains data classes and structures used across selector, verifier and reconciliation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from .errors import VerifierRequestError

UNKNOWN_STATUS = 'unknown'

EMAIL_VALIDATION_STATUSES = (
    'valid', 'invalid', 'accept_all_unverifiable', 'unverifiable',
    'unknown', 'disposable', 'catchall', 'badsyntax',
)
PHONE_VALIDATION_STATUSES = ('valid', 'invalid', 'unverifiable', 'unknown', 'receives_sms')

DO_NOT_DISTURB_YES = 'Yes'


class Channel(Enum):
    """Contact verification dimension: email or phone."""
    EMAIL = 'email'
    PHONE = 'phone'

    @classmethod
    def parse(cls, value: Union[str, 'Channel']) -> 'Channel':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unsupported verification channel: {value!r}") from None

    @property
    def identifier_field(self) -> str:
        return 'primaryEmail' if self is Channel.EMAIL else 'primaryPhone'

    @property
    def status_field(self) -> str:
        return 'emailValidationStatus' if self is Channel.EMAIL else 'phoneValidationStatus'

    @property
    def single_key(self) -> str:
        """Body key for verify-single requests and result entries."""
        return self.value

    @property
    def bulk_key(self) -> str:
        """Body key for verify-bulk requests."""
        return f"{self.value}s"

    @property
    def known_statuses(self) -> tuple:
        return EMAIL_VALIDATION_STATUSES if self is Channel.EMAIL else PHONE_VALIDATION_STATUSES


@dataclass
class Contact:
    """A visitor contact; phone wins over email when both are set."""
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def channel(self) -> Optional[Channel]:
        if self.phone:
            return Channel.PHONE
        if self.email:
            return Channel.EMAIL
        return None

    @property
    def identifier(self) -> Optional[str]:
        return self.phone or self.email or None


@dataclass
class VerificationBatch:
    """Identifiers collected for one verify-bulk request."""
    channel: Channel
    hostname: str
    identifiers: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.identifiers)

    def to_request_body(self) -> dict:
        return {self.channel.bulk_key: list(self.identifiers), 'hostname': self.hostname}


@dataclass(frozen=True)
class VerificationResult:
    """One verifier outcome for a single identifier."""
    channel: Channel
    identifier: str
    status: str


@dataclass
class VerifierOk:
    status_code: Optional[int] = None
    body: Any = None
    skipped: bool = False
    ok: bool = field(default=True, init=False)


@dataclass
class VerifierErr:
    error: VerifierRequestError
    ok: bool = field(default=False, init=False)


VerifierResult = Union[VerifierOk, VerifierErr]


@dataclass
class BulkRunResult:
    """Outcome of one selector -> accumulator -> verifier run."""
    batch: VerificationBatch
    verifier: VerifierResult

    @property
    def ok(self) -> bool:
        return self.verifier.ok

    @property
    def skipped(self) -> bool:
        return isinstance(self.verifier, VerifierOk) and self.verifier.skipped

    def raise_for_error(self) -> None:
        if isinstance(self.verifier, VerifierErr):
            raise self.verifier.error


@dataclass
class ReconcileSummary:
    requested: int = 0
    matched: int = 0
    modified: int = 0

    def __add__(self, other: 'ReconcileSummary') -> 'ReconcileSummary':
        return ReconcileSummary(
            requested=self.requested + other.requested,
            matched=self.matched + other.matched,
            modified=self.modified + other.modified,
        )


@dataclass(frozen=True)
class EmailVerifyNotification:
    """`emailVerify` action: verifier results, email and/or phone entries."""
    results: tuple


@dataclass(frozen=True)
class SetDoNotDisturbNotification:
    """`setDoNotDisturb` action: flag a single customer."""
    customer_id: Any


Notification = Union[EmailVerifyNotification, SetDoNotDisturbNotification]
