"""
Engages notifications from the verifier/message queue.

Payloads are decoded into typed variants at the boundary, then dispatched.
"""

import json
import logging
from typing import Any, Mapping, Optional, Union

from shared.errors import NotificationDecodeError, UnknownActionError
from shared.models import (
    Channel,
    EmailVerifyNotification,
    Notification,
    ReconcileSummary,
    SetDoNotDisturbNotification,
    VerificationResult,
)
from verify.reconcile import apply_verification_results, set_do_not_disturb

logger = logging.getLogger(__name__)

EMAIL_VERIFY = 'emailVerify'
SET_DO_NOT_DISTURB = 'setDoNotDisturb'
ALL_ACTIONS = (EMAIL_VERIFY, SET_DO_NOT_DISTURB)


def _decode_results(data: Any) -> tuple:
    if not isinstance(data, list):
        raise NotificationDecodeError(f"{EMAIL_VERIFY} data must be a list, got {type(data).__name__}")

    results = []
    for index, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise NotificationDecodeError(f"{EMAIL_VERIFY} entry {index} is not an object")

        status = entry.get('status')
        if not isinstance(status, str) or not status:
            raise NotificationDecodeError(f"{EMAIL_VERIFY} entry {index} has no status")

        found = False
        for channel in Channel:
            identifier = entry.get(channel.single_key)
            if identifier:
                if status not in channel.known_statuses:
                    logger.warning(f"⚠️ Unrecognised {channel.value} status {status!r} in entry {index} - storing as-is")
                results.append(VerificationResult(channel=channel, identifier=str(identifier), status=status))
                found = True

        if not found:
            raise NotificationDecodeError(f"{EMAIL_VERIFY} entry {index} has neither email nor phone")

    return tuple(results)


def _decode_customer_id(data: Any):
    if not isinstance(data, Mapping) or not data.get('customerId'):
        raise NotificationDecodeError(f"{SET_DO_NOT_DISTURB} data must contain customerId")

    return data['customerId']


def decode_notification(message: Union[str, bytes, Mapping]) -> Notification:
    """
    Decode a raw `{action, data}` message into a notification variant.

    Raises:
        UnknownActionError: the action tag is not one we handle.
        NotificationDecodeError: the message or its data is malformed.
    """
    if isinstance(message, (str, bytes)):
        try:
            message = json.loads(message)
        except ValueError as e:
            raise NotificationDecodeError(f"Notification is not valid JSON: {e}") from e

    if not isinstance(message, Mapping):
        raise NotificationDecodeError("Notification must be an object")

    action = message.get('action')
    data = message.get('data')

    if action == EMAIL_VERIFY:
        return EmailVerifyNotification(results=_decode_results(data))
    if action == SET_DO_NOT_DISTURB:
        return SetDoNotDisturbNotification(customer_id=_decode_customer_id(data))

    raise UnknownActionError(action)


def receive_engages_notification(message, *, collection) -> Optional[ReconcileSummary]:
    """Decode and apply an engages notification; unknown actions are ignored."""
    try:
        notification = decode_notification(message)
    except UnknownActionError as e:
        logger.warning(f"⏭️ Ignoring notification: {e} (handled actions: {', '.join(ALL_ACTIONS)})")
        return None

    if isinstance(notification, EmailVerifyNotification):
        logger.info(f"📥 Received {len(notification.results)} verification results")
        return apply_verification_results(collection, notification.results)

    if isinstance(notification, SetDoNotDisturbNotification):
        return set_do_not_disturb(collection, notification.customer_id)

    raise NotificationDecodeError(f"Unhandled notification type: {type(notification).__name__}")
