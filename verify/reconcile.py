"""
Reconciliation writer: applies verifier results back onto customer records.

Every write is a targeted `$set` of one status field keyed by the contact
identifier, so repeated or reordered results converge (last write wins).
"""

import logging
from typing import Iterable, List

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from config.feature_flags import mask_identifier
from shared.errors import ReconciliationWriteError
from shared.models import (
    Channel,
    Contact,
    DO_NOT_DISTURB_YES,
    ReconcileSummary,
    VerificationResult,
)

logger = logging.getLogger(__name__)


def build_status_updates(channel: Channel, results: Iterable[VerificationResult]) -> List[UpdateOne]:
    """One UpdateOne per result: filter on identifier, set the channel status."""
    ops = []
    for result in results:
        if result.channel is not channel:
            raise ValueError(f"Result for {result.channel.value} passed to {channel.value} reconciliation")
        ops.append(UpdateOne(
            {channel.identifier_field: result.identifier},
            {'$set': {channel.status_field: result.status}},
        ))
    return ops


def update_contacts_validation_status(collection, channel: Channel,
                                      results: Iterable[VerificationResult]) -> ReconcileSummary:
    """
    Bulk update the validation status for one channel.

    Identifiers without a matching customer are no-ops. An empty batch skips
    the database call entirely.

    Raises:
        ReconciliationWriteError: the bulk write failed.
    """
    ops = build_status_updates(channel, results)
    if not ops:
        logger.info(f"ℹ️ No {channel.value} results to reconcile")
        return ReconcileSummary()

    try:
        outcome = collection.bulk_write(ops, ordered=False)
    except PyMongoError as e:
        logger.error(f"❌ Failed to reconcile {len(ops)} {channel.value} results: {e}")
        raise ReconciliationWriteError(f"Bulk {channel.value} status update failed: {e}") from e

    summary = ReconcileSummary(
        requested=len(ops),
        matched=outcome.matched_count,
        modified=outcome.modified_count,
    )
    logger.info(
        f"✅ Reconciled {channel.value} statuses: requested={summary.requested}, "
        f"matched={summary.matched}, modified={summary.modified}"
    )
    return summary


def apply_verification_results(collection, results: Iterable[VerificationResult]) -> ReconcileSummary:
    """Group mixed email/phone results by channel and bulk write each group."""
    grouped = {channel: [] for channel in Channel}
    for result in results:
        grouped[result.channel].append(result)

    summary = ReconcileSummary()
    for channel, channel_results in grouped.items():
        if channel_results:
            summary += update_contacts_validation_status(collection, channel, channel_results)
    return summary


def update_contact_validation_status(collection, contact: Contact, status: str) -> ReconcileSummary:
    """Apply a single verify-single result to whichever channels the contact carries."""
    summary = ReconcileSummary()

    for channel, identifier in ((Channel.EMAIL, contact.email), (Channel.PHONE, contact.phone)):
        if not identifier:
            continue
        try:
            outcome = collection.update_one(
                {channel.identifier_field: identifier},
                {'$set': {channel.status_field: status}},
            )
        except PyMongoError as e:
            raise ReconciliationWriteError(f"Status update for {channel.value} failed: {e}") from e

        logger.debug(f"Set {channel.status_field}={status} for {mask_identifier(identifier)}")
        summary += ReconcileSummary(requested=1, matched=outcome.matched_count, modified=outcome.modified_count)

    return summary


def set_do_not_disturb(collection, customer_id) -> ReconcileSummary:
    """Flag one customer as do-not-disturb; touches no other field."""
    try:
        outcome = collection.update_one({'_id': customer_id}, {'$set': {'doNotDisturb': DO_NOT_DISTURB_YES}})
    except PyMongoError as e:
        raise ReconciliationWriteError(f"Do-not-disturb update for {customer_id} failed: {e}") from e

    if not outcome.matched_count:
        logger.warning(f"⚠️ Do-not-disturb requested for unknown customer {customer_id}")
    else:
        logger.info(f"🚫 Customer {customer_id} marked do-not-disturb")

    return ReconcileSummary(requested=1, matched=outcome.matched_count, modified=outcome.modified_count)
