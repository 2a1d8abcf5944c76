"""
Verify service.

Runs the bulk pipeline: stream customers whose status is still `unknown`,
accumulate their identifiers into one batch, and hand the batch to the
external verifier. Results come back later as notifications and are applied
by `verify.notifications` / `verify.reconcile`.
"""

import logging
from typing import Iterable, Optional

from config.feature_flags import is_verification_enabled, get_feature_flag, mask_identifier
from shared.api_client import VerifierClient
from shared.errors import VerifierRequestError
from shared.models import (
    BulkRunResult,
    Channel,
    Contact,
    VerificationBatch,
    VerifierErr,
    VerifierOk,
    VerifierResult,
)
from shared.mongo import log_dead_letter
from shared_config import SystemConfig
from verify.selector import stream_unverified_identifiers

logger = logging.getLogger(__name__)


def collect_batch(identifiers: Iterable[str], channel: Channel, hostname: str, limit: int) -> VerificationBatch:
    """Consume the selector stream to completion into one ordered batch."""
    batch = VerificationBatch(channel=channel, hostname=hostname)
    for identifier in identifiers:
        if len(batch.identifiers) >= limit:
            break
        batch.identifiers.append(identifier)
    return batch


def validate_bulk(channel, hostname: str, *, collection, client: VerifierClient, config: SystemConfig,
                  dead_letters=None) -> BulkRunResult:
    """
    Select unverified customers for `channel` and send them to verify-bulk.

    Returns a BulkRunResult carrying either VerifierOk or VerifierErr. An empty
    batch skips the verifier call. With `config.pipeline.fail_fast` a verifier
    failure is raised instead of returned.

    Raises:
        SelectorReadError: streaming the customers failed; nothing was sent.
        VerifierRequestError: only when fail_fast is enabled.
    """
    channel = Channel.parse(channel)
    limit = config.pipeline.bulk_limit

    logger.info(f"🔍 Selecting up to {limit} {channel.value} contacts with unknown status")
    stream = stream_unverified_identifiers(collection, channel, limit=limit, page_size=config.pipeline.page_size)
    try:
        batch = collect_batch(stream, channel, hostname, limit)
    finally:
        stream.close()

    if not batch.identifiers:
        logger.info(f"ℹ️ No {channel.value} contacts awaiting verification - skipping verifier call")
        return BulkRunResult(batch=batch, verifier=VerifierOk(skipped=True))

    if not is_verification_enabled():
        logger.info(f"📴 Verification disabled by feature flag - {len(batch)} {channel.value} contacts not sent")
        return BulkRunResult(batch=batch, verifier=VerifierOk(skipped=True))

    outcome = client.verify_bulk(batch)
    result = BulkRunResult(batch=batch, verifier=outcome)

    if isinstance(outcome, VerifierErr):
        _record_verifier_failure(dead_letters, batch, outcome.error)
        if config.pipeline.fail_fast:
            result.raise_for_error()
        logger.warning(
            f"⚠️ Verifier request failed for {len(batch)} {channel.value} contacts; "
            f"they stay unknown and will be selected again next run"
        )
    else:
        logger.info(f"✅ Sent {len(batch)} {channel.value} contacts for verification")

    return result


def validate_single(contact: Contact, hostname: Optional[str] = None, *, client: VerifierClient) -> VerifierResult:
    """Send one contact to verify-single."""
    outcome = client.verify_single(contact, hostname)
    if isinstance(outcome, VerifierErr):
        logger.error(
            f"❌ An error occurred while sending {mask_identifier(contact.identifier)} "
            f"to the verifier: {outcome.error}"
        )
    return outcome


def _record_verifier_failure(dead_letters, batch: VerificationBatch, error: VerifierRequestError) -> None:
    if not get_feature_flag('verification.dead_letters_enabled', True):
        return
    log_dead_letter(
        dead_letters,
        phase=f"verify_bulk_{batch.channel.value}",
        identifier=None,
        payload={'count': len(batch), 'hostname': batch.hostname},
        http_status=error.status_code,
        error_text=str(error),
    )
