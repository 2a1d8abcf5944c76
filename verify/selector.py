"""
Streaming selector for customers awaiting verification.
"""

import logging
from typing import Iterator

from pymongo.errors import PyMongoError

from shared.errors import SelectorReadError
from shared.models import Channel, UNKNOWN_STATUS

logger = logging.getLogger(__name__)

BULK_LIMIT = 1000


def eligibility_filter(channel: Channel) -> dict:
    """Identifier present and non-null, status still unknown."""
    return {
        channel.identifier_field: {'$exists': True, '$ne': None},
        channel.status_field: UNKNOWN_STATUS,
    }


def stream_unverified_identifiers(collection, channel: Channel, limit: int = BULK_LIMIT,
                                  page_size: int = 100) -> Iterator[str]:
    """
    Yield identifiers of customers whose channel status is still `unknown`.

    The cursor pulls one page of `page_size` documents per round trip and the
    query is capped at `limit` results. Nothing is claimed, so overlapping
    invocations may yield the same customers.

    Raises:
        SelectorReadError: the cursor failed while streaming.
    """
    limit = min(limit, BULK_LIMIT)
    field = channel.identifier_field

    cursor = collection.find(eligibility_filter(channel), {field: 1, '_id': 0}).limit(limit).batch_size(page_size)

    yielded = 0
    try:
        for customer in cursor:
            identifier = customer.get(field)
            if not identifier:
                continue
            yield identifier
            yielded += 1
            if yielded >= limit:
                break
    except PyMongoError as e:
        logger.error(f"❌ Failed streaming {channel.value} candidates after {yielded} records: {e}")
        raise SelectorReadError(f"Failed to stream {channel.value} candidates: {e}") from e
    finally:
        cursor.close()

    logger.debug(f"Streamed {yielded} {channel.value} candidates (limit={limit})")
