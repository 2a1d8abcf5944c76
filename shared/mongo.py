"""
MongoDB utility functions.
Contains all document store access - separate from the verifier client.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from pymongo import ASCENDING, MongoClient
from pymongo.errors import PyMongoError

from shared_config import MongoConfig
from .models import Channel

logger = logging.getLogger(__name__)

# Mongo client - initialized on first use
_mongo_client = None


def get_mongo_client(config: MongoConfig) -> MongoClient:
    """Get or create the process-wide Mongo client."""
    global _mongo_client

    if _mongo_client is None:
        try:
            logger.info("Initializing MongoDB client...")
            _mongo_client = MongoClient(
                config.url,
                serverSelectionTimeoutMS=config.timeout_ms,
                connectTimeoutMS=config.timeout_ms,
            )
            _mongo_client.admin.command('ping')
            logger.info("✅ MongoDB client initialized successfully")

        except PyMongoError as e:
            logger.error(f"Failed to initialize MongoDB client: {e}")
            _mongo_client = None
            raise

    return _mongo_client


def get_database(config: MongoConfig):
    return get_mongo_client(config)[config.database]


def get_customers_collection(config: MongoConfig):
    return get_database(config)[config.customers_collection]


def get_dead_letters_collection(config: MongoConfig):
    return get_database(config)[config.dead_letters_collection]


def ensure_indexes(collection) -> None:
    """Create the identifier and selector indexes used by the pipeline."""
    for channel in Channel:
        collection.create_index([(channel.identifier_field, ASCENDING)], sparse=True)
        collection.create_index([(channel.status_field, ASCENDING), (channel.identifier_field, ASCENDING)])
    logger.info(f"✅ Ensured verification indexes on {collection.name}")


def log_dead_letter(dead_letters, phase: str, identifier: Optional[str], payload,
                    http_status: Optional[int], error_text: str) -> None:
    """Log failed operations to the dead letter collection."""
    if dead_letters is None:
        return

    try:
        dead_letters.insert_one({
            'occurred_at': datetime.now(timezone.utc),
            'phase': phase,
            'identifier': identifier,
            'http_status': http_status,
            'error_text': str(error_text)[:1000],  # Truncate long errors
            'payload': str(payload)[:500] if payload else None,
        })
        logger.debug(f"Logged dead letter: {phase} - {str(error_text)[:100]}")

    except PyMongoError as e:
        logger.error(f"Failed to log dead letter: {e}")
        # Don't raise - logging failures shouldn't break the main process
