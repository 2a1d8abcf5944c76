#!/usr/bin/env python3
"""
Receive Verification Notification Script

Applies one engages notification (`emailVerify` results or `setDoNotDisturb`)
received from the verifier or message queue to the customer collection.

Usage:
    python receive_notification.py [--file PATH]

Options:
    --file PATH    Read the notification JSON from PATH (default: stdin)
"""

import sys
import json
import logging
import argparse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from shared.errors import NotificationDecodeError, ReconciliationWriteError, UnknownActionError
from shared.mongo import get_customers_collection, get_dead_letters_collection, log_dead_letter
from shared_config import SystemConfig
from verify.notifications import decode_notification, receive_engages_notification


def apply_notification(raw: str, collection, dead_letters=None, dry_run: bool = False) -> int:
    """Apply a raw notification; return a process exit code."""
    try:
        if dry_run:
            notification = decode_notification(raw)
            logger.info(f"DRY RUN: Would apply {type(notification).__name__}")
            print(json.dumps({'status': 'dry_run'}))
            return 0
        summary = receive_engages_notification(raw, collection=collection)
    except UnknownActionError as e:
        logger.warning(f"⏭️ Ignoring notification: {e}")
        print(json.dumps({'status': 'ignored'}))
        return 0
    except NotificationDecodeError as e:
        logger.error(f"❌ Rejected notification: {e}")
        log_dead_letter(dead_letters, 'notification_decode', None, raw, None, str(e))
        return 2
    except ReconciliationWriteError as e:
        logger.error(f"❌ Failed to apply notification: {e}")
        log_dead_letter(dead_letters, 'reconciliation', None, raw, None, str(e))
        return 1

    if summary is None:
        print(json.dumps({'status': 'ignored'}))
    else:
        print(json.dumps({
            'status': 'success',
            'requested': summary.requested,
            'matched': summary.matched,
            'modified': summary.modified,
        }))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Apply a verifier notification to customer records',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--file', help='Notification JSON file (default: stdin)')
    args = parser.parse_args(argv)

    if args.file:
        with open(args.file, 'r') as f:
            raw = f.read()
    else:
        raw = sys.stdin.read()

    config = SystemConfig.load()
    collection = get_customers_collection(config.mongo)
    dead_letters = get_dead_letters_collection(config.mongo)

    return apply_notification(raw, collection, dead_letters, dry_run=config.pipeline.dry_run)


if __name__ == "__main__":
    sys.exit(main())
