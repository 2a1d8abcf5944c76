#!/usr/bin/env python3
"""
Bulk Contact Validation Script

Selects customers whose email or phone validation status is still `unknown`
and sends them to the external verifier in one verify-bulk request per
channel. Results are applied later by receive_notification.py.

Usage:
    python validate_once.py --hostname HOST [--channel email|phone|all] [--fail-fast] [--dry-run]

Options:
    --channel          Channel to validate (default: all)
    --hostname         Hostname context forwarded to the verifier
    --fail-fast        Exit on the first verifier failure
    --dry-run          Select contacts but do not call the verifier
    --ensure-indexes   Create the selector indexes before running
"""

import os
import sys
import logging
import argparse
from datetime import datetime

# Configure logging FIRST
log_format = '%(asctime)s - %(levelname)s - %(message)s'

# Configure logging to both console and file
log_handlers = [logging.StreamHandler()]

if os.environ.get('LOG_TO_FILE'):
    file_handler = logging.FileHandler(os.environ.get('LOG_FILE', 'contact-validation.log'))
    file_handler.setFormatter(logging.Formatter(log_format))
    log_handlers.append(file_handler)

logging.basicConfig(
    level=logging.INFO,
    format=log_format,
    handlers=log_handlers
)
logger = logging.getLogger(__name__)

from config.feature_flags import validate_feature_flags
from shared.api_client import VerifierClient
from shared.errors import SelectorReadError, VerifierRequestError
from shared.models import Channel
from shared.mongo import ensure_indexes, get_customers_collection, get_dead_letters_collection
from shared_config import SystemConfig
from verify.service import validate_bulk


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Send unverified customer contacts to the external verifier',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--channel', choices=['email', 'phone', 'all'], default='all',
                        help='Channel to validate')
    parser.add_argument('--hostname', required=True,
                        help='Hostname context forwarded to the verifier')
    parser.add_argument('--fail-fast', action='store_true',
                        help='Stop and exit non-zero on the first verifier failure')
    parser.add_argument('--dry-run', action='store_true',
                        help='Select contacts but do not call the verifier')
    parser.add_argument('--ensure-indexes', action='store_true',
                        help='Create selector indexes before running')

    return parser.parse_args(argv)


def run(args, config: SystemConfig, collection, dead_letters=None) -> int:
    """Run the bulk pipeline for each requested channel; return a process exit code."""
    channels = list(Channel) if args.channel == 'all' else [Channel.parse(args.channel)]
    client = VerifierClient(config.verifier, dry_run=config.pipeline.dry_run)

    exit_code = 0
    for channel in channels:
        try:
            result = validate_bulk(
                channel, args.hostname,
                collection=collection, client=client, config=config, dead_letters=dead_letters,
            )
        except SelectorReadError as e:
            logger.error(f"❌ {channel.value} selection failed: {e}")
            return 1
        except VerifierRequestError as e:
            logger.error(f"❌ {channel.value} verification failed (fail-fast): {e}")
            return 1

        if not result.ok:
            exit_code = 1
        logger.info(
            f"📊 {channel.value}: selected={len(result.batch)}, "
            f"sent={sent_label(result, config.pipeline.dry_run)}, ok={result.ok}"
        )

    return exit_code


def sent_label(result, dry_run: bool) -> str:
    """Describe whether the batch actually reached the verifier."""
    if result.skipped or not len(result.batch):
        return 'no'
    if dry_run:
        return 'dry-run'
    return 'yes' if result.ok else 'failed'


def main(argv=None) -> int:
    args = parse_args(argv)

    config = SystemConfig.load()
    if args.fail_fast:
        config.pipeline.fail_fast = True
    if args.dry_run:
        config.pipeline.dry_run = True

    logger.info("🔍 BULK CONTACT VALIDATION")
    logger.info("=" * 50)
    logger.info(f"Timestamp: {datetime.now().isoformat()}")
    config.log_config_summary()

    for issue in validate_feature_flags():
        logger.warning(f"⚠️ Feature flag issue: {issue}")

    collection = get_customers_collection(config.mongo)
    dead_letters = get_dead_letters_collection(config.mongo)

    if args.ensure_indexes:
        ensure_indexes(collection)

    return run(args, config, collection, dead_letters)


if __name__ == "__main__":
    sys.exit(main())
