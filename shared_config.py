#!/usr/bin/env python3
"""
Centralized Configuration for the Contact Verification Pipeline
Resolved once at process start and passed explicitly into the pipeline.
"""

import os
import logging
from pathlib import Path
from typing import Mapping, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

TRUE_VALUES = ('true', '1', 'yes', 'on')


def _env_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def load_env_file(path: Path, environ=None) -> None:
    """Load KEY=VALUE lines from a .env file without overriding real environment values."""
    environ = os.environ if environ is None else environ
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            environ.setdefault(key.strip(), value.strip())


@dataclass
class VerifierConfig:
    """External verifier endpoint and request policy."""
    endpoint: str = ''
    timeout_seconds: float = 30
    max_attempts: int = 3
    backoff_multiplier: float = 1.0
    backoff_max_seconds: float = 60.0

    @classmethod
    def load(cls, environ: Mapping[str, str]) -> 'VerifierConfig':
        endpoint = environ.get('EMAIL_VERIFIER_ENDPOINT', '')
        if not endpoint:
            logger.warning("⚠️ EMAIL_VERIFIER_ENDPOINT is not configured - verifier requests will be refused")

        return cls(
            endpoint=endpoint.rstrip('/'),
            timeout_seconds=float(environ.get('VERIFIER_TIMEOUT_SECONDS', '30')),
            max_attempts=max(1, int(environ.get('VERIFIER_MAX_ATTEMPTS', '3'))),
            backoff_multiplier=float(environ.get('VERIFIER_BACKOFF_MULTIPLIER', '1')),
            backoff_max_seconds=float(environ.get('VERIFIER_BACKOFF_MAX_SECONDS', '60')),
        )


@dataclass
class MongoConfig:
    """Document store connection settings."""
    url: str = 'mongodb://localhost:27017'
    database: str = 'erxes'
    customers_collection: str = 'customers'
    dead_letters_collection: str = 'verification_dead_letters'
    timeout_ms: int = 5000

    @classmethod
    def load(cls, environ: Mapping[str, str]) -> 'MongoConfig':
        return cls(
            url=environ.get('MONGO_URL', cls.url),
            database=environ.get('MONGO_DATABASE', cls.database),
            customers_collection=environ.get('MONGO_CUSTOMERS_COLLECTION', cls.customers_collection),
            dead_letters_collection=environ.get('MONGO_DEAD_LETTERS_COLLECTION', cls.dead_letters_collection),
            timeout_ms=int(environ.get('MONGO_TIMEOUT_MS', str(cls.timeout_ms))),
        )


@dataclass
class PipelineConfig:
    """Batching limits and failure policy."""
    bulk_limit: int = 1000  # Hard cap per invocation
    page_size: int = 100  # Cursor batch size
    fail_fast: bool = False
    dry_run: bool = False

    @classmethod
    def load(cls, environ: Mapping[str, str]) -> 'PipelineConfig':
        bulk_limit = int(environ.get('VERIFIER_BULK_LIMIT', '1000'))
        page_size = int(environ.get('SELECTOR_PAGE_SIZE', '100'))

        return cls(
            bulk_limit=min(max(1, bulk_limit), 1000),
            page_size=max(1, page_size),
            fail_fast=_env_bool(environ, 'VERIFIER_FAIL_FAST'),
            dry_run=_env_bool(environ, 'DRY_RUN'),
        )


@dataclass
class SystemConfig:
    """Main configuration class that aggregates all config sections."""
    verifier: VerifierConfig = field(default_factory=VerifierConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = None) -> 'SystemConfig':
        """Resolve configuration from the environment (and an optional .env file)."""
        if environ is None:
            load_env_file(env_file or Path.cwd() / '.env')
            environ = os.environ

        return cls(
            verifier=VerifierConfig.load(environ),
            mongo=MongoConfig.load(environ),
            pipeline=PipelineConfig.load(environ),
        )

    def log_config_summary(self):
        """Log current configuration summary."""
        logger.info("🔧 System Configuration:")
        logger.info(f"   Dry Run: {self.pipeline.dry_run}")
        logger.info(f"   Fail Fast: {self.pipeline.fail_fast}")
        logger.info(f"   Verifier Endpoint: {self.verifier.endpoint or '(unset)'}")
        logger.info(f"   Bulk Limit / Page Size: {self.pipeline.bulk_limit} / {self.pipeline.page_size}")
        logger.info(f"   Verifier Attempts: {self.verifier.max_attempts}")
