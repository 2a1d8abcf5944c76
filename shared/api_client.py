"""
Email/phone verifier API client.
Contains all outbound verifier communication - no store dependencies.
"""

import logging
from typing import Dict, Optional

import requests
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from config.feature_flags import mask_identifier
from shared_config import VerifierConfig
from .errors import VerifierRequestError
from .models import Contact, VerificationBatch, VerifierErr, VerifierOk, VerifierResult

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def _is_retryable(exc: BaseException) -> bool:
    """Retry transport errors and throttling/server errors, never other 4xx."""
    if isinstance(exc, VerifierRequestError):
        return exc.status_code is None or exc.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, requests.exceptions.RequestException)


class VerifierClient:
    """Client for the external email/phone verifier."""

    def __init__(self, config: VerifierConfig, dry_run: bool = False, session: Optional[requests.Session] = None):
        self.config = config
        self.dry_run = dry_run
        self.base_url = (config.endpoint or '').rstrip('/')
        self.session = session or requests.Session()
        self.headers = {
            'Content-Type': 'application/json'
        }

    def verify_single(self, contact: Contact, hostname: Optional[str] = None) -> VerifierResult:
        """POST /verify-single for one contact (phone takes precedence over email)."""
        channel = contact.channel
        if channel is None:
            return VerifierErr(VerifierRequestError("Contact has neither email nor phone"))

        body = {channel.single_key: contact.identifier, 'hostname': hostname}
        logger.debug(f"Verifying single {channel.value}: {mask_identifier(contact.identifier)}")
        return self._post('/verify-single', body)

    def verify_bulk(self, batch: VerificationBatch) -> VerifierResult:
        """POST /verify-bulk with every identifier of the batch."""
        logger.info(f"📧 Sending {len(batch)} {batch.channel.bulk_key} to verifier (hostname={batch.hostname})")
        return self._post('/verify-bulk', batch.to_request_body())

    def _post(self, path: str, body: Dict) -> VerifierResult:
        if not self.base_url:
            logger.error("❌ Verifier endpoint is not configured - refusing to send request")
            return VerifierErr(VerifierRequestError("Verifier endpoint is not configured"))

        url = f"{self.base_url}{path}"

        if self.dry_run:
            logger.info(f"DRY RUN: Would call POST {url}")
            return VerifierOk(body={'dry_run': True})

        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(multiplier=self.config.backoff_multiplier, max=self.config.backoff_max_seconds),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

        try:
            response = retrying(self._send, url, body)
        except VerifierRequestError as e:
            logger.error(f"❌ Verifier request failed: {e} (status={e.status_code}, body={e.body[:800]})")
            return VerifierErr(e)
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Verifier request failed {url}: {e}")
            return VerifierErr(VerifierRequestError(f"Verifier request failed: {e}"))

        parsed = None
        try:
            if response.content:
                parsed = response.json()
        except ValueError:
            parsed = response.text

        logger.debug(f"Verifier response {response.status_code}: {parsed}")
        return VerifierOk(status_code=response.status_code, body=parsed)

    def _send(self, url: str, body: Dict) -> requests.Response:
        response = self.session.post(url, json=body, headers=self.headers, timeout=self.config.timeout_seconds)

        if response.status_code >= 400:
            text = response.text or ''
            raise VerifierRequestError(
                f"Verifier returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=text,
            )

        return response
