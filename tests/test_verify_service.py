import pytest
import requests
from pymongo.errors import AutoReconnect

from shared.api_client import VerifierClient
from shared.errors import SelectorReadError, VerifierRequestError
from shared.models import Channel, Contact, VerificationResult, VerifierErr
from verify.reconcile import update_contacts_validation_status
from verify.notifications import receive_engages_notification
from verify.service import collect_batch, validate_bulk, validate_single
from conftest import FakeCollection, FakeResponse, FakeSession


def _client(config, *responses):
    session = FakeSession(*responses)
    return VerifierClient(config.verifier, session=session), session


def test_collect_batch_preserves_order_and_limit():
    batch = collect_batch(iter(["a", "b", "c"]), Channel.EMAIL, "h", limit=2)
    assert batch.identifiers == ["a", "b"]
    assert batch.hostname == "h"


def test_end_to_end_email_scenario(system_config):
    customers = FakeCollection([
        {"_id": "A", "primaryEmail": "a@x.com", "emailValidationStatus": "unknown"},
        {"_id": "B", "primaryEmail": "b@x.com", "emailValidationStatus": "valid"},
    ])
    client, session = _client(system_config)

    result = validate_bulk("email", "crm.example.com", collection=customers, client=client, config=system_config)

    assert result.ok
    assert result.batch.identifiers == ["a@x.com"]
    assert session.calls[0]["json"] == {"emails": ["a@x.com"], "hostname": "crm.example.com"}

    receive_engages_notification(
        {"action": "emailVerify", "data": [{"email": "a@x.com", "status": "valid"}]},
        collection=customers,
    )

    assert customers.find_one({"_id": "A"})["emailValidationStatus"] == "valid"
    assert customers.find_one({"_id": "B"}) == {"_id": "B", "primaryEmail": "b@x.com", "emailValidationStatus": "valid"}


def test_empty_batch_makes_no_calls(system_config):
    customers = FakeCollection([{"primaryEmail": "b@x.com", "emailValidationStatus": "valid"}])
    client, session = _client(system_config)

    result = validate_bulk(Channel.EMAIL, "h", collection=customers, client=client, config=system_config)

    assert result.ok
    assert result.skipped
    assert session.calls == []
    assert customers.bulk_calls == []


def test_verification_disabled_by_flag(system_config, monkeypatch):
    monkeypatch.setenv("FEATURE_VERIFICATION_ENABLED", "false")
    customers = FakeCollection([{"primaryEmail": "a@x.com", "emailValidationStatus": "unknown"}])
    client, session = _client(system_config)

    result = validate_bulk(Channel.EMAIL, "h", collection=customers, client=client, config=system_config)
    assert result.skipped
    assert session.calls == []


def test_verifier_failure_is_returned_and_dead_lettered(system_config, dead_letters):
    system_config.verifier.max_attempts = 1
    customers = FakeCollection([{"primaryEmail": "a@x.com", "emailValidationStatus": "unknown"}])
    client, _ = _client(system_config, requests.exceptions.ConnectionError("down"))

    result = validate_bulk(Channel.EMAIL, "h", collection=customers, client=client,
                           config=system_config, dead_letters=dead_letters)

    assert not result.ok
    assert isinstance(result.verifier, VerifierErr)
    assert dead_letters.inserted[0]["phase"] == "verify_bulk_email"
    # nothing was marked in-flight, so the contact stays eligible
    assert customers.docs[0]["emailValidationStatus"] == "unknown"


def test_fail_fast_raises_verifier_error(system_config):
    system_config.verifier.max_attempts = 1
    system_config.pipeline.fail_fast = True
    customers = FakeCollection([{"primaryEmail": "a@x.com", "emailValidationStatus": "unknown"}])
    client, _ = _client(system_config, FakeResponse(500, text="oops"))

    with pytest.raises(VerifierRequestError):
        validate_bulk(Channel.EMAIL, "h", collection=customers, client=client, config=system_config)


def test_selector_failure_aborts_before_verifier(system_config):
    customers = FakeCollection([{"primaryEmail": "a@x.com", "emailValidationStatus": "unknown"}])
    customers.find_fail_after = 0
    customers.find_error = AutoReconnect("lost")
    client, session = _client(system_config)

    with pytest.raises(SelectorReadError):
        validate_bulk(Channel.EMAIL, "h", collection=customers, client=client, config=system_config)
    assert session.calls == []


def test_bulk_limit_from_config(system_config):
    system_config.pipeline.bulk_limit = 10
    customers = FakeCollection([
        {"primaryPhone": f"+1555{i:04d}", "phoneValidationStatus": "unknown"} for i in range(25)
    ])
    client, session = _client(system_config)

    result = validate_bulk(Channel.PHONE, "h", collection=customers, client=client, config=system_config)
    assert len(result.batch) == 10
    assert len(session.calls[0]["json"]["phones"]) == 10


def test_validate_single_returns_outcome(system_config):
    client, session = _client(system_config, FakeResponse(200, {"status": "valid"}))

    out = validate_single(Contact(email="a@x.com"), "h", client=client)
    assert out.ok
    assert session.calls[0]["json"] == {"email": "a@x.com", "hostname": "h"}


def test_reconcile_after_bulk_leaves_other_channel_untouched(system_config):
    customers = FakeCollection([
        {"primaryEmail": "a@x.com", "primaryPhone": "+1", "emailValidationStatus": "unknown",
         "phoneValidationStatus": "unknown"},
    ])
    update_contacts_validation_status(
        customers, Channel.EMAIL, [VerificationResult(Channel.EMAIL, "a@x.com", "invalid")]
    )
    assert customers.docs[0]["emailValidationStatus"] == "invalid"
    assert customers.docs[0]["phoneValidationStatus"] == "unknown"
