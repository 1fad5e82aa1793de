"""Tests for the waitlist submission workflow, step by step."""

import json

import httpx
import pytest

from config.waitlist_config import WaitlistConfig
from errors import (
    BotSuspectedError,
    ClientIdentificationError,
    ConfigurationError,
    DuplicateEmailError,
    FieldValidationError,
    MalformedRequestError,
    MissingTokenError,
    ThrottledError,
    UnexpectedError,
)
from services.waitlist_service import WaitlistService, parse_client_ip
from services.waitlist_store import StorageFailure

IP = "203.0.113.7"


def _body(**overrides):
    data = {"name": "Ada Lovelace", "email": "ada@example.com", "recaptchaToken": "valid-token"}
    data.update(overrides)
    return json.dumps({k: v for k, v in data.items() if v is not None}).encode()


def test_parse_client_ip_takes_first_forwarded_address():
    assert parse_client_ip("203.0.113.7, 10.0.0.1") == "203.0.113.7"
    assert parse_client_ip(" 198.51.100.2 ") == "198.51.100.2"
    assert parse_client_ip("") is None
    assert parse_client_ip(None) is None
    assert parse_client_ip(" , 10.0.0.1") is None


@pytest.mark.asyncio
async def test_successful_submission(service, verifier, store):
    result = await service.submit(IP, _body())

    assert result["message"] == "Successfully added to waitlist!"
    assert result["name"] == "Ada Lovelace"
    assert result["email"] == "ada@example.com"
    assert result["id"] is not None
    assert verifier.calls == [("valid-token", IP)]
    assert store.add_calls == 1


@pytest.mark.asyncio
async def test_missing_secret_fails_before_anything_else(rate_limiter, verifier, store):
    service = WaitlistService(
        config=WaitlistConfig(recaptcha_secret_key=None, rate_limit_backend="memory"),
        rate_limiter=rate_limiter,
        verifier=None,
        store=store,
    )

    with pytest.raises(ConfigurationError):
        await service.submit(IP, b"not even json")

    assert rate_limiter.calls == []
    assert store.add_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("forwarded_for", [None, "", "   "])
async def test_missing_client_address_skips_throttle_and_verification(service, rate_limiter, verifier, forwarded_for):
    with pytest.raises(ClientIdentificationError):
        await service.submit(forwarded_for, _body())

    assert rate_limiter.calls == []
    assert verifier.calls == []


@pytest.mark.asyncio
async def test_sixth_request_in_window_is_throttled(service, verifier):
    for i in range(5):
        await service.submit(IP, _body(email=f"user{i}@example.com"))

    with pytest.raises(ThrottledError) as excinfo:
        await service.submit(IP, _body(email="user5@example.com"))

    assert excinfo.value.to_body()["remaining"] == 0
    assert excinfo.value.to_body()["limit"] == 5
    assert excinfo.value.status_code == 429
    assert len(verifier.calls) == 5


@pytest.mark.asyncio
async def test_throttle_is_per_client_address(service):
    for i in range(5):
        await service.submit(IP, _body(email=f"user{i}@example.com"))

    result = await service.submit("198.51.100.9", _body(email="other@example.com"))
    assert result["email"] == "other@example.com"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{not json", b"", b"[1, 2, 3]", b'"a string"'])
async def test_malformed_body(service, verifier, body):
    with pytest.raises(MalformedRequestError) as excinfo:
        await service.submit(IP, body)

    assert excinfo.value.message == "Invalid request format."
    assert verifier.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", 12345])
async def test_missing_token_skips_verification(service, verifier, token):
    with pytest.raises(MissingTokenError) as excinfo:
        await service.submit(IP, _body(recaptchaToken=token))

    assert excinfo.value.message == "reCAPTCHA token is missing."
    assert verifier.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [0.0, 0.1, 0.3, 0.39])
async def test_low_score_is_rejected_even_with_invalid_fields(service, verifier, store, score):
    verifier.score = score

    with pytest.raises(BotSuspectedError):
        await service.submit(IP, _body(name="A", email="nope"))

    assert store.add_calls == 0


@pytest.mark.asyncio
async def test_score_at_threshold_is_accepted(service, verifier):
    verifier.score = 0.4

    result = await service.submit(IP, _body())

    assert result["email"] == "ada@example.com"


@pytest.mark.asyncio
async def test_verification_failure_is_rejected(service, verifier):
    verifier.success = False

    with pytest.raises(BotSuspectedError) as excinfo:
        await service.submit(IP, _body())

    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
async def test_missing_score_is_rejected(service, verifier):
    verifier.score = None

    with pytest.raises(BotSuspectedError):
        await service.submit(IP, _body())


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["A", "x" * 101, "", " ", 42, None])
async def test_invalid_name_never_reaches_storage(service, store, name):
    with pytest.raises(FieldValidationError) as excinfo:
        await service.submit(IP, _body(name=name))

    assert excinfo.value.field == "name"
    assert excinfo.value.message == "Name must be between 2 and 100 characters."
    assert store.add_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["Al", " A", "x" * 100])
async def test_name_length_bounds_are_inclusive(service, name):
    result = await service.submit(IP, _body(name=name))
    assert result["name"] == name


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email",
    [
        "plainaddress",
        "no-at.example.com",
        "ada@example",
        "ada @example.com",
        "ada@@example.com",
        "@example.com",
        " ada@example.com",
        "ada@example.com ",
        " ada@example.com ",
        None,
    ],
)
async def test_invalid_email(service, store, email):
    with pytest.raises(FieldValidationError) as excinfo:
        await service.submit(IP, _body(email=email))

    assert excinfo.value.field == "email"
    assert excinfo.value.message == "Please enter a valid email address."
    assert store.add_calls == 0


@pytest.mark.asyncio
async def test_name_is_checked_before_email(service):
    with pytest.raises(FieldValidationError) as excinfo:
        await service.submit(IP, _body(name="A", email="nope"))

    assert excinfo.value.field == "name"


@pytest.mark.asyncio
async def test_first_submission_wins(service, store):
    await service.submit(IP, _body())

    with pytest.raises(DuplicateEmailError) as excinfo:
        await service.submit(IP, _body(name="Augusta Ada King"))

    assert excinfo.value.message == "This email is already on the waitlist."
    assert store.count_by_email("ada@example.com") == 1


@pytest.mark.asyncio
async def test_storage_failure_is_unexpected_error(service, store, monkeypatch):
    monkeypatch.setattr(store, "add", lambda name, email: StorageFailure(detail="connection refused"))

    with pytest.raises(UnexpectedError) as excinfo:
        await service.submit(IP, _body())

    assert "connection refused" not in excinfo.value.message


@pytest.mark.asyncio
async def test_verifier_transport_error_propagates(service, verifier, monkeypatch):
    async def boom(token, remote_ip=None):
        raise httpx.ConnectError("unreachable")

    monkeypatch.setattr(verifier, "verify", boom)

    with pytest.raises(httpx.ConnectError):
        await service.submit(IP, _body())


@pytest.mark.asyncio
async def test_padded_values_are_stored_as_submitted(service, store):
    result = await service.submit(IP, _body(name=" A"))

    assert result["name"] == " A"
    assert store.count_by_email("ada@example.com") == 1


class BodyReader:
    """Stands in for Request.body and records whether it was read"""

    def __init__(self, body: bytes):
        self.body = body
        self.reads = 0

    async def __call__(self):
        self.reads += 1
        return self.body


@pytest.mark.asyncio
async def test_body_reader_is_awaited_after_throttle(service):
    reader = BodyReader(_body())

    result = await service.submit(IP, reader)

    assert result["email"] == "ada@example.com"
    assert reader.reads == 1


@pytest.mark.asyncio
async def test_body_is_not_read_without_secret(rate_limiter, store):
    service = WaitlistService(
        config=WaitlistConfig(recaptcha_secret_key=None, rate_limit_backend="memory"),
        rate_limiter=rate_limiter,
        verifier=None,
        store=store,
    )
    reader = BodyReader(_body())

    with pytest.raises(ConfigurationError):
        await service.submit(IP, reader)

    assert reader.reads == 0


@pytest.mark.asyncio
async def test_body_is_not_read_when_throttled(service):
    for i in range(5):
        await service.submit(IP, _body(email=f"user{i}@example.com"))
    reader = BodyReader(_body(email="user5@example.com"))

    with pytest.raises(ThrottledError):
        await service.submit(IP, reader)

    assert reader.reads == 0
