"""
Tests for registration field validation, session token checks,
contact-data encryption and the participant export sink.

Run with: pytest tests/test_validation.py -v
"""
from __future__ import annotations

import json
import uuid
from datetime import datetime

import httpx
import pytest
from cryptography.fernet import Fernet

from assessment_service import encryption, notifications
from assessment_service.config import Settings, settings
from assessment_service.domain import ParticipantProgress
from assessment_service.errors import InvalidInput
from assessment_service.notifications import (
    NullNotificationSink,
    WebhookNotificationSink,
    build_sink,
    participant_snapshot,
)
from assessment_service.validation import (
    is_valid_participant_token,
    sanitize_string,
    validate_email,
    validate_name,
    validate_phone,
)


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------

class TestSanitize:
    def test_strips_control_characters_and_whitespace(self):
        assert sanitize_string("  An\x00a\x1f \t") == "Ana"

    def test_non_string_becomes_empty(self):
        assert sanitize_string(None) == ""
        assert sanitize_string(42) == ""


class TestName:
    @pytest.mark.parametrize("name", ["Ana", "José Álvarez", "Mary-Jane O'Neil", "J. R. Smith", "Zoë"])
    def test_accepts_letters_and_punctuation(self, name):
        assert validate_name(name) == name

    def test_trims(self):
        assert validate_name("  Ana  ") == "Ana"

    @pytest.mark.parametrize(
        "name,message",
        [
            (None, "Name is required"),
            ("", "Name is required"),
            ("  A ", "Name must be at least 2 characters"),
            ("x" * 101, "Name must not exceed 100 characters"),
            ("Ana_Test", "Name contains invalid characters"),
            ("Ana3", "Name contains invalid characters"),
            ("<script>", "Name contains invalid characters"),
        ],
    )
    def test_rejects(self, name, message):
        with pytest.raises(InvalidInput) as exc:
            validate_name(name)
        assert exc.value.message == message


class TestEmail:
    def test_lowercases(self):
        assert validate_email("Ana.Test@Example.COM") == "ana.test@example.com"

    @pytest.mark.parametrize(
        "email,message",
        [
            ("", "Email is required"),
            ("a@b", "Email must be at least 5 characters"),
            ("ana@", "Email must be at least 5 characters"),
            ("ana.example.com", "Invalid email format"),
            ("ana@example", "Invalid email format"),
            ("ana@exa mple.com", "Invalid email format"),
            ("Ana <ana@example.com>", "Invalid email format"),
            ("ana..test@example.com", "Invalid email format"),
            ("a" * 250 + "@example.com", "Email must not exceed 255 characters"),
        ],
    )
    def test_rejects(self, email, message):
        with pytest.raises(InvalidInput) as exc:
            validate_email(email)
        assert exc.value.message == message


class TestPhone:
    @pytest.mark.parametrize("phone", ["5551234567", "+1 (555) 123-4567", "+44 20 7946 0958"])
    def test_accepts(self, phone):
        assert validate_phone(phone) == phone

    @pytest.mark.parametrize(
        "phone,message",
        [
            ("", "Phone is required"),
            ("555-1234", "Phone number must contain at least 10 digits"),
            ("1234567890123456", "Phone number must not exceed 15 digits"),
            ("555.123.4567", "Phone number contains invalid characters"),
            ("555 123 4567 ext", "Phone number contains invalid characters"),
        ],
    )
    def test_rejects(self, phone, message):
        with pytest.raises(InvalidInput) as exc:
            validate_phone(phone)
        assert exc.value.message == message


class TestParticipantToken:
    def test_uuid4_accepted(self):
        assert is_valid_participant_token(str(uuid.uuid4()))

    @pytest.mark.parametrize(
        "token",
        [None, "", "not-a-uuid", str(uuid.uuid1()), str(uuid.uuid4()) + "x", "1; DROP TABLE participants"],
    )
    def test_everything_else_rejected(self, token):
        assert not is_valid_participant_token(token)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def test_production_requires_encryption_key():
    with pytest.raises(ValueError):
        Settings(environment="production", encryption_key="")


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        Settings(submit_max_attempts=0)


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

@pytest.fixture
def cipher_key(monkeypatch):
    key = Fernet.generate_key().decode()
    monkeypatch.setattr(settings, "encryption_key", key)
    encryption.reset_cipher()
    yield key
    encryption.reset_cipher()


def test_values_round_trip_through_cipher(cipher_key):
    token = encryption.encrypt_value("ana@example.com")
    assert token != "ana@example.com"
    assert encryption.decrypt_value(token) == "ana@example.com"


def test_plain_text_rows_still_readable(cipher_key):
    assert encryption.decrypt_value("legacy@example.com") == "legacy@example.com"


def test_no_key_stores_plain_text(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", "")
    encryption.reset_cipher()
    try:
        assert encryption.encrypt_value("5551234567") == "5551234567"
    finally:
        encryption.reset_cipher()


# ---------------------------------------------------------------------------
# Export sink
# ---------------------------------------------------------------------------

def _progress() -> ParticipantProgress:
    return ParticipantProgress(
        id="7f1c2a9e-3b1d-4c1e-9a55-0a8c1e2b3d4f",
        name="Ana Test",
        email="ana@example.com",
        phone="5551234567",
        created_at=datetime(2026, 3, 1, 12, 0, 0),
    )


def test_snapshot_fields():
    assert participant_snapshot(_progress()) == {
        "id": "7f1c2a9e-3b1d-4c1e-9a55-0a8c1e2b3d4f",
        "name": "Ana Test",
        "email": "ana@example.com",
        "phone": "5551234567",
        "createdAt": "2026-03-01T12:00:00",
    }


def test_build_sink_without_url_is_null():
    assert isinstance(build_sink(""), NullNotificationSink)
    assert isinstance(build_sink("https://collector.example/hook"), WebhookNotificationSink)


def _mock_client(monkeypatch, handler):
    real_client = httpx.Client

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(notifications.httpx, "Client", factory)


def test_webhook_posts_snapshot_with_secret(monkeypatch):
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    _mock_client(monkeypatch, handler)
    WebhookNotificationSink("https://collector.example/hook", secret="shh").send(participant_snapshot(_progress()))

    assert len(received) == 1
    url, body = received[0]
    assert url == "https://collector.example/hook"
    assert body["secret"] == "shh"
    assert body["email"] == "ana@example.com"


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500, text="boom"),
        lambda request: (_ for _ in ()).throw(httpx.ConnectTimeout("timed out")),
    ],
    ids=["server-error", "timeout"],
)
def test_webhook_failures_are_swallowed(monkeypatch, caplog, handler):
    _mock_client(monkeypatch, handler)
    with caplog.at_level("WARNING", logger="assessment.notifications"):
        WebhookNotificationSink("https://collector.example/hook").send({"id": "p1"})
    assert any("p1" in r.getMessage() for r in caplog.records)
