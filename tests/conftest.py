"""Shared fixtures: HTTP doubles, a fixed clock and a local store."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from allegro_listing.config_loader import ListingSettings
from allegro_listing.storage import LocalStore

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, reason=""):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.reason = reason

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Replays queued responses and records every request."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.headers = {}

    def request(self, method, url, **kwargs):
        self.calls.append(dict(kwargs, method=method, url=url))
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self.request("POST", url, **kwargs)


def token_grant(access="access-new", refresh="refresh-new", expires_in=43200):
    return FakeResponse(200, {
        "access_token": access,
        "token_type": "bearer",
        "expires_in": expires_in,
        "refresh_token": refresh,
        "scope": "allegro:api:sale:offers:write",
    })


def seed_token(store, access="access-1", refresh="refresh-1", expires_in_seconds=3600):
    return store.insert_token({
        "access_token": access,
        "refresh_token": refresh,
        "expires_at": (NOW + timedelta(seconds=expires_in_seconds)).isoformat(),
        "updated_at": (NOW - timedelta(hours=1)).isoformat(),
    })


@pytest.fixture
def settings():
    return ListingSettings(
        client_id="client-123",
        client_secret="secret-456",
        bootstrap_refresh_token="bootstrap-refresh",
    )


@pytest.fixture
def store(tmp_path):
    return LocalStore(str(tmp_path / "store"))


@pytest.fixture
def clock():
    return lambda: NOW
