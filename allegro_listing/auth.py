"""Allegro OAuth token lifecycle: persisted token, expiry buffer, refresh exchange."""

from __future__ import annotations

import base64
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import requests

from .config_loader import ListingSettings
from .errors import AuthExchangeError, ConfigurationError, ListingError, TokenConflictError
from .models import IssuedToken, TokenGrant, TokenRecord, utc_now
from .storage import ListingStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_refresh_locks: Dict[str, threading.Lock] = {}
_refresh_locks_guard = threading.Lock()


def _refresh_lock(client_id: str) -> threading.Lock:
    with _refresh_locks_guard:
        lock = _refresh_locks.get(client_id)
        if lock is None:
            lock = _refresh_locks[client_id] = threading.Lock()
        return lock


def is_expired(expires_at: Optional[datetime], now: datetime, buffer_seconds: int = 60) -> bool:
    """True when the token expires within the buffer (or has no expiry at all)."""
    if expires_at is None:
        return True
    return (expires_at - now).total_seconds() <= buffer_seconds


class TokenManager:
    """Keeps a valid Allegro access token in the token table."""

    def __init__(
        self,
        store: ListingStore,
        settings: ListingSettings,
        session: Optional[requests.Session] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.session = session or requests.Session()
        self.clock = clock or utc_now

    def _basic_auth_header(self) -> str:
        credentials = f"{self.settings.client_id}:{self.settings.client_secret}"
        return f"Basic {base64.b64encode(credentials.encode()).decode()}"

    def exchange_refresh_token(self, refresh_token: str) -> TokenGrant:
        """Trade a refresh token for a new token pair at the OAuth endpoint."""
        if not self.settings.has_client_credentials or not refresh_token:
            raise ConfigurationError("Missing Allegro credentials or refresh token")

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Authorization": self._basic_auth_header(),
        }
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        try:
            response = self.session.post(
                self.settings.auth_url,
                headers=headers,
                data=data,
                timeout=self.settings.token_timeout_seconds,
            )
        except requests.RequestException as e:
            raise AuthExchangeError(0, str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.error("Allegro token refresh rejected with status %s", response.status_code)
            raise AuthExchangeError(response.status_code, response.text)

        grant = TokenGrant.from_response(response.json())
        if not grant.refresh_token:
            grant.refresh_token = refresh_token
        logger.info("Allegro token refreshed, expires in %ss", grant.expires_in)
        return grant

    def is_expired(self, record: TokenRecord) -> bool:
        return is_expired(record.expires_at, self.clock(), self.settings.expiry_buffer_seconds)

    def _read_latest(self) -> Optional[TokenRecord]:
        try:
            return self.store.latest_token()
        except (ListingError, requests.RequestException) as e:
            logger.error("Failed to read stored Allegro token: %s", e)
            return None

    def _grant_fields(self, grant: TokenGrant) -> Dict[str, str]:
        now = self.clock()
        return {
            "access_token": grant.access_token,
            "refresh_token": grant.refresh_token,
            "expires_at": (now + timedelta(seconds=grant.expires_in)).isoformat(),
            "updated_at": now.isoformat(),
        }

    def _is_usable(self, record: Optional[TokenRecord], rejected_access_token: Optional[str]) -> bool:
        return (
            record is not None
            and record.access_token != rejected_access_token
            and not self.is_expired(record)
        )

    def _refresh(self, rejected_access_token: Optional[str], refresh_token: Optional[str]) -> TokenRecord:
        # One refresh per credential at a time; late arrivals reuse the winner's token.
        with _refresh_lock(self.settings.client_id):
            latest = self._read_latest()
            if self._is_usable(latest, rejected_access_token):
                logger.info("Allegro token already refreshed by another caller")
                return latest

            token = (latest.refresh_token if latest else "") or refresh_token or self.settings.bootstrap_refresh_token
            grant = self.exchange_refresh_token(token)
            fields = self._grant_fields(grant)
            if latest is None or not latest.id:
                return self.store.insert_token(fields)
            try:
                return self.store.update_token(
                    latest.id, fields, expected_updated_at=latest.updated_at
                )
            except TokenConflictError:
                winner = self._read_latest()
                if self._is_usable(winner, rejected_access_token):
                    logger.warning("Allegro token row changed during refresh, using the newer record")
                    return winner
                # Keep the rotated refresh token.
                logger.warning("Allegro token row changed during refresh, storing the new grant as a new record")
                return self.store.insert_token(fields)

    def ensure_token(self) -> IssuedToken:
        """Return a usable token, refreshing it when it expires within the buffer."""
        stored = self._read_latest()

        if stored is None and not self.settings.bootstrap_refresh_token:
            raise ConfigurationError(
                "No Allegro token found. Seed the token table or set ALLEGRO_REFRESH_TOKEN."
            )

        if stored is not None and not self.is_expired(stored):
            return IssuedToken.from_record(stored)

        if stored is None:
            logger.info("No stored Allegro token, bootstrapping from ALLEGRO_REFRESH_TOKEN")
            record = self._refresh(None, self.settings.bootstrap_refresh_token)
        else:
            record = self._refresh(stored.access_token, stored.refresh_token)
        return IssuedToken.from_record(record)

    def force_refresh(self, current: IssuedToken) -> IssuedToken:
        """Treat ``current`` as revoked and obtain a new token regardless of expiry."""
        record = self._refresh(current.access_token, current.refresh_token)
        return IssuedToken.from_record(record)
