"""Allegro REST API client with bearer auth and a single retry on auth failure."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .auth import TokenManager
from .config_loader import ListingSettings
from .errors import ApiError, AuthError

logger = logging.getLogger(__name__)

ALLEGRO_MEDIA_TYPE = "application/vnd.allegro.public.v1+json"
AUTH_FAILURE_STATUSES = (401, 403)


class AllegroClient:
    """Real Allegro API client (catalog products and product offers)."""

    def __init__(
        self,
        token_manager: TokenManager,
        settings: ListingSettings,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.token_manager = token_manager
        self.settings = settings
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.settings.api_url}{path}"

    def authenticated_fetch(
        self,
        path: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        attempt: int = 0,
    ) -> Any:
        """Call the API with the current bearer token.

        Args:
            path: API path (joined to the API URL) or an absolute URL
            method: HTTP method
            params: Query parameters
            json: JSON body
            headers: Extra headers; Authorization always wins
            attempt: 0 for the first call, 1 for the retry after a forced refresh

        Returns:
            Parsed JSON, or None for an empty body
        """
        token = self.token_manager.ensure_token()

        request_headers = {"Accept": ALLEGRO_MEDIA_TYPE}
        request_headers.update(headers or {})
        request_headers["Authorization"] = f"Bearer {token.access_token}"

        response = self.session.request(
            method,
            self._url(path),
            params=params,
            json=json,
            headers=request_headers,
            timeout=self.settings.request_timeout_seconds,
        )

        if response.status_code in AUTH_FAILURE_STATUSES:
            if attempt == 0:
                logger.warning(
                    "Allegro answered %s for %s %s, refreshing token and retrying once",
                    response.status_code, method, path,
                )
                self.token_manager.force_refresh(token)
                return self.authenticated_fetch(
                    path, method=method, params=params, json=json, headers=headers, attempt=attempt + 1
                )
            raise AuthError(response.status_code, response.text)

        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, response.text or response.reason or "")

        if not response.text:
            return None
        return response.json()

    def search_products_by_ean(self, ean: str) -> List[Dict[str, Any]]:
        """Search the Allegro product catalog by GTIN.

        Returns:
            Product summaries ({id, name?, images?, category?})
        """
        data = self.authenticated_fetch(
            "/sale/products", params={"phrase": ean, "mode": "GTIN"}
        )
        if not data:
            return []
        return data.get("products") or data.get("items") or []

    def fetch_product_detail(self, product_id: str) -> Dict[str, Any]:
        return self.authenticated_fetch(
            f"/sale/products/{product_id}", params={"language": self.settings.language}
        )

    def create_offer(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a product offer. Not idempotent: every call lists a new offer."""
        return self.authenticated_fetch(
            "/sale/product-offers",
            method="POST",
            json=payload,
            headers={"Content-Type": ALLEGRO_MEDIA_TYPE},
        ) or {}
