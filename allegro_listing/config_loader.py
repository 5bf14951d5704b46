"""Config loading helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = "config/listing.yaml"


@dataclass
class ListingSettings:
    client_id: str = ""
    client_secret: str = ""
    bootstrap_refresh_token: str = ""

    api_url: str = "https://api.allegro.pl"
    auth_url: str = "https://allegro.pl/auth/oauth/token"
    request_timeout_seconds: float = 15.0
    token_timeout_seconds: float = 30.0
    expiry_buffer_seconds: int = 60

    cache_ttl_hours: int = 24
    max_details: int = 10
    top_n: int = 3
    language: str = "pl-PL"

    listing_quantity: int = 5
    currency: str = "PLN"

    supabase_url: str = ""
    supabase_key: str = ""
    token_table: str = "integrations_allegro_tokens"
    cache_table: str = "allegro_product_cache"
    listing_log_table: str = "allegro_listings_log"
    inventory_table: str = "inventory"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    service_account_file: str = ""
    spreadsheet_url: str = ""

    log_level: str = "INFO"

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _env(env: Mapping[str, str], name: str, default: str = "") -> str:
    return (env.get(name) or default).strip()


def load_settings(
    path: str = DEFAULT_CONFIG_PATH,
    env: Optional[Mapping[str, str]] = None,
) -> ListingSettings:
    """Build settings from the YAML file (optional) and the environment.

    Credentials only ever come from the environment; the YAML file holds
    endpoints, limits and table names.
    """
    env = os.environ if env is None else env
    config_path = Path(path)
    raw = load_yaml(config_path) if config_path.exists() else {}

    allegro = raw.get("allegro", {})
    catalog = raw.get("catalog", {})
    listing = raw.get("listing", {})
    tables = raw.get("tables", {})
    defaults = ListingSettings()

    use_sandbox = _env(env, "ALLEGRO_USE_SANDBOX", "false").lower() == "true"
    sandbox = allegro.get("sandbox", {}) if use_sandbox else {}

    return ListingSettings(
        client_id=_env(env, "ALLEGRO_CLIENT_ID"),
        client_secret=_env(env, "ALLEGRO_CLIENT_SECRET"),
        bootstrap_refresh_token=_env(env, "ALLEGRO_REFRESH_TOKEN"),
        api_url=str(sandbox.get("api_url") or allegro.get("api_url", defaults.api_url)).rstrip("/"),
        auth_url=str(sandbox.get("auth_url") or allegro.get("auth_url", defaults.auth_url)),
        request_timeout_seconds=float(allegro.get("request_timeout_seconds", defaults.request_timeout_seconds)),
        token_timeout_seconds=float(allegro.get("token_timeout_seconds", defaults.token_timeout_seconds)),
        expiry_buffer_seconds=int(allegro.get("expiry_buffer_seconds", defaults.expiry_buffer_seconds)),
        cache_ttl_hours=int(catalog.get("cache_ttl_hours", defaults.cache_ttl_hours)),
        max_details=int(catalog.get("max_details", defaults.max_details)),
        top_n=int(catalog.get("top_n", defaults.top_n)),
        language=str(catalog.get("language", defaults.language)),
        listing_quantity=int(listing.get("quantity", defaults.listing_quantity)),
        currency=str(listing.get("currency", defaults.currency)),
        supabase_url=_env(env, "SUPABASE_URL").rstrip("/"),
        supabase_key=_env(env, "SUPABASE_SERVICE_ROLE_KEY") or _env(env, "SUPABASE_SERVICE_KEY"),
        token_table=str(tables.get("tokens", defaults.token_table)),
        cache_table=str(tables.get("product_cache", defaults.cache_table)),
        listing_log_table=str(tables.get("listing_log", defaults.listing_log_table)),
        inventory_table=str(tables.get("inventory", defaults.inventory_table)),
        gemini_api_key=_env(env, "GEMINI_API_KEY"),
        gemini_model=_env(env, "GEMINI_MODEL", defaults.gemini_model),
        service_account_file=_env(env, "GOOGLE_SERVICE_ACCOUNT_JSON"),
        spreadsheet_url=_env(env, "SHEETS_SPREADSHEET_ID"),
        log_level=_env(env, "LOG_LEVEL", defaults.log_level).upper(),
    )
