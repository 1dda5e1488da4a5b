# =============================================================================
# core/config.py  -  Process configuration
# =============================================================================
#
# All credentials and endpoints come from the environment (optionally a
# .env file, loaded with python-dotenv).  load_settings() is called once
# when the tool server starts; the resulting Settings object is read-only.
#
# The Meta access token in particular is NEVER written in source.  Tools
# build a fresh SDK session from it on every call.
# =============================================================================

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_SEARCH_ADS_API_BASE = "https://api.searchads.apple.com/api/v5"
DEFAULT_APPLE_TOKEN_URL = "https://appleid.apple.com/auth/oauth2/token"


@dataclass(frozen=True, repr=False)
class Settings:
    meta_access_token: str = ""
    meta_app_id: Optional[str] = None
    meta_app_secret: Optional[str] = None
    meta_api_version: Optional[str] = None

    search_ads_api_base: str = DEFAULT_SEARCH_ADS_API_BASE
    apple_token_url: str = DEFAULT_APPLE_TOKEN_URL
    http_timeout: float = 30.0

    transport: str = "http"            # "http" (SSE + streamable HTTP) or "stdio"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    def __repr__(self) -> str:
        configured = "yes" if self.meta_access_token else "no"
        return (
            f"Settings(meta_token_configured={configured}, "
            f"search_ads_api_base={self.search_ads_api_base!r}, transport={self.transport!r})"
        )


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name, "").strip()
    return value or None


def load_settings() -> Settings:
    """Read Settings from the environment (and .env, if present)."""
    load_dotenv()
    return Settings(
        meta_access_token=_env("META_ACCESS_TOKEN") or "",
        meta_app_id=_env("META_APP_ID"),
        meta_app_secret=_env("META_APP_SECRET"),
        meta_api_version=_env("META_API_VERSION"),
        search_ads_api_base=(_env("SEARCH_ADS_API_BASE") or DEFAULT_SEARCH_ADS_API_BASE).rstrip("/"),
        apple_token_url=_env("APPLE_TOKEN_URL") or DEFAULT_APPLE_TOKEN_URL,
        http_timeout=float(_env("HTTP_TIMEOUT") or 30.0),
        transport=(_env("MCP_TRANSPORT") or "http").lower(),
        host=_env("MCP_HOST") or "0.0.0.0",
        port=int(_env("MCP_PORT") or 8000),
        log_level=(_env("LOG_LEVEL") or "INFO").upper(),
    )
