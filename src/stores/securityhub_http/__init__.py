"""Security Hub control store over plain HTTP (aiohttp)."""

from stores.securityhub_http.client import SecurityHubHTTPStore

__all__ = ["SecurityHubHTTPStore"]
