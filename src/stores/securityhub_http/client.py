"""
Security Hub HTTP Control Store - Implements ControlStore over REST.

Speaks the Security Hub REST API directly with aiohttp. Intended for
Security Hub compatible endpoints (local emulators, gateways that sign
requests on the caller's behalf) where an optional bearer token is enough.
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from errors import ControlStoreError
from models import ControlRecord, ControlStatus
from stores.base import ControlStore
from stores.securityhub.wire import to_record, update_payload

logger = logging.getLogger(__name__)


class SecurityHubHTTPStore(ControlStore):
    """
    Control store that calls the Security Hub REST API with aiohttp.

    UpdateStandardsControl maps to ``PATCH /standards/control/{arn}`` and
    DescribeStandardsControls to ``GET /standards/controls/{subscription}``.
    """

    def __init__(self):
        self.endpoint_url: str = "http://localhost:4566"
        self.api_token: Optional[str] = None
        self.timeout: int = 30  # seconds per request
        self.page_size: int = 100

    @property
    def name(self) -> str:
        return "securityhub_http"

    @property
    def version(self) -> str:
        return "1.0.0"

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """Load HTTP store configuration from environment variables."""
        return {
            "endpoint_url": os.getenv("SECURITYHUB_ENDPOINT_URL", "http://localhost:4566"),
            "api_token": os.getenv("SECURITYHUB_API_TOKEN", ""),
            "timeout": int(os.getenv("SECURITYHUB_TIMEOUT", "30")),
            "page_size": int(os.getenv("SECURITYHUB_PAGE_SIZE", "100")),
        }

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize the store with configuration."""
        self.endpoint_url = config.get("endpoint_url", self.endpoint_url).rstrip("/")
        self.api_token = config.get("api_token") or None
        self.timeout = config.get("timeout", self.timeout)
        self.page_size = config.get("page_size", self.page_size)

        if not self.api_token:
            logger.warning(
                "Security Hub API token not configured. "
                "Set SECURITYHUB_API_TOKEN if the endpoint requires one."
            )

        logger.debug(
            f"Security Hub HTTP store initialized: endpoint_url={self.endpoint_url}, "
            f"timeout={self.timeout}s, page_size={self.page_size}"
        )

    async def update_status(
        self,
        control_arn: str,
        standard_arn: str,
        status: ControlStatus,
        disabled_reason: Optional[str] = None,
    ) -> ControlRecord:
        """Set a control's status."""
        url = f"{self.endpoint_url}/standards/control/{_quote_arn(control_arn)}"
        await self._request("PATCH", url, json=update_payload(status, disabled_reason))

        return ControlRecord(
            control_arn=control_arn,
            status=status,
            disabled_reason=disabled_reason,
        )

    async def query_by_standard(
        self, standard_arn: str, control_arn: Optional[str] = None
    ) -> List[ControlRecord]:
        """List a subscription's controls, following NextToken pages."""
        url = f"{self.endpoint_url}/standards/controls/{_quote_arn(standard_arn)}"
        params: Dict[str, Any] = {"MaxResults": str(self.page_size)}
        records: List[ControlRecord] = []

        while True:
            data = await self._request("GET", url, params=params)

            controls = data.get("Controls", [])
            if not isinstance(controls, list) or not all(
                isinstance(control, dict) for control in controls
            ):
                raise ControlStoreError(f"GET {url} returned malformed Controls")

            for control in controls:
                record = to_record(control)
                if control_arn is None or record.control_arn == control_arn:
                    records.append(record)

            next_token = data.get("NextToken")
            if not next_token:
                break
            params["NextToken"] = next_token

        return records

    # Private helper methods

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for Security Hub requests."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(
                    method, url, headers=self._get_headers(), **kwargs
                ) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise ControlStoreError(
                            f"{method} {url} failed: {response.status} - {error_text}",
                            status_code=response.status,
                        )
                    body = await response.text()
                    data = json.loads(body) if body.strip() else {}
        except asyncio.TimeoutError as e:
            raise ControlStoreError(
                f"{method} {url} timed out after {self.timeout}s"
            ) from e
        except json.JSONDecodeError as e:
            raise ControlStoreError(f"{method} {url} returned invalid JSON: {e}") from e
        except aiohttp.ClientError as e:
            raise ControlStoreError(f"{method} {url} failed: {e}") from e

        if not isinstance(data, dict):
            raise ControlStoreError(f"{method} {url} returned a non-object body")
        return data


def _quote_arn(arn: str) -> str:
    # ARNs are greedy path labels: slashes and colons stay literal
    return quote(arn, safe=":/")

