"""
Security Hub Control Store - Implements ControlStore with boto3.

Updates a standards control with UpdateStandardsControl and reads it back by
listing the subscription's controls with DescribeStandardsControls.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from errors import ControlStoreError
from models import ControlRecord, ControlStatus
from stores.base import ControlStore
from stores.securityhub.wire import to_record, update_payload

logger = logging.getLogger(__name__)


class SecurityHubStore(ControlStore):
    """
    Control store backed by the AWS Security Hub API.

    boto3 clients are blocking, so each call runs in a worker thread.
    Credentials come from the standard boto3 provider chain.
    """

    def __init__(self, client: Optional[Any] = None):
        self.client = client
        self.region: Optional[str] = None
        self.endpoint_url: Optional[str] = None
        self.page_size: int = 100

    @property
    def name(self) -> str:
        return "securityhub"

    @property
    def version(self) -> str:
        return "1.0.0"

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """Load Security Hub store configuration from environment variables."""
        return {
            "region": os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"),
            "endpoint_url": os.getenv("SECURITYHUB_ENDPOINT_URL") or None,
            "page_size": int(os.getenv("SECURITYHUB_PAGE_SIZE", "100")),
        }

    async def initialize(self, config: Dict[str, Any]) -> None:
        """Initialize the store, creating a boto3 client unless one was given."""
        self.region = config.get("region", self.region)
        self.endpoint_url = config.get("endpoint_url", self.endpoint_url)
        self.page_size = config.get("page_size", self.page_size)

        if self.client is None:
            try:
                self.client = boto3.client(
                    "securityhub",
                    region_name=self.region,
                    endpoint_url=self.endpoint_url,
                )
            except BotoCoreError as e:
                raise ControlStoreError(
                    f"Cannot create Security Hub client: {e}"
                ) from e

        logger.debug(
            f"Security Hub store initialized: region={self.region}, "
            f"endpoint_url={self.endpoint_url}, page_size={self.page_size}"
        )

    async def update_status(
        self,
        control_arn: str,
        standard_arn: str,
        status: ControlStatus,
        disabled_reason: Optional[str] = None,
    ) -> ControlRecord:
        """Set a control's status with UpdateStandardsControl."""
        await self._call(
            "update_standards_control",
            StandardsControlArn=control_arn,
            **update_payload(status, disabled_reason),
        )

        return ControlRecord(
            control_arn=control_arn,
            status=status,
            disabled_reason=disabled_reason,
        )

    async def query_by_standard(
        self, standard_arn: str, control_arn: Optional[str] = None
    ) -> List[ControlRecord]:
        """
        List a subscription's controls with DescribeStandardsControls.

        Follows NextToken until exhausted. When control_arn is given only
        matching records are returned.
        """
        records: List[ControlRecord] = []
        params: Dict[str, Any] = {
            "StandardsSubscriptionArn": standard_arn,
            "MaxResults": self.page_size,
        }

        while True:
            response = await self._call("describe_standards_controls", **params)

            for control in response.get("Controls", []):
                record = to_record(control)
                if control_arn is None or record.control_arn == control_arn:
                    records.append(record)

            next_token = response.get("NextToken")
            if not next_token:
                break
            params["NextToken"] = next_token

        return records

    async def _call(self, operation: str, **params: Any) -> Dict[str, Any]:
        if self.client is None:
            raise ControlStoreError("Security Hub store is not initialized")

        method = getattr(self.client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            error = e.response.get("Error", {})
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise ControlStoreError(
                f"{operation} failed: {error.get('Code', 'Unknown')} - "
                f"{error.get('Message', str(e))}",
                status_code=status_code,
            ) from e
        except BotoCoreError as e:
            raise ControlStoreError(f"{operation} failed: {e}") from e

