"""Unit tests for the boto3 Security Hub control store."""

import os
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import NoRegionError
from botocore.stub import Stubber

from errors import ControlStoreError
from models import ControlStatus
from stores.securityhub import SecurityHubStore
from stores.securityhub.wire import to_record, update_payload

SUBSCRIPTION_ARN = (
    "arn:aws:securityhub:us-east-1:123456789012:subscription/"
    "cis-aws-foundations-benchmark/v/1.2.0"
)


@pytest.fixture
def client():
    return boto3.client(
        "securityhub",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


# ==================== Wire helpers ====================


class TestWire:
    """Tests for Security Hub document marshaling."""

    def test_to_record(self, sample_control):
        record = to_record(sample_control)
        assert record.control_arn == sample_control["StandardsControlArn"]
        assert record.status is ControlStatus.DISABLED
        assert record.disabled_reason == "Handled by the organization's root account"

    def test_to_record_without_reason(self, sample_control):
        sample_control["ControlStatus"] = "ENABLED"
        del sample_control["DisabledReason"]
        record = to_record(sample_control)
        assert record.status is ControlStatus.ENABLED
        assert record.disabled_reason is None

    def test_to_record_unknown_status(self, sample_control):
        sample_control["ControlStatus"] = "PAUSED"
        with pytest.raises(ControlStoreError, match="Unexpected control status"):
            to_record(sample_control)

    def test_update_payload_disabled(self):
        assert update_payload(ControlStatus.DISABLED, "n/a") == {
            "ControlStatus": "DISABLED",
            "DisabledReason": "n/a",
        }

    def test_update_payload_enabled(self):
        assert update_payload(ControlStatus.ENABLED, None) == {"ControlStatus": "ENABLED"}


# ==================== Store ====================


class TestSecurityHubStoreConfig:
    """Tests for SecurityHubStore configuration."""

    def test_name_and_version(self):
        store = SecurityHubStore()
        assert store.name == "securityhub"
        assert store.version == "1.0.0"

    def test_load_config_from_env(self):
        env_vars = {
            "AWS_REGION": "eu-west-1",
            "SECURITYHUB_ENDPOINT_URL": "http://localhost:4566",
            "SECURITYHUB_PAGE_SIZE": "25",
        }
        with patch.dict(os.environ, env_vars, clear=True):
            config = SecurityHubStore.load_config_from_env()

        assert config == {
            "region": "eu-west-1",
            "endpoint_url": "http://localhost:4566",
            "page_size": 25,
        }

    def test_load_config_falls_back_to_default_region(self):
        with patch.dict(os.environ, {"AWS_DEFAULT_REGION": "us-west-2"}, clear=True):
            config = SecurityHubStore.load_config_from_env()

        assert config["region"] == "us-west-2"
        assert config["endpoint_url"] is None
        assert config["page_size"] == 100


@pytest.mark.asyncio
class TestSecurityHubStore:
    """Tests for SecurityHubStore calls against a stubbed client."""

    async def test_initialize_creates_client(self):
        store = SecurityHubStore()

        with patch("stores.securityhub.client.boto3.client") as mock_client:
            await store.initialize(
                {"region": "eu-west-1", "endpoint_url": None, "page_size": 50}
            )

        mock_client.assert_called_once_with(
            "securityhub", region_name="eu-west-1", endpoint_url=None
        )
        assert store.client is mock_client.return_value
        assert store.page_size == 50

    async def test_update_disabled(self, client, stubber, sample_control):
        arn = sample_control["StandardsControlArn"]
        stubber.add_response(
            "update_standards_control",
            {},
            {
                "StandardsControlArn": arn,
                "ControlStatus": "DISABLED",
                "DisabledReason": "n/a",
            },
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        record = await store.update_status(
            arn, SUBSCRIPTION_ARN, ControlStatus.DISABLED, "n/a"
        )

        assert record.control_arn == arn
        assert record.status is ControlStatus.DISABLED
        assert record.disabled_reason == "n/a"

    async def test_update_enabled_sends_no_reason(
        self, client, stubber, sample_control
    ):
        arn = sample_control["StandardsControlArn"]
        stubber.add_response(
            "update_standards_control",
            {},
            {"StandardsControlArn": arn, "ControlStatus": "ENABLED"},
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        await store.update_status(arn, SUBSCRIPTION_ARN, ControlStatus.ENABLED)

    async def test_update_client_error(self, client, stubber, sample_control):
        stubber.add_client_error(
            "update_standards_control",
            service_error_code="AccessDeniedException",
            service_message="User is not authorized",
            http_status_code=403,
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        with pytest.raises(ControlStoreError) as exc_info:
            await store.update_status(
                sample_control["StandardsControlArn"],
                SUBSCRIPTION_ARN,
                ControlStatus.ENABLED,
            )

        assert exc_info.value.status_code == 403
        assert "AccessDeniedException" in str(exc_info.value)

    async def test_query_follows_pages(self, client, stubber, sample_control):
        second = dict(
            sample_control,
            StandardsControlArn=sample_control["StandardsControlArn"][:-1] + "2",
            ControlStatus="ENABLED",
        )
        del second["DisabledReason"]
        stubber.add_response(
            "describe_standards_controls",
            {"Controls": [sample_control], "NextToken": "page-2"},
            {"StandardsSubscriptionArn": SUBSCRIPTION_ARN, "MaxResults": 100},
        )
        stubber.add_response(
            "describe_standards_controls",
            {"Controls": [second]},
            {
                "StandardsSubscriptionArn": SUBSCRIPTION_ARN,
                "MaxResults": 100,
                "NextToken": "page-2",
            },
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        records = await store.query_by_standard(SUBSCRIPTION_ARN)

        assert [r.status for r in records] == [
            ControlStatus.DISABLED,
            ControlStatus.ENABLED,
        ]
        assert records[1].disabled_reason is None

    async def test_query_filters_on_control_arn(
        self, client, stubber, sample_control
    ):
        other = dict(sample_control, StandardsControlArn="arn:aws:other")
        stubber.add_response(
            "describe_standards_controls",
            {"Controls": [other, sample_control]},
            {"StandardsSubscriptionArn": SUBSCRIPTION_ARN, "MaxResults": 100},
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        records = await store.query_by_standard(
            SUBSCRIPTION_ARN, sample_control["StandardsControlArn"]
        )

        assert len(records) == 1
        assert records[0].control_arn == sample_control["StandardsControlArn"]

    async def test_query_client_error(self, client, stubber):
        stubber.add_client_error(
            "describe_standards_controls",
            service_error_code="InvalidAccessException",
            service_message="Account is not subscribed",
            http_status_code=401,
        )
        store = SecurityHubStore(client=client)
        await store.initialize({})

        with pytest.raises(ControlStoreError, match="InvalidAccessException"):
            await store.query_by_standard(SUBSCRIPTION_ARN)

    async def test_uninitialized_store(self):
        store = SecurityHubStore()

        with pytest.raises(ControlStoreError, match="not initialized"):
            await store.query_by_standard(SUBSCRIPTION_ARN)

    async def test_initialize_without_region(self):
        store = SecurityHubStore()

        with patch(
            "stores.securityhub.client.boto3.client", side_effect=NoRegionError()
        ):
            with pytest.raises(
                ControlStoreError, match="Cannot create Security Hub client"
            ):
                await store.initialize({"region": None})

        assert store.client is None
