"""Pytest configuration and fixtures."""

from typing import Dict, List, Optional, Tuple

import pytest

from config import reset_config
from models import ControlIdentity, ControlRecord, ControlStatus, DesiredControlState
from stores.base import ControlStore
from stores.registry import reset_registry


class RecordingStore(ControlStore):
    """In-memory control store that records every call it receives."""

    def __init__(self):
        self.records: Dict[Tuple[str, str], ControlRecord] = {}
        self.updates: List[tuple] = []
        self.queries: List[tuple] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "recording"

    @property
    def version(self) -> str:
        return "0.0.1"

    async def initialize(self, config):
        self.config = config

    async def update_status(
        self,
        control_arn: str,
        standard_arn: str,
        status: ControlStatus,
        disabled_reason: Optional[str] = None,
    ) -> ControlRecord:
        self.updates.append((control_arn, standard_arn, status, disabled_reason))
        record = ControlRecord(control_arn, status, disabled_reason)
        self.records[(standard_arn, control_arn)] = record
        return record

    async def query_by_standard(self, standard_arn, control_arn=None):
        self.queries.append((standard_arn, control_arn))
        return [
            record
            for (standard, _), record in self.records.items()
            if standard == standard_arn
        ]

    async def close(self):
        self.closed = True

    def seed(self, standard_arn, record: ControlRecord) -> None:
        self.records[(standard_arn, record.control_arn)] = record


@pytest.fixture(autouse=True)
def fresh_globals():
    """Ensure fresh config and registry singletons for each test."""
    reset_config()
    reset_registry()
    yield
    reset_config()
    reset_registry()


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def identity():
    return ControlIdentity(standard_arn="arn:std:1", control_arn="arn:ctl:1")


@pytest.fixture
def other_identity():
    return ControlIdentity(standard_arn="arn:std:1", control_arn="arn:ctl:2")


@pytest.fixture
def disabled():
    return DesiredControlState(enabled=False, disabled_reason="not applicable")


@pytest.fixture
def enabled():
    return DesiredControlState(enabled=True)


@pytest.fixture
def sample_control():
    """A DescribeStandardsControls entry as returned by Security Hub."""
    return {
        "StandardsControlArn": (
            "arn:aws:securityhub:us-east-1:123456789012:control/"
            "cis-aws-foundations-benchmark/v/1.2.0/1.1"
        ),
        "ControlStatus": "DISABLED",
        "DisabledReason": "Handled by the organization's root account",
        "ControlId": "CIS.1.1",
        "Title": "Avoid the use of the root account",
        "SeverityRating": "LOW",
    }
