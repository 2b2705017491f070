"""Security Hub control store (boto3)."""

from stores.securityhub.client import SecurityHubStore

__all__ = ["SecurityHubStore"]
