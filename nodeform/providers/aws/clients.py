"""AWS client wiring with dependency injection.

Provides the boto3 session and the AWS-backed collaborators of the
provisioner as injectable singletons.
"""

from __future__ import annotations

import boto3
from injector import Module, provider, singleton

from nodeform.providers.aws.cloudformation import CloudFormationStacks
from nodeform.providers.aws.s3 import S3ObjectStore
from nodeform.publisher import ContentAddressedPublisher

# =============================================================================
# AWS Module
# =============================================================================


class AWSModule(Module):
    """DI module that provides AWS-backed stack and storage adapters.

    Usage:
        >>> from injector import Injector
        >>> from nodeform.providers.aws import AWSModule, CloudFormationStacks
        >>>
        >>> injector = Injector([AWSModule(region="eu-central-1")])
        >>> stacks = injector.get(CloudFormationStacks)
    """

    def __init__(self, region: str, session: boto3.Session | None = None) -> None:
        self.region = region
        self._session = session

    @singleton
    @provider
    def provide_session(self) -> boto3.Session:
        """Provide singleton boto3 session."""
        return self._session or boto3.Session(region_name=self.region)

    @singleton
    @provider
    def provide_stacks(self, session: boto3.Session) -> CloudFormationStacks:
        return CloudFormationStacks(
            self.region,
            client=session.client("cloudformation", region_name=self.region),
        )

    @singleton
    @provider
    def provide_object_store(self, session: boto3.Session) -> S3ObjectStore:
        return S3ObjectStore(
            self.region,
            client=session.client("s3", region_name=self.region),
        )

    @singleton
    @provider
    def provide_publisher(self, store: S3ObjectStore) -> ContentAddressedPublisher:
        return ContentAddressedPublisher(store)


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "AWSModule",
]
