"""AWS adapters for nodeform.

Example:
    from injector import Injector
    from nodeform.providers.aws import AWSModule, CloudFormationStacks

    stacks = Injector([AWSModule(region="eu-central-1")]).get(CloudFormationStacks)
"""

from nodeform.providers.aws.clients import AWSModule
from nodeform.providers.aws.cloudformation import CloudFormationStacks
from nodeform.providers.aws.s3 import S3ObjectStore

__all__ = ["AWSModule", "CloudFormationStacks", "S3ObjectStore"]
