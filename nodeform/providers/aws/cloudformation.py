"""CloudFormation-backed stack primitive."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from functools import cached_property
from typing import TYPE_CHECKING, Final

from botocore.exceptions import ClientError, WaiterError
from loguru import logger
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    retry_if_result,
    stop_before_delay,
    wait_fixed,
)

from nodeform.exceptions import StackApplyError, StackDeleteError, StackTimeoutError, StackWaitError
from nodeform.models import NodePoolStack
from nodeform.tags import from_aws_tags, to_aws_tags

if TYPE_CHECKING:
    from mypy_boto3_cloudformation import CloudFormationClient

log = logger.bind(component="cloudformation")

CAPABILITIES: Final = ("CAPABILITY_IAM", "CAPABILITY_NAMED_IAM")
CONVERGED_STATUSES: Final = frozenset({"CREATE_COMPLETE", "UPDATE_COMPLETE"})
DELETE_COMPLETE: Final = "DELETE_COMPLETE"
NO_UPDATES_MESSAGE: Final = "No updates are to be performed"
THROTTLING_CODES: Final = frozenset({"Throttling", "ThrottlingException", "RequestLimitExceeded"})

DELETE_WAIT_DELAY: Final = 15
DELETE_WAIT_MAX_ATTEMPTS: Final = 120


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


def _error_message(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Message", str(exc))


def _is_throttling(exc: BaseException) -> bool:
    return isinstance(exc, ClientError) and _error_code(exc) in THROTTLING_CODES


def _in_progress(status: tuple[str, str] | None) -> bool:
    return status is not None and status[0].endswith("_IN_PROGRESS")


class CloudFormationStacks:
    """Creates, updates, lists and deletes CloudFormation stacks.

    Args:
        region: AWS region of the stacks.
        client: Preconfigured CloudFormation client. Created lazily if None.
        sleep: Sleep function used while polling (overridable in tests).
    """

    def __init__(
        self,
        region: str,
        client: CloudFormationClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.region = region
        self._client = client
        self._sleep = sleep

    @cached_property
    def _cf(self) -> CloudFormationClient:
        if self._client is not None:
            return self._client

        import boto3

        return boto3.client("cloudformation", region_name=self.region)

    def apply_stack(self, name: str, template: str, tags: Mapping[str, str]) -> None:
        """Create the stack, falling back to an update if it already exists.

        An update with no changes is not an error.
        """
        params = {
            "StackName": name,
            "TemplateBody": template,
            "Tags": to_aws_tags(tags),
            "Capabilities": list(CAPABILITIES),
        }

        try:
            self._cf.create_stack(**params, EnableTerminationProtection=True)
            log.info("Creating stack {name}", name=name)
            return
        except ClientError as e:
            if _error_code(e) != "AlreadyExistsException":
                raise StackApplyError(name, _error_message(e)) from e

        try:
            self._cf.update_stack(**params)
            log.info("Updating stack {name}", name=name)
        except ClientError as e:
            if NO_UPDATES_MESSAGE in _error_message(e):
                log.debug("Stack {name} is up to date", name=name)
                return
            raise StackApplyError(name, _error_message(e)) from e

    def _describe(self, name: str) -> tuple[str, str] | None:
        stacks = self._cf.describe_stacks(StackName=name).get("Stacks", [])
        if not stacks:
            return None
        stack = stacks[0]
        return stack["StackStatus"], stack.get("StackStatusReason", "")

    def wait_for_stack(self, name: str, *, timeout: float, interval: float) -> str:
        """Poll the stack until it leaves the in-progress states.

        Raises:
            StackWaitError: The stack settled in a rollback or failed state.
            StackTimeoutError: Still in progress after ``timeout`` seconds.
        """
        retrying = Retrying(
            stop=stop_before_delay(timeout),
            wait=wait_fixed(interval),
            retry=retry_if_result(_in_progress) | retry_if_exception(_is_throttling),
            sleep=self._sleep,
        )

        try:
            result = retrying(self._describe, name)
        except RetryError as e:
            raise StackTimeoutError(name, timeout) from e
        except ClientError as e:
            raise StackWaitError(name, _error_message(e)) from e

        if result is None:
            raise StackWaitError(name, "stack does not exist")

        status, reason = result
        if status not in CONVERGED_STATUSES:
            detail = f": {reason}" if reason else ""
            raise StackWaitError(name, f"reached status {status}{detail}")

        log.debug("Stack {name} converged with {status}", name=name, status=status)
        return status

    def list_stacks(self, tags: Mapping[str, str]) -> list[NodePoolStack]:
        """List live stacks whose tags include every key/value in ``tags``."""
        stacks: list[NodePoolStack] = []
        paginator = self._cf.get_paginator("describe_stacks")
        for page in paginator.paginate():
            for stack in page.get("Stacks", []):
                if stack["StackStatus"] == DELETE_COMPLETE:
                    continue
                stack_tags = from_aws_tags(stack.get("Tags", []))
                if all(stack_tags.get(k) == v for k, v in tags.items()):
                    stacks.append(
                        NodePoolStack(
                            name=stack["StackName"],
                            tags=stack_tags,
                            status=stack["StackStatus"],
                        )
                    )
        return stacks

    def delete_stack(self, name: str) -> None:
        """Delete the stack and wait until it is gone."""
        try:
            self._cf.update_termination_protection(
                StackName=name,
                EnableTerminationProtection=False,
            )
            self._cf.delete_stack(StackName=name)
            log.info("Deleting stack {name}", name=name)

            waiter = self._cf.get_waiter("stack_delete_complete")
            waiter.wait(
                StackName=name,
                WaiterConfig={
                    "Delay": DELETE_WAIT_DELAY,
                    "MaxAttempts": DELETE_WAIT_MAX_ATTEMPTS,
                },
            )
        except ClientError as e:
            raise StackDeleteError(name, _error_message(e)) from e
        except WaiterError as e:
            raise StackDeleteError(name, str(e)) from e
