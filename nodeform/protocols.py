"""Capabilities consumed by the provisioner.

Each collaborator is a narrow protocol so tests can substitute fakes
and adapters stay swappable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from nodeform.models import NodePool, NodePoolStack
    from nodeform.pricing import InstanceInfo

__all__ = [
    "BootstrapConverter",
    "NodePoolScaler",
    "ObjectStore",
    "PricingTable",
    "StackManager",
]


@runtime_checkable
class StackManager(Protocol):
    """Declarative infrastructure stacks (create/update, wait, list, delete)."""

    def apply_stack(self, name: str, template: str, tags: Mapping[str, str]) -> None:
        """Create the stack, or update it if it already exists."""
        ...

    def wait_for_stack(self, name: str, *, timeout: float, interval: float) -> str:
        """Block until the stack converges and return its final status.

        Raises:
            StackWaitError: The stack settled in a failed state.
            StackTimeoutError: The stack did not converge in ``timeout`` seconds.
        """
        ...

    def list_stacks(self, tags: Mapping[str, str]) -> list[NodePoolStack]:
        """Return live stacks carrying every tag in ``tags``."""
        ...

    def delete_stack(self, name: str) -> None:
        ...


@runtime_checkable
class NodePoolScaler(Protocol):
    """Resizes a node pool, draining nodes gracefully when scaling down."""

    def scale_pool(self, node_pool: NodePool, replicas: int) -> None:
        ...


class PricingTable(Protocol):
    """Static on-demand pricing lookup."""

    def instance_info(self, instance_type: str) -> InstanceInfo | None:
        ...


class BootstrapConverter(Protocol):
    """Turns rendered user data into an immutable provisioning payload.

    ``ignition_version`` is the Ignition spec version of the converted
    payload; the bootstrap skeleton must declare the same version.
    """

    ignition_version: str

    def convert(self, rendered: str) -> bytes:
        ...


class ObjectStore(Protocol):
    """Bucket-addressed object storage."""

    @property
    def scheme(self) -> str:
        """URI scheme of published objects, e.g. ``s3``."""
        ...

    def ensure_bucket(self, bucket: str) -> None:
        """Create the bucket unless it already exists."""
        ...

    def put(self, bucket: str, key: str, data: bytes) -> None:
        ...
