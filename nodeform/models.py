"""Cluster and node pool models.

Immutable for the duration of a provisioning or reconciliation pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from nodeform.constants import LEGACY_PROFILES, DiscountStrategy
from nodeform.exceptions import ConfigurationError

type Values = Mapping[str, str]


def parse_discount_strategy(value: str | DiscountStrategy | None) -> DiscountStrategy:
    """Parse a discount strategy, treating an empty value as ``none``."""
    if value is None or value == "":
        return DiscountStrategy.NONE
    try:
        return DiscountStrategy(value)
    except ValueError as e:
        valid = ", ".join(s.value for s in DiscountStrategy)
        raise ConfigurationError(
            f"unsupported node pool discount_strategy {value!r}. Valid: {valid}"
        ) from e


@dataclass(frozen=True, slots=True)
class NodePool:
    """A named, homogeneously configured group of worker instances.

    Only ``name`` identifies a pool when matching desired against live
    stacks; ``profile`` is carried for reference.

    Args:
        name: Unique name within the cluster.
        profile: Name of the configuration directory holding the templates.
        instance_type: EC2 instance type, e.g. ``m5.large``.
        discount_strategy: Whether the pool bids for spot capacity.
        min_size: Minimum number of instances.
        max_size: Maximum number of instances.
    """

    name: str
    profile: str = ""
    instance_type: str = ""
    discount_strategy: DiscountStrategy | str = DiscountStrategy.NONE
    min_size: int = 0
    max_size: int = 1

    @property
    def is_legacy(self) -> bool:
        return self.profile in LEGACY_PROFILES

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NodePool:
        """Build a node pool from a config table."""
        if not data.get("name"):
            raise ConfigurationError("node pool missing 'name' field")
        return cls(
            name=str(data["name"]),
            profile=str(data.get("profile", "")),
            instance_type=str(data.get("instance_type", "")),
            discount_strategy=parse_discount_strategy(data.get("discount_strategy")),
            min_size=int(data.get("min_size", 0)),
            max_size=int(data.get("max_size", 1)),
        )


@dataclass(frozen=True, slots=True)
class Cluster:
    """Desired state of a cluster's node pools."""

    id: str
    region: str
    node_pools: tuple[NodePool, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for pool in self.node_pools:
            if pool.name in seen:
                raise ConfigurationError(f"duplicate node pool name '{pool.name}'")
            seen.add(pool.name)

    @property
    def node_pool_names(self) -> frozenset[str]:
        return frozenset(np.name for np in self.node_pools)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Cluster:
        """Build a cluster from a config table."""
        for required in ("id", "region"):
            if not data.get(required):
                raise ConfigurationError(f"cluster missing '{required}' field")

        pools = tuple(NodePool.from_dict(raw) for raw in data.get("node_pools", ()))
        return cls(id=str(data["id"]), region=str(data["region"]), node_pools=pools)


@dataclass(frozen=True, slots=True)
class NodePoolStack:
    """A node pool stack as reported by the stack primitive."""

    name: str
    tags: Mapping[str, str] = field(default_factory=dict)
    status: str = ""
