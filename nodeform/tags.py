"""Mapping between node pool identity and stack tags."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from nodeform.constants import (
    CLUSTER_TAG_PREFIX,
    RESOURCE_LIFECYCLE_OWNED,
    ROLE_TAG_VALUE,
    NodePoolTag,
)
from nodeform.models import NodePool

type AWSTag = dict[str, str]


def cluster_tag_key(cluster_id: str) -> str:
    return f"{CLUSTER_TAG_PREFIX}{cluster_id}"


def owner_tags(cluster_id: str) -> dict[str, str]:
    """Tags shared by every node pool stack of a cluster.

    Used as the filter when listing live stacks.
    """
    return {
        cluster_tag_key(cluster_id): RESOURCE_LIFECYCLE_OWNED,
        NodePoolTag.ROLE: ROLE_TAG_VALUE,
    }


def encode_tags(cluster_id: str, node_pool: NodePool) -> dict[str, str]:
    """Build the five tags attached to a node pool stack."""
    return {
        **owner_tags(cluster_id),
        NodePoolTag.NAME: node_pool.name,
        NodePoolTag.NAME_LEGACY: node_pool.name,
        NodePoolTag.PROFILE: node_pool.profile,
    }


def decode_tags(tags: Mapping[str, str]) -> NodePool:
    """Recover a node pool identity from stack tags.

    Missing tags leave the corresponding field empty.
    """
    return NodePool(
        name=tags.get(NodePoolTag.NAME, ""),
        profile=tags.get(NodePoolTag.PROFILE, ""),
    )


def to_aws_tags(tags: Mapping[str, str]) -> list[AWSTag]:
    return [{"Key": str(k), "Value": v} for k, v in tags.items()]


def from_aws_tags(tags: Iterable[Mapping[str, str]]) -> dict[str, str]:
    return {t["Key"]: t.get("Value", "") for t in tags if "Key" in t}
