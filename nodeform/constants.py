"""Centralized constants and enums for nodeform.

Tag keys, profile file names and timeouts are defined here so the
provisioner, the reconciler and the stack adapters agree on them.
"""

from __future__ import annotations

from datetime import timedelta
from enum import StrEnum
from typing import Final

# =============================================================================
# Stack Tags
# =============================================================================


class NodePoolTag(StrEnum):
    """CloudFormation tag keys carried by every node pool stack."""

    ROLE = "kubernetes.io/role/node-pool"
    NAME = "kubernetes.io/node-pool"
    NAME_LEGACY = "NodePool"
    PROFILE = "kubernetes.io/node-pool/profile"


CLUSTER_TAG_PREFIX: Final = "kubernetes.io/cluster/"
RESOURCE_LIFECYCLE_OWNED: Final = "owned"
ROLE_TAG_VALUE: Final = "true"


# =============================================================================
# Discount Strategies
# =============================================================================


class DiscountStrategy(StrEnum):
    """Capacity pricing policy of a node pool."""

    NONE = "none"
    SPOT_MAX_PRICE = "spot_max_price"


# =============================================================================
# Profile Files
# =============================================================================

USER_DATA_FILE_NAME: Final = "userdata.clc.yaml"
STACK_FILE_NAME: Final = "stack.yaml"

# Managed by the cluster stack, never provisioned as node pool stacks
LEGACY_PROFILES: Final = frozenset({"master-default", "worker-default"})

SPOT_PRICE_KEY: Final = "spot_price"


# =============================================================================
# Object Storage
# =============================================================================

USER_DATA_SUFFIX: Final = ".userdata"
IGNITION_VERSION: Final = "3.4.0"


# =============================================================================
# Stack Naming & Timeouts
# =============================================================================

STACK_NAME_PREFIX: Final = "nodepool"

MAX_WAIT_TIMEOUT: Final = timedelta(minutes=15)
WAIT_INTERVAL: Final = timedelta(seconds=15)
