"""On-demand pricing of EC2 instance types and spot price resolution."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from nodeform.constants import DiscountStrategy
from nodeform.exceptions import ConfigurationError
from nodeform.models import NodePool
from nodeform.protocols import PricingTable


@dataclass(frozen=True, slots=True)
class InstanceInfo:
    """Static facts about an EC2 instance type.

    Prices are hourly on-demand Linux prices in USD, kept as strings
    because they are passed verbatim as the spot max price.
    """

    instance_type: str
    vcpu: int
    memory_gb: float
    pricing: Mapping[str, str] = field(default_factory=dict)


def _info(type_name: str, vcpu: int, memory_gb: float, *prices: str) -> InstanceInfo:
    regions = ("us-east-1", "us-west-2", "eu-west-1", "eu-central-1")
    return InstanceInfo(type_name, vcpu, memory_gb, dict(zip(regions, prices, strict=True)))


# General purpose, compute and memory optimized families
#                      type           vcpu  mem   us-east-1  us-west-2  eu-west-1  eu-central-1
INSTANCES: list[InstanceInfo] = [
    _info("t3.medium", 2, 4, "0.0416", "0.0416", "0.0456", "0.048"),
    _info("t3.large", 2, 8, "0.0832", "0.0832", "0.0912", "0.096"),
    _info("t3.xlarge", 4, 16, "0.1664", "0.1664", "0.1824", "0.192"),
    _info("m5.large", 2, 8, "0.096", "0.096", "0.107", "0.115"),
    _info("m5.xlarge", 4, 16, "0.192", "0.192", "0.214", "0.23"),
    _info("m5.2xlarge", 8, 32, "0.384", "0.384", "0.428", "0.46"),
    _info("m5.4xlarge", 16, 64, "0.768", "0.768", "0.856", "0.92"),
    _info("c5.large", 2, 4, "0.085", "0.085", "0.096", "0.097"),
    _info("c5.xlarge", 4, 8, "0.17", "0.17", "0.192", "0.194"),
    _info("c5.2xlarge", 8, 16, "0.34", "0.34", "0.384", "0.388"),
    _info("c5.4xlarge", 16, 32, "0.68", "0.68", "0.768", "0.776"),
    _info("r5.large", 2, 16, "0.126", "0.126", "0.141", "0.152"),
    _info("r5.xlarge", 4, 32, "0.252", "0.252", "0.282", "0.304"),
    _info("r5.2xlarge", 8, 64, "0.504", "0.504", "0.564", "0.608"),
]


class StaticPricingTable:
    """Pricing table backed by an in-memory list of instance types."""

    def __init__(self, instances: Iterable[InstanceInfo] = INSTANCES) -> None:
        self._instances = MappingProxyType({i.instance_type: i for i in instances})

    def instance_info(self, instance_type: str) -> InstanceInfo | None:
        return self._instances.get(instance_type)


def on_demand_price(table: PricingTable, instance_type: str, region: str) -> str:
    """Look up the on-demand price of an instance type in a region.

    Raises:
        ConfigurationError: The instance type is unknown or has no
            price for the region.
    """
    info = table.instance_info(instance_type)
    if info is None:
        raise ConfigurationError(f"unknown instance type {instance_type}")

    price = info.pricing.get(region)
    if price is None:
        raise ConfigurationError(
            f"no price data for region {region}, instance type {instance_type}"
        )
    return price


def resolve_spot_price(table: PricingTable, node_pool: NodePool, region: str) -> str:
    """Return the ``spot_price`` value for a node pool.

    ``spot_max_price`` bids up to the on-demand price; ``none`` yields an
    empty string so templates can omit the spot configuration.
    """
    match node_pool.discount_strategy:
        case DiscountStrategy.NONE:
            return ""
        case DiscountStrategy.SPOT_MAX_PRICE:
            return on_demand_price(table, node_pool.instance_type, region)
        case other:
            raise ConfigurationError(f"unsupported node pool discount_strategy {other}")
