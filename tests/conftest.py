from __future__ import annotations

import threading
from collections.abc import Mapping
from pathlib import Path

import pytest

from nodeform.constants import STACK_FILE_NAME, USER_DATA_FILE_NAME, DiscountStrategy
from nodeform.models import Cluster, NodePool, NodePoolStack
from nodeform.pricing import StaticPricingTable
from nodeform.provisioner import NodePoolProvisioner
from nodeform.publisher import ContentAddressedPublisher
from nodeform.tags import encode_tags
from nodeform.templates import NodePoolTemplates

CLUSTER_ID = "aws:123456789012:eu-central-1:kube-1"
PROFILE = "worker-splitaz"

USER_DATA_TEMPLATE = """\
variant: fcos
version: 1.5.0
storage:
  files:
    - path: /etc/kubernetes/node-pool
      contents:
        inline: "{{ Cluster.id }}/{{ NodePool.name }}"
"""

STACK_TEMPLATE = """\
AWSTemplateFormatVersion: "2010-09-09"
Description: "Node pool {{ NodePool.name }} of {{ Cluster.id }}"
Resources:
  LaunchTemplate:
    Type: AWS::EC2::LaunchTemplate
    Properties:
      LaunchTemplateData:
        InstanceType: "{{ NodePool.instance_type }}"
        UserData: "{{ UserData }}"
{%- if Values.spot_price %}
        InstanceMarketOptions:
          MarketType: spot
          SpotOptions:
            MaxPrice: "{{ Values.spot_price }}"
{%- endif %}
"""


class MemoryObjectStore:
    scheme = "s3"

    def __init__(self) -> None:
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], bytes] = {}
        self.puts = 0
        self.fail_with: Exception | None = None
        self._lock = threading.Lock()

    def ensure_bucket(self, bucket: str) -> None:
        with self._lock:
            self.buckets.add(bucket)

    def put(self, bucket: str, key: str, data: bytes) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        with self._lock:
            self.objects[(bucket, key)] = data
            self.puts += 1


class FakeConverter:
    def __init__(self, fail: bool = False, ignition_version: str = "3.4.0") -> None:
        self.fail = fail
        self.ignition_version = ignition_version

    def convert(self, rendered: str) -> bytes:
        if self.fail:
            raise ValueError("yaml: line 1: did not find expected key")
        return b'{"ignition":' + rendered.encode() + b"}"


class FakeStacks:
    """In-memory stack primitive recording every call in order."""

    def __init__(self, live: list[NodePoolStack] | None = None) -> None:
        self.live = live or []
        self.applied: dict[str, tuple[str, dict[str, str]]] = {}
        self.waited: list[tuple[str, float, float]] = []
        self.deleted: list[str] = []
        self.apply_errors: dict[str, Exception] = {}
        self.wait_errors: dict[str, Exception] = {}
        self.delete_errors: dict[str, Exception] = {}
        self.events: list[tuple[str, str]] | None = None
        self.barrier: threading.Barrier | None = None
        self._lock = threading.Lock()

    def apply_stack(self, name: str, template: str, tags: Mapping[str, str]) -> None:
        if self.barrier is not None:
            self.barrier.wait()
        if name in self.apply_errors:
            raise self.apply_errors[name]
        with self._lock:
            self.applied[name] = (template, dict(tags))

    def wait_for_stack(self, name: str, *, timeout: float, interval: float) -> str:
        with self._lock:
            self.waited.append((name, timeout, interval))
        if name in self.wait_errors:
            raise self.wait_errors[name]
        return "CREATE_COMPLETE"

    def list_stacks(self, tags: Mapping[str, str]) -> list[NodePoolStack]:
        return [s for s in self.live if all(s.tags.get(k) == v for k, v in tags.items())]

    def delete_stack(self, name: str) -> None:
        if self.events is not None:
            self.events.append(("delete", name))
        if name in self.delete_errors:
            raise self.delete_errors[name]
        self.deleted.append(name)


class FakeScaler:
    def __init__(self, fail_for: dict[str, Exception] | None = None) -> None:
        self.calls: list[tuple[str, int]] = []
        self.fail_for = fail_for or {}
        self.events: list[tuple[str, str]] | None = None

    def scale_pool(self, node_pool: NodePool, replicas: int) -> None:
        if self.events is not None:
            self.events.append(("drain", node_pool.name))
        self.calls.append((node_pool.name, replicas))
        if node_pool.name in self.fail_for:
            raise self.fail_for[node_pool.name]


def make_stack(name: str, cluster_id: str = CLUSTER_ID, profile: str = PROFILE) -> NodePoolStack:
    node_pool = NodePool(name=name, profile=profile)
    return NodePoolStack(
        name=f"nodepool-{name}-{cluster_id.replace(':', '-')}",
        tags=encode_tags(cluster_id, node_pool),
        status="CREATE_COMPLETE",
    )


def write_profile(
    config_dir: Path,
    profile: str = PROFILE,
    user_data: str = USER_DATA_TEMPLATE,
    stack: str = STACK_TEMPLATE,
) -> Path:
    path = config_dir / profile
    path.mkdir(parents=True, exist_ok=True)
    (path / USER_DATA_FILE_NAME).write_text(user_data)
    (path / STACK_FILE_NAME).write_text(stack)
    return path


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    path = tmp_path / "profiles"
    write_profile(path)
    return path


@pytest.fixture
def store() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def templates(config_dir: Path, store: MemoryObjectStore) -> NodePoolTemplates:
    return NodePoolTemplates(
        config_dir,
        "cluster-userdata",
        converter=FakeConverter(),
        publisher=ContentAddressedPublisher(store),
    )


@pytest.fixture
def cluster() -> Cluster:
    return Cluster(
        id=CLUSTER_ID,
        region="eu-central-1",
        node_pools=(
            NodePool("default", PROFILE, "m5.large", DiscountStrategy.SPOT_MAX_PRICE),
            NodePool("ingress", PROFILE, "c5.xlarge", DiscountStrategy.NONE),
        ),
    )


@pytest.fixture
def stacks() -> FakeStacks:
    return FakeStacks()


@pytest.fixture
def scaler() -> FakeScaler:
    return FakeScaler()


@pytest.fixture
def make_provisioner(stacks: FakeStacks, scaler: FakeScaler, templates: NodePoolTemplates):
    def _make(cluster: Cluster) -> NodePoolProvisioner:
        return NodePoolProvisioner(
            cluster,
            stacks=stacks,
            scaler=scaler,
            templates=templates,
            pricing=StaticPricingTable(),
            wait_timeout=900.0,
            wait_interval=15.0,
        )

    return _make
