from __future__ import annotations

import pytest

from nodeform.constants import NodePoolTag
from nodeform.models import NodePool
from nodeform.tags import decode_tags, encode_tags, from_aws_tags, owner_tags, to_aws_tags

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

CLUSTER_ID = "aws:123456789012:eu-central-1:kube-1"


class TestEncodeTags:
    def test_five_tags(self) -> None:
        tags = encode_tags(CLUSTER_ID, NodePool("default", "worker-splitaz"))
        assert tags == {
            "kubernetes.io/cluster/aws:123456789012:eu-central-1:kube-1": "owned",
            "kubernetes.io/role/node-pool": "true",
            "kubernetes.io/node-pool": "default",
            "NodePool": "default",
            "kubernetes.io/node-pool/profile": "worker-splitaz",
        }

    def test_profile_tag_carries_profile(self) -> None:
        tags = encode_tags(CLUSTER_ID, NodePool("gpu", "worker-gpu"))
        assert tags[NodePoolTag.PROFILE] == "worker-gpu"
        assert tags[NodePoolTag.NAME_LEGACY] == "gpu"

    def test_includes_owner_tags(self) -> None:
        tags = encode_tags(CLUSTER_ID, NodePool("default", "p"))
        assert owner_tags(CLUSTER_ID).items() <= tags.items()


class TestDecodeTags:
    @pytest.mark.parametrize(
        ("name", "profile"),
        [
            ("default", "worker-splitaz"),
            ("gpu-pool", "worker-gpu"),
            ("a", ""),
        ],
    )
    def test_round_trip(self, name: str, profile: str) -> None:
        node_pool = decode_tags(encode_tags(CLUSTER_ID, NodePool(name, profile, "m5.large")))
        assert node_pool.name == name
        assert node_pool.profile == profile

    def test_missing_tags_leave_fields_empty(self) -> None:
        node_pool = decode_tags({"kubernetes.io/role/node-pool": "true"})
        assert node_pool.name == ""
        assert node_pool.profile == ""

    def test_legacy_name_tag_is_not_identity(self) -> None:
        node_pool = decode_tags({"NodePool": "old"})
        assert node_pool.name == ""

    def test_unrelated_tags_ignored(self) -> None:
        node_pool = decode_tags({"kubernetes.io/node-pool": "default", "team": "platform"})
        assert node_pool.name == "default"


class TestAWSTags:
    def test_to_aws_tags(self) -> None:
        assert to_aws_tags({"a": "1"}) == [{"Key": "a", "Value": "1"}]

    def test_from_aws_tags(self) -> None:
        assert from_aws_tags([{"Key": "a", "Value": "1"}, {"Key": "b"}]) == {"a": "1", "b": ""}

    def test_enum_keys_serialize_as_plain_strings(self) -> None:
        aws_tags = to_aws_tags(encode_tags(CLUSTER_ID, NodePool("default", "p")))
        assert {"Key": "kubernetes.io/node-pool", "Value": "default"} in aws_tags
        assert all(type(t["Key"]) is str for t in aws_tags)
