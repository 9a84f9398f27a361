"""TOML-based provisioner and cluster configuration.

Loads ~/.nodeform/defaults.toml (global) and nodeform.toml (project),
merges them, and resolves the provisioner settings, the desired
cluster and the base template values.

Example nodeform.toml::

    [provisioner]
    bucket = "cluster-userdata"
    config_dir = "profiles"

    [cluster]
    id = "aws:123456789012:eu-central-1:kube-1"
    region = "eu-central-1"

    [[cluster.node_pools]]
    name = "default"
    profile = "worker-splitaz"
    instance_type = "m5.large"
    discount_strategy = "spot_max_price"

    [values]
    kubelet_version = "1.30.2"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from nodeform.constants import MAX_WAIT_TIMEOUT, WAIT_INTERVAL
from nodeform.exceptions import ConfigurationError
from nodeform.models import Cluster

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".nodeform" / "defaults.toml"
PROJECT_CONFIG_NAME = "nodeform.toml"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("provisioner", {})
    merged.setdefault("cluster", {})
    merged.setdefault("values", {})
    return merged


@dataclass(frozen=True, slots=True)
class ProvisionerSettings:
    """Settings of a node pool provisioner.

    Args:
        bucket: S3 bucket receiving published user data.
        config_dir: Directory holding one sub-directory per node pool profile.
        region: AWS region for stacks and the bucket. Defaults to the cluster's.
        wait_timeout: Seconds to wait for a stack to converge.
        wait_interval: Seconds between stack status polls.
    """

    bucket: str
    config_dir: Path
    region: str | None = None
    wait_timeout: float = MAX_WAIT_TIMEOUT.total_seconds()
    wait_interval: float = WAIT_INTERVAL.total_seconds()

    @classmethod
    def from_dict(cls, raw: RawConfig) -> ProvisionerSettings:
        for required in ("bucket", "config_dir"):
            if not raw.get(required):
                raise ConfigurationError(f"provisioner missing '{required}' field")

        unknown = set(raw) - {"bucket", "config_dir", "region", "wait_timeout", "wait_interval"}
        if unknown:
            raise ConfigurationError(f"unknown provisioner settings: {', '.join(sorted(unknown))}")

        return cls(
            bucket=str(raw["bucket"]),
            config_dir=Path(raw["config_dir"]).expanduser(),
            region=raw.get("region"),
            wait_timeout=float(raw.get("wait_timeout", MAX_WAIT_TIMEOUT.total_seconds())),
            wait_interval=float(raw.get("wait_interval", WAIT_INTERVAL.total_seconds())),
        )


def load_settings(config: RawConfig) -> ProvisionerSettings:
    return ProvisionerSettings.from_dict(config["provisioner"])


def load_cluster(config: RawConfig) -> Cluster:
    return Cluster.from_dict(config["cluster"])


def load_values(config: RawConfig) -> dict[str, str]:
    """Base template values; TOML scalars are coerced to strings."""
    values: dict[str, str] = {}
    for key, value in config["values"].items():
        if isinstance(value, dict | list):
            raise ConfigurationError(f"value '{key}' must be a scalar")
        values[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return values
