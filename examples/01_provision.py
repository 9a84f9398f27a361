"""Provision the node pools of a cluster.

Reads examples/cluster/nodeform.toml, renders one stack per node pool
from its profile, publishes the Ignition config to S3 and waits for
every stack to converge. Requires AWS credentials and ``butane`` on PATH.

    ┌─────────────┐    ┌───────────┐    ┌────────────────┐
    │  userdata   │ -> │  butane   │ -> │ s3://<sha512>  │
    └─────────────┘    └───────────┘    └───────┬────────┘
    ┌─────────────┐                             │
    │ stack.yaml  │ <- UserData (skeleton) <────┘
    └──────┬──────┘
           └──> CloudFormation (one stack per pool, in parallel)
"""
from dataclasses import replace
from pathlib import Path

from loguru import logger

import nodeform as nf

PROJECT_DIR = Path(__file__).parent / "cluster"


class LoggingScaler:
    """Records scale requests without acting on them.

    Provisioning never drains pools; 02_reconcile.py drains through the
    AutoScalingGroup of each stack.
    """

    def scale_pool(self, node_pool: nf.NodePool, replicas: int) -> None:
        logger.warning("Skipping scale of node pool {pool} to {n}", pool=node_pool.name, n=replicas)


def main() -> None:
    config = nf.load_config(project_dir=PROJECT_DIR)
    settings = nf.load_settings(config)
    settings = replace(settings, config_dir=PROJECT_DIR / settings.config_dir)

    provisioner = nf.NodePoolProvisioner.create(settings, nf.load_cluster(config), scaler=LoggingScaler())
    try:
        provisioner.provision(nf.load_values(config))
    except nf.ProvisioningError as e:
        for name, error in e.failures.items():
            print(f"  ✗ {name}: {error}")
        raise SystemExit(1) from e


if __name__ == "__main__":
    handler_ids = nf.setup_logging(nf.LogConfig(level="INFO", file="nodeform.log"))
    try:
        main()
    finally:
        nf.teardown_logging(handler_ids)
