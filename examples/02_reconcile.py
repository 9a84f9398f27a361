"""Decommission node pools that were removed from the cluster config.

Every live node pool stack of the cluster whose pool is no longer listed
in nodeform.toml is drained through its AutoScalingGroup, then deleted.
"""
import time
from dataclasses import replace
from pathlib import Path

import boto3

import nodeform as nf

PROJECT_DIR = Path(__file__).parent / "cluster"


class AutoScalingGroupScaler:
    """Drains a node pool by scaling its AutoScalingGroup down to ``replicas``."""

    def __init__(self, cluster: nf.Cluster, poll_interval: float = 15.0, timeout: float = 900.0) -> None:
        self.cluster = cluster
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._asg = boto3.client("autoscaling", region_name=cluster.region)

    def _group_name(self, node_pool: nf.NodePool) -> str:
        resources = boto3.client("cloudformation", region_name=self.cluster.region).describe_stack_resources(
            StackName=nf.stack_name(self.cluster, node_pool),
            LogicalResourceId="AutoScalingGroup",
        )
        return resources["StackResources"][0]["PhysicalResourceId"]

    def scale_pool(self, node_pool: nf.NodePool, replicas: int) -> None:
        group = self._group_name(node_pool)
        self._asg.update_auto_scaling_group(
            AutoScalingGroupName=group,
            MinSize=replicas,
            DesiredCapacity=replicas,
        )

        deadline = time.monotonic() + self.timeout
        while time.monotonic() < deadline:
            groups = self._asg.describe_auto_scaling_groups(AutoScalingGroupNames=[group])
            if len(groups["AutoScalingGroups"][0]["Instances"]) <= replicas:
                return
            time.sleep(self.poll_interval)

        raise nf.ScalingError(f"node pool {node_pool.name} still running after {self.timeout:.0f}s")


def main() -> None:
    config = nf.load_config(project_dir=PROJECT_DIR)
    settings = replace(nf.load_settings(config), config_dir=PROJECT_DIR / "profiles")
    cluster = nf.load_cluster(config)

    provisioner = nf.NodePoolProvisioner.create(settings, cluster, scaler=AutoScalingGroupScaler(cluster))
    provisioner.reconcile()


if __name__ == "__main__":
    handler_ids = nf.setup_logging(nf.LogConfig(level="DEBUG"))
    try:
        main()
    finally:
        nf.teardown_logging(handler_ids)
