"""nodeform - Provision and reconcile Kubernetes node pools as CloudFormation stacks.

Example:

    from nodeform import NodePoolProvisioner, load_cluster, load_config, load_settings, load_values

    config = load_config()
    provisioner = NodePoolProvisioner.create(
        load_settings(config),
        load_cluster(config),
        scaler=my_scaler,
    )
    provisioner.provision(load_values(config))
    provisioner.reconcile()
"""

from nodeform.config import ProvisionerSettings, load_cluster, load_config, load_settings, load_values
from nodeform.constants import DiscountStrategy, NodePoolTag
from nodeform.exceptions import (
    ConfigurationError,
    NodeformError,
    ProvisioningError,
    PublishError,
    ScalingError,
    StackApplyError,
    StackDeleteError,
    StackError,
    StackTimeoutError,
    StackWaitError,
    TemplateError,
)
from nodeform.logging import LogConfig, setup_logging, teardown_logging
from nodeform.models import Cluster, NodePool, NodePoolStack
from nodeform.provisioner import NodePoolProvisioner, orphaned_node_pool_stacks, stack_name
from nodeform.publisher import ContentAddressedPublisher
from nodeform.tags import decode_tags, encode_tags

__all__ = [
    "Cluster",
    "ConfigurationError",
    "ContentAddressedPublisher",
    "DiscountStrategy",
    "LogConfig",
    "NodePool",
    "NodePoolProvisioner",
    "NodePoolStack",
    "NodePoolTag",
    "NodeformError",
    "ProvisionerSettings",
    "ProvisioningError",
    "PublishError",
    "ScalingError",
    "StackApplyError",
    "StackDeleteError",
    "StackError",
    "StackTimeoutError",
    "StackWaitError",
    "TemplateError",
    "decode_tags",
    "encode_tags",
    "load_cluster",
    "load_config",
    "load_settings",
    "load_values",
    "orphaned_node_pool_stacks",
    "setup_logging",
    "stack_name",
    "teardown_logging",
]
