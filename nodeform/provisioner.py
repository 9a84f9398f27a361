"""Node pool provisioning and reconciliation.

``provision`` renders and applies one CloudFormation stack per node pool,
in parallel, isolating failures per pool. ``reconcile`` finds stacks of
node pools that are no longer desired, drains them and deletes them.

Example:
    provisioner = NodePoolProvisioner.create(settings, cluster, scaler=scaler)
    provisioner.provision({"kubelet_version": "1.30.2"})
    provisioner.reconcile()
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from injector import Injector
from loguru import logger

from nodeform.bootstrap import ButaneConverter
from nodeform.config import ProvisionerSettings
from nodeform.constants import SPOT_PRICE_KEY, STACK_NAME_PREFIX
from nodeform.exceptions import ProvisioningError, ScalingError
from nodeform.models import Cluster, NodePool, NodePoolStack, Values
from nodeform.pricing import StaticPricingTable, resolve_spot_price
from nodeform.protocols import BootstrapConverter, NodePoolScaler, PricingTable, StackManager
from nodeform.publisher import ContentAddressedPublisher
from nodeform.tags import decode_tags, encode_tags, owner_tags
from nodeform.templates import NodePoolTemplates
from nodeform.utils.conc import map_settled


def stack_name(cluster: Cluster, node_pool: NodePool) -> str:
    """CloudFormation stack name of a node pool; ``:`` is not allowed in names."""
    return f"{STACK_NAME_PREFIX}-{node_pool.name}-{cluster.id.replace(':', '-')}"


def target_node_pools(cluster: Cluster) -> list[NodePool]:
    """Node pools provisioned as stacks; legacy profiles live in the cluster stack."""
    return [np for np in cluster.node_pools if not np.is_legacy]


def orphaned_node_pool_stacks(
    stacks: Iterable[NodePoolStack],
    node_pools: Sequence[NodePool],
) -> list[NodePoolStack]:
    """Stacks whose node pool name is not among the desired pools."""
    desired = {np.name for np in node_pools}
    return [s for s in stacks if decode_tags(s.tags).name not in desired]


class NodePoolProvisioner:
    """Provisions and decommissions the node pools of one cluster.

    Args:
        cluster: Desired cluster state.
        stacks: Stack primitive (apply, wait, list, delete).
        scaler: Scales node pools down before their stacks are deleted.
        templates: Renders the stack document of a node pool.
        pricing: On-demand price lookup for spot bids.
        wait_timeout: Seconds to wait for each stack to converge.
        wait_interval: Seconds between stack status polls.
    """

    def __init__(
        self,
        cluster: Cluster,
        *,
        stacks: StackManager,
        scaler: NodePoolScaler,
        templates: NodePoolTemplates,
        pricing: PricingTable,
        wait_timeout: float,
        wait_interval: float,
    ) -> None:
        self.cluster = cluster
        self._stacks = stacks
        self._scaler = scaler
        self._templates = templates
        self._pricing = pricing
        self.wait_timeout = wait_timeout
        self.wait_interval = wait_interval
        self._log = logger.bind(cluster=cluster.id)

    @classmethod
    def create(
        cls,
        settings: ProvisionerSettings,
        cluster: Cluster,
        *,
        scaler: NodePoolScaler,
        converter: BootstrapConverter | None = None,
        pricing: PricingTable | None = None,
        injector: Injector | None = None,
    ) -> NodePoolProvisioner:
        """Build a provisioner backed by CloudFormation and S3."""
        from nodeform.providers.aws import AWSModule, CloudFormationStacks

        injector = injector or Injector([AWSModule(region=settings.region or cluster.region)])
        templates = NodePoolTemplates(
            settings.config_dir,
            settings.bucket,
            converter=converter or ButaneConverter(),
            publisher=injector.get(ContentAddressedPublisher),
        )
        return cls(
            cluster,
            stacks=injector.get(CloudFormationStacks),
            scaler=scaler,
            templates=templates,
            pricing=pricing or StaticPricingTable(),
            wait_timeout=settings.wait_timeout,
            wait_interval=settings.wait_interval,
        )

    # -------------------------------------------------------------------------
    # Provision
    # -------------------------------------------------------------------------

    def provision(self, values: Values) -> None:
        """Provision all node pools of the cluster in parallel.

        Every pool gets an attempt regardless of its siblings' outcome.

        Raises:
            ProvisioningError: One or more node pools failed; lists each of them.
        """
        node_pools = target_node_pools(self.cluster)
        if not node_pools:
            self._log.info("No node pools to provision")
            return

        self._log.info("Provisioning {n} node pools", n=len(node_pools))

        # Each task mutates its own copy of the base values
        results = map_settled(
            lambda np: self._provision_node_pool(np, dict(values)),
            node_pools,
        )

        failures = {r.item.name: r.error for r in results if r.error is not None}
        if failures:
            for name, error in failures.items():
                self._log.error("Node pool {pool} failed: {error}", pool=name, error=error)
            raise ProvisioningError(failures)

        self._log.info("Provisioned {n} node pools", n=len(node_pools))

    def _provision_node_pool(self, node_pool: NodePool, values: dict[str, str]) -> str:
        log = self._log.bind(node_pool=node_pool.name)

        values[SPOT_PRICE_KEY] = resolve_spot_price(self._pricing, node_pool, self.cluster.region)

        template = self._templates.render_stack(self.cluster, node_pool, values)
        name = stack_name(self.cluster, node_pool)
        tags = encode_tags(self.cluster.id, node_pool)

        log.info("Applying stack {stack}", stack=name)
        self._stacks.apply_stack(name, template, tags)

        status = self._stacks.wait_for_stack(
            name,
            timeout=self.wait_timeout,
            interval=self.wait_interval,
        )
        log.info("Stack {stack} is {status}", stack=name, status=status)
        return status

    # -------------------------------------------------------------------------
    # Reconcile
    # -------------------------------------------------------------------------

    def reconcile(self) -> None:
        """Decommission node pools whose stacks are no longer desired.

        Orphans are handled one at a time in listing order: drain to zero,
        then delete the stack. The first failure stops the pass and leaves
        the remaining stacks for the next one.

        Raises:
            ScalingError: A node pool could not be drained; its stack is kept.
            StackDeleteError: A drained node pool's stack could not be deleted.
        """
        live = self._stacks.list_stacks(owner_tags(self.cluster.id))
        orphaned = orphaned_node_pool_stacks(live, self.cluster.node_pools)

        if orphaned:
            self._log.info("Found {n} node pool stacks to decommission", n=len(orphaned))

        for stack in orphaned:
            self._decommission(stack)

    def _decommission(self, stack: NodePoolStack) -> None:
        node_pool = decode_tags(stack.tags)
        log = self._log.bind(node_pool=node_pool.name, stack=stack.name)

        log.info("Draining node pool {pool}", pool=node_pool.name)
        try:
            self._scaler.scale_pool(node_pool, 0)
        except ScalingError:
            raise
        except Exception as e:
            raise ScalingError(f"failed to drain node pool {node_pool.name}: {e}") from e

        log.info("Deleting stack {stack}", stack=stack.name)
        self._stacks.delete_stack(stack.name)
