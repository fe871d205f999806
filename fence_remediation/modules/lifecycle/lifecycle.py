import logging
from enum import Enum

from ..api.models import FenceAgentsRemediation

logger = logging.getLogger(__name__)


class LifecycleOutcome(str, Enum):
    """What the reconciler should do after lifecycle handling."""

    FINALIZER_ADDED = "finalizer_added"  # object mutated, wait for the redelivered update
    DELETED = "deleted"  # cleanup done, finalizer removed
    IGNORED = "ignored"  # being deleted without our finalizer, nothing to clean up
    PROCEED = "proceed"  # live object with finalizer, continue remediation


class LifecycleManager:
    def __init__(self, cluster, taints, finalizer: str):
        """
        Initialize lifecycle manager.

        Args:
            cluster: ClusterModule used to persist the resource
            taints: TaintModule used for cleanup on deletion
            finalizer: Finalizer owned by this controller
        """
        self.cluster = cluster
        self.taints = taints
        self.finalizer = finalizer

    async def handle(self, far: FenceAgentsRemediation) -> LifecycleOutcome:
        """
        Attach or release the finalizer depending on the deletion state.

        Persist failures (including ConflictError) propagate to the caller.
        """
        has_finalizer = far.has_finalizer(self.finalizer)

        if not far.is_being_deleted:
            if has_finalizer:
                return LifecycleOutcome.PROCEED
            far.add_finalizer(self.finalizer)
            await self.cluster.update_remediation(far)
            logger.info(f"Finalizer added to FenceAgentsRemediation {far.name}")
            return LifecycleOutcome.FINALIZER_ADDED

        if not has_finalizer:
            logger.debug(f"FenceAgentsRemediation {far.name} is being deleted without our finalizer")
            return LifecycleOutcome.IGNORED

        logger.info(f"FenceAgentsRemediation {far.name} is being deleted, removing remediation taint")
        await self.taints.remove_taint(far.name)

        far.remove_finalizer(self.finalizer)
        await self.cluster.update_remediation(far)
        logger.info(f"Finalizer removed from FenceAgentsRemediation {far.name}")
        return LifecycleOutcome.DELETED
