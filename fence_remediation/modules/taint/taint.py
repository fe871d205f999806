import logging
from datetime import UTC, datetime
from typing import Any, Iterable, List, Optional, Tuple

from kubernetes import client

from ...config.provider import DEFAULT_TAINT_KEY
from ...errors import NotFoundError
from ..api.models import Taint, TaintEffect

logger = logging.getLogger(__name__)


def create_remediation_taint(key: str = DEFAULT_TAINT_KEY) -> Taint:
    """Create the NoExecute remediation taint. Its value is never compared."""
    return Taint(key=key, effect=TaintEffect.NO_EXECUTE)


def taint_exists(taints: Optional[Iterable[Any]], taint: Taint) -> bool:
    """Check if a taint with the same key and effect is in the list."""
    return any(taint.matches(existing) for existing in taints or [])


def add_taint(taints: Optional[Iterable[Any]], taint: Taint) -> Tuple[List[Any], bool]:
    """
    Add the taint unless a matching one exists.

    Returns:
        Tuple of (new taint list, whether the list changed)
    """
    current = list(taints or [])
    if taint_exists(current, taint):
        return current, False
    current.append(
        client.V1Taint(
            key=taint.key,
            value=taint.value,
            effect=taint.effect.value,
            time_added=datetime.now(UTC),
        )
    )
    return current, True


def delete_taint(taints: Optional[Iterable[Any]], taint: Taint) -> Tuple[List[Any], bool]:
    """
    Drop every taint matching key and effect.

    Returns:
        Tuple of (new taint list, whether the list changed)
    """
    current = list(taints or [])
    kept = [existing for existing in current if not taint.matches(existing)]
    return kept, len(kept) != len(current)


class TaintModule:
    def __init__(self, cluster, taint: Optional[Taint] = None):
        """
        Initialize taint module.

        Args:
            cluster: ClusterModule used to read and replace nodes
            taint: Remediation taint (defaults to the well-known NoExecute taint)
        """
        self.cluster = cluster
        self.taint = taint or create_remediation_taint()

    def is_tainted(self, node) -> bool:
        """Check the node's current taints for the remediation taint."""
        return taint_exists(node.spec.taints if node.spec else None, self.taint)

    async def append_taint(self, node) -> bool:
        """
        Idempotently add the remediation taint to a node that was already read.

        The node is replaced using the resourceVersion it was read with, so a
        concurrent modification surfaces as ConflictError.

        Returns:
            True if the node was updated, False if the taint was already there
        """
        node_name = node.metadata.name
        if node.spec is None:
            node.spec = client.V1NodeSpec()

        taints, changed = add_taint(node.spec.taints, self.taint)
        if not changed:
            logger.debug(f"Taint {self.taint.key} already present on node {node_name}")
            return False

        node.spec.taints = taints
        await self.cluster.replace_node(node)
        logger.info(f"Taint {self.taint.key}:{self.taint.effect.value} added to node {node_name}")
        return True

    async def remove_taint(self, node_name: str) -> bool:
        """
        Remove the remediation taint from a node.

        A missing node or missing taint is not an error.

        Returns:
            True if the node was updated
        """
        try:
            node = await self.cluster.get_node(node_name)
        except NotFoundError:
            logger.info(f"Node {node_name} not found, nothing to untaint")
            return False

        taints, changed = delete_taint(node.spec.taints if node.spec else None, self.taint)
        if not changed:
            logger.debug(f"Taint {self.taint.key} not present on node {node_name}")
            return False

        node.spec.taints = taints
        try:
            await self.cluster.replace_node(node)
        except NotFoundError:
            logger.info(f"Node {node_name} was deleted before its taint could be removed")
            return False
        logger.info(f"Taint {self.taint.key} removed from node {node_name}")
        return True
