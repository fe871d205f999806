import logging

from kubernetes import client

from ...errors import PodNotFoundError

logger = logging.getLogger(__name__)


async def get_remediation_pod(cluster, namespace: str, label_selector: str) -> client.V1Pod:
    """
    Find the pod that hosts the fence agents.

    Args:
        cluster: ClusterModule
        namespace: Namespace the operator is deployed in
        label_selector: Label selector of the operator pod

    Returns:
        The first matching pod; with several matches the choice is arbitrary

    Raises:
        PodNotFoundError: No pod matched (it may not be scheduled yet)
    """
    pods = await cluster.list_pods(namespace, label_selector)
    if not pods:
        logger.warning(f"No fence agent pods found in {namespace} matching {label_selector}")
        raise PodNotFoundError(namespace, label_selector)

    if len(pods) > 1:
        logger.debug(f"{len(pods)} pods match {label_selector}, using {pods[0].metadata.name}")
    return pods[0]
