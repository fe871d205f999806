import asyncio
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

import pydantic
import urllib3
from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from ...config.provider import ControllerConfig
from ...errors import (
    ConflictError,
    NotFoundError,
    RemediationError,
    TransientInfraError,
    ValidationError,
)
from ..api.models import FenceAgentsRemediation

logger = logging.getLogger(__name__)


def load_kube_config(kubeconfig: Optional[str] = None) -> None:
    """Load in-cluster config, falling back to a kubeconfig file."""
    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        logger.warning("Failed to load in-cluster config, trying kubeconfig")
        config.load_kube_config()


def translate_api_exception(e: ApiException) -> RemediationError:
    """Map an API failure onto the remediation error taxonomy."""
    if e.status == 404:
        return NotFoundError(e.reason or "not found")
    if e.status == 409:
        return ConflictError(f"conflict: {e.reason}")
    return TransientInfraError(f"Kubernetes API error {e.status}: {e.reason}")


class ClusterModule:
    def __init__(
        self,
        controller_config: ControllerConfig,
        core_v1: Optional[client.CoreV1Api] = None,
        custom_objects: Optional[client.CustomObjectsApi] = None,
    ):
        """
        Initialize cluster module.

        Args:
            controller_config: Resource coordinates and request timeout
            core_v1: CoreV1Api (created from the loaded kube config if omitted)
            custom_objects: CustomObjectsApi (created if omitted)
        """
        self.config = controller_config
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.custom_objects = custom_objects or client.CustomObjectsApi()

    async def _call(self, func: Callable, *args, **kwargs) -> Any:
        """Run a blocking client call in a worker thread and translate failures."""
        kwargs.setdefault("_request_timeout", self.config.request_timeout_seconds)
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ApiException as e:
            raise translate_api_exception(e) from e
        except urllib3.exceptions.HTTPError as e:
            raise TransientInfraError(f"Kubernetes API unreachable: {e}") from e

    # Remediation resources

    async def get_remediation(self, name: str) -> FenceAgentsRemediation:
        """
        Fetch a FenceAgentsRemediation by name.

        Raises:
            NotFoundError: The resource does not exist
            ValidationError: The resource does not match the schema
        """
        obj = await self._call(
            self.custom_objects.get_namespaced_custom_object,
            self.config.group,
            self.config.version,
            self.config.namespace,
            self.config.plural,
            name,
        )
        try:
            return FenceAgentsRemediation.from_k8s(obj)
        except pydantic.ValidationError as e:
            raise ValidationError(f"malformed FenceAgentsRemediation {name}: {e}") from e

    async def update_remediation(self, far: FenceAgentsRemediation) -> FenceAgentsRemediation:
        """
        Replace a FenceAgentsRemediation, conditional on its resourceVersion.

        Raises:
            ConflictError: The resource changed since it was read
        """
        obj = await self._call(
            self.custom_objects.replace_namespaced_custom_object,
            self.config.group,
            self.config.version,
            self.config.namespace,
            self.config.plural,
            far.name,
            far.to_k8s(),
        )
        return FenceAgentsRemediation.from_k8s(obj)

    def stream_remediation_events(self, timeout_seconds: int = 300) -> Iterator[Dict[str, Any]]:
        """
        Blocking stream of watch events for remediation resources.

        Meant to run in a dedicated thread; ends after timeout_seconds.
        """
        w = watch.Watch()
        yield from w.stream(
            self.custom_objects.list_namespaced_custom_object,
            self.config.group,
            self.config.version,
            self.config.namespace,
            self.config.plural,
            timeout_seconds=timeout_seconds,
        )

    # Nodes

    async def list_node_names(self) -> List[str]:
        node_list = await self._call(self.core_v1.list_node)
        return [node.metadata.name for node in node_list.items]

    async def is_node_name_valid(self, name: str) -> bool:
        """Check whether a node with this name exists in the cluster."""
        return name in await self.list_node_names()

    async def get_node(self, name: str) -> client.V1Node:
        return await self._call(self.core_v1.read_node, name)

    async def replace_node(self, node: client.V1Node) -> client.V1Node:
        """Replace a node; the body carries the resourceVersion that was read."""
        return await self._call(self.core_v1.replace_node, node.metadata.name, node)

    # Pods

    async def list_pods(self, namespace: str, label_selector: str) -> List[client.V1Pod]:
        pod_list = await self._call(
            self.core_v1.list_namespaced_pod, namespace, label_selector=label_selector
        )
        return list(pod_list.items)
