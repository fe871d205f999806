"""
Shared pytest fixtures for fence agents remediation tests.

This module provides common fixtures including:
- FakeCluster: In-memory nodes, remediations and pods with resourceVersion checks
- FakeExecutor: Scripted fence agent responses with call recording
- Redis mocks for leader election tests
"""

import copy
import os
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes import client

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fence_remediation.config.provider import ControllerConfig
from fence_remediation.errors import ConflictError, NotFoundError
from fence_remediation.modules.api.models import FenceAgentsRemediation
from fence_remediation.modules.reconciler import SUCCESS_FA_RESPONSE, Reconciler

NAMESPACE = "far-system"
FINALIZER = "fence-agents-remediation.medik8s.io/far-finalizer"
TAINT_KEY = "medik8s.io/fence-agents-remediation"


# =============================================================================
# Cluster Fake
# =============================================================================

class FakeCluster:
    """
    In-memory stand-in for ClusterModule.

    Writes are conditional on resourceVersion like the real API server, and
    a remediation whose deletion timestamp is set is garbage collected once
    its last finalizer is removed.
    """

    def __init__(self):
        self.nodes: Dict[str, client.V1Node] = {}
        self.remediations: Dict[str, Dict[str, Any]] = {}
        self.pods: List[client.V1Pod] = []
        self.node_writes: List[str] = []
        self.remediation_writes: List[str] = []
        self.conflict_on_node_write = False
        self.core_v1 = MagicMock()

    # Setup helpers

    def add_node(self, name: str, taints: Optional[List[client.V1Taint]] = None) -> client.V1Node:
        node = client.V1Node(
            metadata=client.V1ObjectMeta(name=name, resource_version="1"),
            spec=client.V1NodeSpec(taints=taints),
        )
        self.nodes[name] = node
        return node

    def add_remediation(
        self,
        name: str,
        agent: str = "fence_ipmilan",
        shared: Optional[Dict[str, str]] = None,
        node_params: Optional[Dict[str, Dict[str, str]]] = None,
        finalizers: Optional[List[str]] = None,
        deletion_timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        spec: Dict[str, Any] = {"agent": agent}
        if shared is not None:
            spec["sharedparameters"] = shared
        if node_params is not None:
            spec["nodeparameters"] = node_params
        metadata: Dict[str, Any] = {
            "name": name,
            "namespace": NAMESPACE,
            "resourceVersion": "1",
            "finalizers": list(finalizers or []),
        }
        if deletion_timestamp:
            metadata["deletionTimestamp"] = deletion_timestamp
        obj = {
            "apiVersion": "fence-agents-remediation.medik8s.io/v1alpha1",
            "kind": "FenceAgentsRemediation",
            "metadata": metadata,
            "spec": spec,
        }
        self.remediations[name] = obj
        return obj

    def add_pod(self, name: str, namespace: str = NAMESPACE, labels: Optional[Dict[str, str]] = None) -> client.V1Pod:
        pod = client.V1Pod(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                labels=labels or {"app": "fence-agents-remediation-operator"},
            )
        )
        self.pods.append(pod)
        return pod

    def node_taint_keys(self, name: str) -> List[str]:
        return [t.key for t in (self.nodes[name].spec.taints or [])]

    # ClusterModule interface

    async def get_remediation(self, name: str) -> FenceAgentsRemediation:
        if name not in self.remediations:
            raise NotFoundError(name)
        return FenceAgentsRemediation.from_k8s(copy.deepcopy(self.remediations[name]))

    async def update_remediation(self, far: FenceAgentsRemediation) -> FenceAgentsRemediation:
        stored = self.remediations.get(far.name)
        if stored is None:
            raise NotFoundError(far.name)
        if stored["metadata"]["resourceVersion"] != far.metadata.resource_version:
            raise ConflictError(f"conflict on {far.name}")

        body = far.to_k8s()
        body["metadata"]["resourceVersion"] = str(int(stored["metadata"]["resourceVersion"]) + 1)
        self.remediation_writes.append(far.name)
        if body["metadata"].get("deletionTimestamp") and not body["metadata"]["finalizers"]:
            del self.remediations[far.name]
        else:
            self.remediations[far.name] = body
        return FenceAgentsRemediation.from_k8s(copy.deepcopy(body))

    async def list_node_names(self) -> List[str]:
        return list(self.nodes)

    async def is_node_name_valid(self, name: str) -> bool:
        return name in self.nodes

    async def get_node(self, name: str) -> client.V1Node:
        if name not in self.nodes:
            raise NotFoundError(name)
        return copy.deepcopy(self.nodes[name])

    async def replace_node(self, node: client.V1Node) -> client.V1Node:
        name = node.metadata.name
        stored = self.nodes.get(name)
        if stored is None:
            raise NotFoundError(name)
        if self.conflict_on_node_write or stored.metadata.resource_version != node.metadata.resource_version:
            raise ConflictError(f"conflict on node {name}")

        updated = copy.deepcopy(node)
        updated.metadata.resource_version = str(int(stored.metadata.resource_version) + 1)
        self.nodes[name] = updated
        self.node_writes.append(name)
        return copy.deepcopy(updated)

    async def list_pods(self, namespace: str, label_selector: str) -> List[client.V1Pod]:
        wanted = dict(part.split("=", 1) for part in label_selector.split(","))
        return [
            pod for pod in self.pods
            if pod.metadata.namespace == namespace
            and all((pod.metadata.labels or {}).get(k) == v for k, v in wanted.items())
        ]

    def stream_remediation_events(self, timeout_seconds: int = 300):
        for obj in list(self.remediations.values()):
            yield {"type": "ADDED", "object": copy.deepcopy(obj)}


# =============================================================================
# Executor Fake
# =============================================================================

@dataclass
class ExecCall:
    """Record of a fence agent execution made during testing."""
    pod_name: str
    command: List[str]


class FakeExecutor:
    """
    Executor returning scripted responses.

    Usage:
        def test_reboot(fake_executor):
            fake_executor.respond(stdout="Success: Rebooted")
            ...
            assert fake_executor.calls[0].command[0] == "fence_ipmilan"
    """

    def __init__(self):
        self.stdout = SUCCESS_FA_RESPONSE
        self.stderr = ""
        self.error: Optional[Exception] = None
        self.calls: List[ExecCall] = []

    def respond(self, stdout: str = "", stderr: str = "", error: Optional[Exception] = None) -> "FakeExecutor":
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        return self

    async def execute(self, pod, command):
        self.calls.append(ExecCall(pod_name=pod.metadata.name, command=list(command)))
        if self.error:
            raise self.error
        return self.stdout, self.stderr

    @property
    def call_count(self) -> int:
        return len(self.calls)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def controller_config():
    return ControllerConfig(
        namespace=NAMESPACE,
        pod_namespace=NAMESPACE,
        finalizer=FINALIZER,
        taint_key=TAINT_KEY,
        workers=2,
        requeue_after_seconds=0.01,
    )


@pytest.fixture
def fake_cluster():
    cluster = FakeCluster()
    cluster.add_pod("far-operator-abc12")
    return cluster


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def reconciler(fake_cluster, fake_executor, controller_config):
    return Reconciler(fake_cluster, fake_executor, controller_config)


@pytest.fixture
def mock_redis():
    """Create a mock async Redis client for leader election."""
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.get = AsyncMock(return_value=None)
    redis.eval = AsyncMock(return_value=1)
    redis.close = AsyncMock()
    return redis


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take a long time to run"
    )
