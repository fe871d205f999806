"""
FenceAgentsRemediation reconciliation.

One pass of the state machine:

    Fetching -> NodeValidating -> LifecycleHandling -> Tainting
        -> ParameterBuilding -> Executing -> ResponseValidating -> Done

Any RemediationError raised along the way is the Error state; the caller
decides whether to redeliver based on the error's ``retryable`` flag.

Known gap: if the process dies after the taint is written but before the
fence agent succeeds, the next pass sees the taint as pre-existing and does
not run the agent again. The node stays tainted until the resource is deleted.

Known gap: a request deleted after its node left the cluster keeps its
finalizer. NodeValidating ends the pass before LifecycleHandling gets to
strip it; the finalizer has to be removed by hand.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...config.provider import ControllerConfig
from ...errors import NotFoundError, RemediationError, UnexpectedResponseError
from ..executor import Executor, get_remediation_pod
from ..lifecycle import LifecycleManager, LifecycleOutcome
from ..params import build_fence_agent_params
from ..taint import TaintModule, create_remediation_taint

logger = logging.getLogger(__name__)

# Printed by fence agents on a successful reboot. Only verification tooling
# matches on it; the reconciler checks the response shape.
SUCCESS_FA_RESPONSE = "Success: Rebooted"


class ReconcileState(str, Enum):
    """States of a single reconciliation pass."""

    FETCHING = "Fetching"
    NODE_VALIDATING = "NodeValidating"
    LIFECYCLE_HANDLING = "LifecycleHandling"
    TAINTING = "Tainting"
    PARAMETER_BUILDING = "ParameterBuilding"
    EXECUTING = "Executing"
    RESPONSE_VALIDATING = "ResponseValidating"
    DONE = "Done"
    ERROR = "Error"


@dataclass
class ReconcileResult:
    """Outcome of a pass that reached Done."""

    name: str
    last_state: ReconcileState
    reason: str
    executed: bool = False
    command: List[str] = field(default_factory=list)
    output: Optional[str] = None


def validate_agent_response(stdout: str, stderr: str) -> None:
    """
    Check the fence agent output shape: empty stderr and non-empty stdout.

    Raises:
        UnexpectedResponseError: For any other combination
    """
    if stderr or not stdout:
        raise UnexpectedResponseError(
            f"unknown fence agent response - expecting `{SUCCESS_FA_RESPONSE}` response, "
            f"but we received `{stdout}` (stderr: `{stderr}`)",
            stdout=stdout,
            stderr=stderr,
        )


class Reconciler:
    def __init__(
        self,
        cluster,
        executor: Executor,
        controller_config: ControllerConfig,
        taints: Optional[TaintModule] = None,
        lifecycle: Optional[LifecycleManager] = None,
    ):
        """
        Initialize reconciler.

        Args:
            cluster: ClusterModule (or any object with the same interface)
            executor: Runs the fence agent inside the operator pod
            controller_config: Namespaces, selector, finalizer and taint key
            taints: TaintModule (built from controller_config if omitted)
            lifecycle: LifecycleManager (built from controller_config if omitted)
        """
        self.cluster = cluster
        self.executor = executor
        self.config = controller_config
        self.taints = taints or TaintModule(
            cluster, create_remediation_taint(controller_config.taint_key)
        )
        self.lifecycle = lifecycle or LifecycleManager(
            cluster, self.taints, controller_config.finalizer
        )

    async def reconcile(self, name: str) -> ReconcileResult:
        """
        Run one reconciliation pass for the remediation resource (and node) `name`.

        Returns:
            ReconcileResult once the pass reaches Done

        Raises:
            RemediationError: The pass ended in the Error state
        """
        logger.info(f"Begin FenceAgentsRemediation reconcile for {name}")
        state = ReconcileState.FETCHING
        try:
            try:
                far = await self.cluster.get_remediation(name)
            except NotFoundError:
                logger.info(f"FenceAgentsRemediation {name} was not found, it may have been deleted")
                return ReconcileResult(name, state, "remediation not found")

            state = self._enter(name, ReconcileState.NODE_VALIDATING)
            if not await self.cluster.is_node_name_valid(name):
                logger.error(f"Didn't find a node matching the FenceAgentsRemediation name {name}")
                return ReconcileResult(name, state, "no matching node")

            state = self._enter(name, ReconcileState.LIFECYCLE_HANDLING)
            outcome = await self.lifecycle.handle(far)
            if outcome is not LifecycleOutcome.PROCEED:
                return ReconcileResult(name, state, outcome.value)

            state = self._enter(name, ReconcileState.TAINTING)
            try:
                node = await self.cluster.get_node(name)
            except NotFoundError:
                logger.info(f"Node {name} disappeared during reconcile")
                return ReconcileResult(name, state, "node not found")

            # Snapshot before the write: the write itself can't tell first pass from retry.
            already_tainted = self.taints.is_tainted(node)
            logger.info(f"Add remediation taint to node {name} (fence agent {far.spec.agent})")
            await self.taints.append_taint(node)

            if already_tainted:
                logger.info(
                    f"Remediation taint was already present on node {name}, "
                    f"fence agent will not be executed again"
                )
                return ReconcileResult(name, state, "remediation already triggered")

            state = self._enter(name, ReconcileState.PARAMETER_BUILDING)
            params = build_fence_agent_params(far.spec, name)
            command = [far.spec.agent] + params

            state = self._enter(name, ReconcileState.EXECUTING)
            pod = await get_remediation_pod(
                self.cluster, self.config.pod_namespace, self.config.pod_label_selector
            )
            logger.info(f"Execute fence agent {far.spec.agent} for node {name} in pod {pod.metadata.name}")
            stdout, stderr = await self.executor.execute(pod, command)

            state = self._enter(name, ReconcileState.RESPONSE_VALIDATING)
            validate_agent_response(stdout, stderr)
            logger.info(f"Fence agent {far.spec.agent} succeeded for node {name}: {stdout.strip()}")

            return ReconcileResult(
                name, state, "fence agent executed", executed=True, command=command, output=stdout
            )

        except RemediationError as e:
            kind = "retryable" if e.retryable else "non-retryable"
            logger.error(f"Reconcile of {name} failed in state {state.value} ({kind}): {e}")
            raise
        finally:
            logger.info(f"Finish FenceAgentsRemediation reconcile for {name}")

    @staticmethod
    def _enter(name: str, state: ReconcileState) -> ReconcileState:
        logger.debug(f"{name}: entering {state.value}")
        return state
