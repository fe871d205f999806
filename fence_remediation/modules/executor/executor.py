import asyncio
import logging
from typing import List, Optional, Protocol, Tuple

import websocket
from kubernetes import client, stream
from kubernetes.client.rest import ApiException

from ...errors import ExecutionError

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Protocol for fence agent executors - allows swappable implementations."""

    async def execute(self, pod: client.V1Pod, command: List[str]) -> Tuple[str, str]:
        """
        Run a command inside a pod.

        Args:
            pod: Pod to run the command in
            command: Agent followed by its arguments

        Returns:
            Tuple of (stdout, stderr)

        Raises:
            ExecutionError: The command could not be run to completion
        """
        ...


class PodExecutor:
    """Executor that runs commands through the pods/exec subresource."""

    def __init__(
        self,
        core_v1: Optional[client.CoreV1Api] = None,
        container: Optional[str] = None,
        timeout_seconds: float = 120.0,
    ):
        """
        Initialize pod executor.

        Args:
            core_v1: CoreV1Api used to open the exec stream
            container: Container to exec into (the pod's default if None)
            timeout_seconds: Max seconds to wait for the agent to exit
        """
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.container = container
        self.timeout_seconds = timeout_seconds

    async def execute(self, pod: client.V1Pod, command: List[str]) -> Tuple[str, str]:
        return await asyncio.to_thread(self._run, pod, command)

    def _run(self, pod: client.V1Pod, command: List[str]) -> Tuple[str, str]:
        """Blocking exec; called from a worker thread."""
        name = pod.metadata.name
        namespace = pod.metadata.namespace
        logger.debug(f"Running {command[0]} in pod {namespace}/{name}")

        kwargs = {}
        if self.container:
            kwargs["container"] = self.container

        try:
            resp = stream.stream(
                self.core_v1.connect_get_namespaced_pod_exec,
                name,
                namespace,
                command=command,
                stderr=True,
                stdin=False,
                stdout=True,
                tty=False,
                _preload_content=False,
                **kwargs,
            )
        except (ApiException, websocket.WebSocketException, OSError) as e:
            raise ExecutionError(f"failed to exec into pod {namespace}/{name}: {e}") from e

        try:
            resp.run_forever(timeout=self.timeout_seconds)
            if resp.is_open():
                raise ExecutionError(
                    f"{command[0]} did not finish within {self.timeout_seconds}s"
                )

            stdout = resp.read_stdout()
            stderr = resp.read_stderr()
            returncode = self._read_returncode(resp, command[0])
        except (websocket.WebSocketException, OSError) as e:
            raise ExecutionError(f"exec stream to pod {namespace}/{name} failed: {e}") from e
        finally:
            resp.close()

        if returncode:
            raise ExecutionError(
                f"{command[0]} exited with code {returncode}: {stderr.strip() or stdout.strip()}"
            )
        return stdout, stderr

    @staticmethod
    def _read_returncode(resp, agent: str) -> int:
        """
        Exit code from the exec error channel.

        The channel carries a non-numeric cause when the command could not be
        started at all, e.g. a missing agent binary.
        """
        try:
            return resp.returncode
        except (ValueError, KeyError, TypeError, IndexError) as e:
            raise ExecutionError(f"{agent} could not be run: {e}") from e
