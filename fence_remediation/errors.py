"""
Remediation error taxonomy.

Every error carries a ``retryable`` flag. The controller redelivers
retryable failures after a fixed delay; the rest wait for the resource
to change.
"""

from typing import Optional


class RemediationError(Exception):
    """Base class for all remediation errors."""

    retryable = True


class NotFoundError(RemediationError):
    """The requested object does not exist (anymore)."""

    retryable = False


class ValidationError(RemediationError):
    """The remediation resource is malformed; retrying will not help."""

    retryable = False


class MissingParametersError(ValidationError):
    """sharedParameters or nodeParameters (or both) are missing."""

    def __init__(self, message: str = "nodeParameters or sharedParameters or both are missing, and they cannot be empty"):
        super().__init__(message)


class MissingNodeParameterError(ValidationError):
    """A node parameter has no value for the target node."""

    def __init__(self, parameter: str, node_name: str):
        self.parameter = parameter
        self.node_name = node_name
        super().__init__(
            f"node parameter {parameter} is required for node {node_name}, and cannot be empty"
        )


class TransientInfraError(RemediationError):
    """Infrastructure failure expected to clear up on redelivery."""

    retryable = True


class ConflictError(TransientInfraError):
    """Optimistic concurrency failure: the object changed since it was read."""


class PodNotFoundError(TransientInfraError):
    """No pod matched the remediation pod selector."""

    def __init__(self, namespace: str, selector: str):
        self.namespace = namespace
        self.selector = selector
        super().__init__(f"no pod matching {selector} found in namespace {namespace}")


class ExecutionError(TransientInfraError):
    """The fence agent could not be run to completion inside the pod."""


class UnexpectedResponseError(RemediationError):
    """The fence agent ran but its output is outside the success contract."""

    retryable = False

    def __init__(self, message: str, stdout: Optional[str] = "", stderr: Optional[str] = ""):
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)
