"""
Executor Module - Black Box Interface

Purpose: Run a fence agent inside the operator pod and return its raw output
Interface: Executor.execute(pod, command) -> (stdout, stderr), get_remediation_pod()
Hidden: Pod exec streaming, timeouts, exit code handling

Can be replaced with different execution mechanisms (local subprocess, SSH, test fakes).
"""

from .executor import Executor, PodExecutor
from .pods import get_remediation_pod

__all__ = ["Executor", "PodExecutor", "get_remediation_pod"]
