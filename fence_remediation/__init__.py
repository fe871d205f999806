"""
Fence Agents Remediation - Kubernetes Node Fencing Controller

Reboots unhealthy nodes out-of-band by running a fence agent inside the
operator pod whenever a FenceAgentsRemediation resource names the node.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- api: Resource data models
- params: Fence agent argument assembly
- taint: Remediation taint primitives
- lifecycle: Finalizer and deletion handling
- cluster: Kubernetes API access
- executor: Fence agent execution inside the operator pod
- reconciler: Remediation state machine
- controller: Watch and work queue
- leader: Leader election
"""

__version__ = "0.1.0"
