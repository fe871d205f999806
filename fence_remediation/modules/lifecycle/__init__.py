"""
Lifecycle Module - Black Box Interface

Purpose: Finalizer attach/detach and deletion cleanup for remediation resources
Interface: LifecycleManager.handle() -> LifecycleOutcome
Hidden: Finalizer bookkeeping, taint cleanup on deletion
"""

from .lifecycle import LifecycleManager, LifecycleOutcome

__all__ = ["LifecycleManager", "LifecycleOutcome"]
