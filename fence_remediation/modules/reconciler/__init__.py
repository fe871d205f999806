"""
Reconciler Module - Black Box Interface

Purpose: Decide whether, when and with which arguments the fence agent runs
Interface: Reconciler.reconcile(name) -> ReconcileResult
Hidden: State transitions, idempotency gate, response validation

The fence agent runs at most once per remediation taint lifetime.
"""

from .reconciler import (
    SUCCESS_FA_RESPONSE,
    ReconcileResult,
    ReconcileState,
    Reconciler,
    validate_agent_response,
)

__all__ = [
    "SUCCESS_FA_RESPONSE",
    "ReconcileResult",
    "ReconcileState",
    "Reconciler",
    "validate_agent_response",
]
