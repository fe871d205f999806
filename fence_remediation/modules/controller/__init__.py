"""
Controller Module - Black Box Interface

Purpose: Deliver reconcile requests for remediation resources
Interface: start(), stop(), enqueue(), stats
Hidden: Watch thread, coalescing work queue, requeue timers

Can be replaced with any at-least-once delivery mechanism.
"""

from .controller import Controller

__all__ = ["Controller"]
