"""
Leader Module - Black Box Interface

Purpose: Make sure only one controller replica fences nodes at a time
Interface: acquire(), renew(), release(), run_renewal(), is_leader
Hidden: Redis lease keys, compare-and-set scripts

Can be replaced with a Kubernetes Lease based implementation.
"""

from .election import LeaderElector

__all__ = ["LeaderElector"]
