"""
Taint Module - Black Box Interface

Purpose: Remediation taint creation, detection and idempotent node updates
Interface: create_remediation_taint(), taint_exists(), TaintModule
Hidden: Node read-modify-write, taint list manipulation

The remediation taint doubles as the "fence agent already triggered" marker.
"""

from .taint import TaintModule, create_remediation_taint, taint_exists

__all__ = ["TaintModule", "create_remediation_taint", "taint_exists"]
