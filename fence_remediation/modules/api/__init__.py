"""
API Module - Black Box Interface

Purpose: Data models for the FenceAgentsRemediation resource and node taints
Interface: FenceAgentsRemediation.from_k8s(), to_k8s(), finalizer helpers
Hidden: Field aliases of the persisted resource schema

Every other module exchanges these models, never raw API dictionaries.
"""

from .models import (
    FenceAgentsRemediation,
    ObjectMeta,
    RemediationSpec,
    Taint,
    TaintEffect,
)

__all__ = [
    "FenceAgentsRemediation",
    "ObjectMeta",
    "RemediationSpec",
    "Taint",
    "TaintEffect",
]
