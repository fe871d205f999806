"""
Params Module - Black Box Interface

Purpose: Turn a remediation spec into fence agent command line arguments
Interface: build_fence_agent_params()
Hidden: Flag formatting rules, per-node value resolution

Pure functions only; no cluster access.
"""

from .builder import build_fence_agent_params, format_param

__all__ = ["build_fence_agent_params", "format_param"]
