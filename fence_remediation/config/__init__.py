"""Configuration for the fence agents remediation controller."""

from .provider import (
    ConfigProvider,
    ControllerConfig,
    EnvConfigProvider,
    LeaderElectionConfig,
    ProbeConfig,
)

__all__ = [
    "ConfigProvider",
    "ControllerConfig",
    "EnvConfigProvider",
    "LeaderElectionConfig",
    "ProbeConfig",
]
