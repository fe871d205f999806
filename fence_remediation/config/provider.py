"""Configuration provider following Black Box Design principles."""
import os
import socket
from dataclasses import dataclass
from typing import Optional, Protocol

DEFAULT_GROUP = "fence-agents-remediation.medik8s.io"
DEFAULT_VERSION = "v1alpha1"
DEFAULT_PLURAL = "fenceagentsremediations"
DEFAULT_FINALIZER = "fence-agents-remediation.medik8s.io/far-finalizer"
DEFAULT_TAINT_KEY = "medik8s.io/fence-agents-remediation"
DEFAULT_POD_LABEL_SELECTOR = "app=fence-agents-remediation-operator"
DEFAULT_LEASE_NAME = "cb305759.medik8s.io"


@dataclass(frozen=True)
class ControllerConfig:
    """Controller configuration, built once at startup and passed explicitly."""
    namespace: str = "default"
    pod_namespace: str = "default"
    pod_label_selector: str = DEFAULT_POD_LABEL_SELECTOR
    pod_container: Optional[str] = None
    group: str = DEFAULT_GROUP
    version: str = DEFAULT_VERSION
    plural: str = DEFAULT_PLURAL
    finalizer: str = DEFAULT_FINALIZER
    taint_key: str = DEFAULT_TAINT_KEY
    workers: int = 2
    requeue_after_seconds: float = 10.0
    request_timeout_seconds: float = 30.0
    exec_timeout_seconds: float = 120.0
    kubeconfig: Optional[str] = None


@dataclass(frozen=True)
class ProbeConfig:
    """Health probe server configuration."""
    host: str = "0.0.0.0"
    port: int = 8081
    log_level: str = "INFO"


@dataclass(frozen=True)
class LeaderElectionConfig:
    """Leader election configuration."""
    enabled: bool = False
    redis_url: str = "redis://localhost:6379/0"
    lease_name: str = DEFAULT_LEASE_NAME
    lease_seconds: int = 15
    renew_seconds: int = 5
    identity: str = "fence-agents-remediation"


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_controller_config(self) -> ControllerConfig:
        """Get controller configuration."""
        ...

    def get_probe_config(self) -> ProbeConfig:
        """Get probe server configuration."""
        ...

    def get_leader_election_config(self) -> LeaderElectionConfig:
        """Get leader election configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_controller_config(self) -> ControllerConfig:
        """Get controller configuration from environment variables."""
        pod_namespace = os.getenv("DEPLOYMENT_NAMESPACE", "default")
        workers = int(os.getenv("FAR_WORKERS", "2"))
        if workers < 1:
            raise ValueError(f"FAR_WORKERS must be at least 1, got {workers}")

        return ControllerConfig(
            namespace=os.getenv("WATCH_NAMESPACE") or pod_namespace,
            pod_namespace=pod_namespace,
            pod_label_selector=os.getenv("FAR_POD_LABEL_SELECTOR", DEFAULT_POD_LABEL_SELECTOR),
            pod_container=os.getenv("FAR_POD_CONTAINER") or None,
            workers=workers,
            requeue_after_seconds=float(os.getenv("FAR_REQUEUE_AFTER", "10")),
            request_timeout_seconds=float(os.getenv("FAR_REQUEST_TIMEOUT", "30")),
            exec_timeout_seconds=float(os.getenv("FAR_EXEC_TIMEOUT", "120")),
            kubeconfig=os.getenv("KUBECONFIG") or None,
        )

    def get_probe_config(self) -> ProbeConfig:
        """Get probe server configuration from environment variables."""
        return ProbeConfig(
            host=os.getenv("PROBE_HOST", "0.0.0.0"),
            port=int(os.getenv("HEALTH_PROBE_PORT", "8081")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def get_leader_election_config(self) -> LeaderElectionConfig:
        """Get leader election configuration from environment variables."""
        lease_seconds = int(os.getenv("LEASE_DURATION", "15"))
        renew_seconds = int(os.getenv("LEASE_RENEW", "5"))
        if renew_seconds >= lease_seconds:
            raise ValueError(
                f"LEASE_RENEW ({renew_seconds}s) must be shorter than LEASE_DURATION ({lease_seconds}s)"
            )

        return LeaderElectionConfig(
            enabled=os.getenv("LEADER_ELECT", "false").lower() == "true",
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            lease_name=os.getenv("LEASE_NAME", DEFAULT_LEASE_NAME),
            lease_seconds=lease_seconds,
            renew_seconds=renew_seconds,
            identity=os.getenv("POD_NAME") or os.getenv("HOSTNAME") or socket.gethostname(),
        )
