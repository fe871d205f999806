#!/usr/bin/env python3
"""
Fence Agents Remediation - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Optionally acquires leadership
4. Runs the controller next to the health probe server

All remediation logic is in the modules, following black box principles.
"""

import asyncio
import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Callable, Optional

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from fence_remediation import __version__
from fence_remediation.config.provider import ConfigProvider, ControllerConfig, EnvConfigProvider
from fence_remediation.logging_config import get_logging_config
from fence_remediation.modules.cluster import ClusterModule, load_kube_config
from fence_remediation.modules.controller import Controller
from fence_remediation.modules.executor import PodExecutor
from fence_remediation.modules.leader import LeaderElector
from fence_remediation.modules.reconciler import Reconciler

logger = logging.getLogger(__name__)


def build_controller(controller_config: ControllerConfig) -> Controller:
    """Wire the modules together (composition root)."""
    load_kube_config(controller_config.kubeconfig)

    cluster = ClusterModule(controller_config)
    executor = PodExecutor(
        cluster.core_v1,
        container=controller_config.pod_container,
        timeout_seconds=controller_config.exec_timeout_seconds,
    )
    reconciler = Reconciler(cluster, executor, controller_config)
    return Controller(reconciler, cluster, controller_config)


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    controller_factory: Callable[[ControllerConfig], Controller] = build_controller,
    watch: bool = True,
) -> FastAPI:
    """
    Create the probe application; the controller lives in its lifespan.

    Args:
        config_provider: Configuration source (environment by default)
        controller_factory: Builds the controller from its configuration
        watch: Start the watch thread together with the controller
    """
    config_provider = config_provider or EnvConfigProvider()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - initialize and cleanup resources.
        """
        logger.info(f"Starting Fence Agents Remediation operator version {__version__}")
        controller_config = config_provider.get_controller_config()
        election_config = config_provider.get_leader_election_config()

        controller = controller_factory(controller_config)
        app.state.controller = controller
        app.state.elector = None
        redis_client = None
        leader_task = None

        if election_config.enabled:
            redis_client = redis.from_url(election_config.redis_url, decode_responses=True)
            elector = LeaderElector(redis_client, election_config)
            app.state.elector = elector

            async def lead() -> None:
                # Re-enter the election after every loss
                while True:
                    await elector.acquire()
                    await controller.start(watch=watch)
                    await elector.run_renewal(on_lost=controller.stop)
                    logger.warning("Leadership lost, controller stopped; re-entering election")

            leader_task = asyncio.create_task(lead())
        else:
            logger.info("Leader election disabled")
            await controller.start(watch=watch)

        yield

        # Shutdown
        logger.info("Shutting down Fence Agents Remediation operator...")
        if leader_task:
            leader_task.cancel()
            await asyncio.gather(leader_task, return_exceptions=True)
        await controller.stop()
        if app.state.elector:
            try:
                await app.state.elector.release()
            except RedisError as e:
                logger.warning(f"Could not release leader lease, it will expire: {e}")
        if redis_client:
            await redis_client.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Fence Agents Remediation",
        description="Fences unhealthy Kubernetes nodes with fence agents",
        version=__version__,
        lifespan=lifespan,
    )

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """
        Liveness probe.

        Returns:
            200: Process is running
        """
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz(request: Request):
        """
        Readiness probe.

        Returns:
            200: Controller is running (this replica is the leader when election is on)
            503: Controller not started yet or leadership lost
        """
        controller = getattr(request.app.state, "controller", None)
        if controller and controller.running:
            return {"status": "ready"}
        return JSONResponse(status_code=503, content={"status": "not ready"})

    @app.get("/metrics")
    async def metrics(request: Request):
        """
        Prometheus-compatible metrics endpoint.

        Returns basic reconcile counters.
        """
        controller = getattr(request.app.state, "controller", None)
        if not controller:
            return Response(content="", status_code=503)

        elector = getattr(request.app.state, "elector", None)
        is_leader = 1 if (elector is None and controller.running) or (elector and elector.is_leader) else 0

        lines = []
        for name, value in controller.stats.items():
            lines.append(f"# HELP far_{name}_total Number of {name} since start")
            lines.append(f"# TYPE far_{name}_total counter")
            lines.append(f"far_{name}_total {value}")
        lines.append("# HELP far_leader Whether this replica runs the controller")
        lines.append("# TYPE far_leader gauge")
        lines.append(f"far_leader {is_leader}")

        return Response(content="\n".join(lines) + "\n", media_type="text/plain")

    return app


_probe_config = EnvConfigProvider().get_probe_config()
log_config.dictConfig(get_logging_config(_probe_config.log_level))

app = create_app()


def main():
    """Main entry point."""
    uvicorn.run(
        app,
        host=_probe_config.host,
        port=_probe_config.port,
        log_level=_probe_config.log_level.lower(),
        log_config=get_logging_config(_probe_config.log_level),
    )


if __name__ == "__main__":
    main()
