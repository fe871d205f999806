"""
Tests for the probe application and controller lifespan.
"""

import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from fence_remediation.config.provider import LeaderElectionConfig, ProbeConfig
from fence_remediation.main import create_app
from fence_remediation.modules.controller import Controller
from fence_remediation.modules.leader.election import RELEASE_SCRIPT
from fence_remediation.modules.reconciler import Reconciler


class StaticConfigProvider:
    def __init__(self, controller_config, election_config=None):
        self.controller_config = controller_config
        self.election_config = election_config or LeaderElectionConfig(enabled=False)

    def get_controller_config(self):
        return self.controller_config

    def get_probe_config(self):
        return ProbeConfig()

    def get_leader_election_config(self):
        return self.election_config


@pytest.fixture
def controller_factory(fake_cluster, fake_executor):
    def factory(config):
        return Controller(Reconciler(fake_cluster, fake_executor, config), fake_cluster, config)
    return factory


@pytest.fixture
def app(controller_config, controller_factory):
    return create_app(
        config_provider=StaticConfigProvider(controller_config),
        controller_factory=controller_factory,
        watch=False,
    )


def wait_ready(client, attempts=100):
    for _ in range(attempts):
        response = client.get("/readyz")
        if response.status_code == 200:
            return response
        time.sleep(0.01)
    return response


def test_healthz(app):
    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readyz_when_controller_running(app):
    with TestClient(app) as client:
        response = client.get("/readyz")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_readyz_when_controller_stopped(app):
    with TestClient(app) as client:
        app.state.controller.running = False
        response = client.get("/readyz")
        app.state.controller.running = True

    assert response.status_code == 503
    assert response.json() == {"status": "not ready"}


def test_readyz_without_lifespan(app):
    """Without the lifespan no controller exists yet."""
    client = TestClient(app)
    response = client.get("/readyz")

    assert response.status_code == 503


def test_metrics(app):
    with TestClient(app) as client:
        app.state.controller.stats["executions"] = 3
        response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "# TYPE far_reconciles_total counter" in response.text
    assert "far_executions_total 3" in response.text
    assert "far_leader 1" in response.text


def test_controller_stopped_on_shutdown(app):
    with TestClient(app):
        controller = app.state.controller
        assert controller.running is True

    assert controller.running is False


def test_leader_election(controller_config, controller_factory, mock_redis):
    election_config = LeaderElectionConfig(
        enabled=True,
        lease_seconds=5,
        renew_seconds=1,
        identity="far-operator-abc12",
    )
    app = create_app(
        config_provider=StaticConfigProvider(controller_config, election_config),
        controller_factory=controller_factory,
        watch=False,
    )

    with patch("fence_remediation.main.redis.from_url", return_value=mock_redis):
        with TestClient(app) as client:
            response = wait_ready(client)
            metrics = client.get("/metrics")

    assert response.status_code == 200
    assert "far_leader 1" in metrics.text
    mock_redis.set.assert_called_once()
    mock_redis.eval.assert_any_call(
        RELEASE_SCRIPT, 1, "leader:lease:cb305759.medik8s.io", "far-operator-abc12"
    )
    mock_redis.close.assert_awaited_once()


def test_not_ready_while_waiting_for_lease(controller_config, controller_factory, mock_redis):
    mock_redis.set.return_value = None
    mock_redis.get.return_value = "far-operator-xyz99"
    election_config = LeaderElectionConfig(enabled=True, lease_seconds=5, renew_seconds=1)
    app = create_app(
        config_provider=StaticConfigProvider(controller_config, election_config),
        controller_factory=controller_factory,
        watch=False,
    )

    with patch("fence_remediation.main.redis.from_url", return_value=mock_redis):
        with TestClient(app) as client:
            response = client.get("/readyz")
            metrics = client.get("/metrics")

    assert response.status_code == 503
    assert "far_leader 0" in metrics.text
    mock_redis.eval.assert_not_called()


def test_leader_reacquires_after_losing_lease(controller_config, fake_cluster, fake_executor, mock_redis):
    """A replica that loses the lease competes again and restarts its controller."""
    starts = []

    class CountingController(Controller):
        async def start(self, watch=True):
            starts.append(watch)
            await super().start(watch=watch)

    renewals = iter([0])
    mock_redis.eval.side_effect = lambda *args: next(renewals, 1)
    election_config = LeaderElectionConfig(
        enabled=True,
        lease_seconds=5,
        renew_seconds=0.05,
        identity="far-operator-abc12",
    )
    app = create_app(
        config_provider=StaticConfigProvider(controller_config, election_config),
        controller_factory=lambda cfg: CountingController(
            Reconciler(fake_cluster, fake_executor, cfg), fake_cluster, cfg
        ),
        watch=False,
    )

    with patch("fence_remediation.main.redis.from_url", return_value=mock_redis):
        with TestClient(app) as client:
            for _ in range(200):
                if len(starts) >= 2:
                    break
                time.sleep(0.01)
            response = wait_ready(client)

    assert len(starts) >= 2
    assert response.status_code == 200


def test_redis_error_while_waiting_for_lease(controller_config, controller_factory, mock_redis):
    """A Redis outage on a standby replica does not end its election loop."""
    mock_redis.set.side_effect = [RedisConnectionError("connection refused"), True]
    election_config = LeaderElectionConfig(enabled=True, lease_seconds=5, renew_seconds=0.05)
    app = create_app(
        config_provider=StaticConfigProvider(controller_config, election_config),
        controller_factory=controller_factory,
        watch=False,
    )

    with patch("fence_remediation.main.redis.from_url", return_value=mock_redis):
        with TestClient(app) as client:
            response = wait_ready(client)

    assert response.status_code == 200
    assert mock_redis.set.call_count == 2
