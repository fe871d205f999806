import asyncio
import logging
import threading
from typing import Dict, List, Optional, Set

from ...config.provider import ControllerConfig
from ...errors import RemediationError

logger = logging.getLogger(__name__)


class Controller:
    """
    Watches FenceAgentsRemediation resources and feeds names to reconcile workers.

    Requests for the same name are coalesced: a name is queued at most once
    and reconciled by at most one worker at a time. An event arriving while
    the name is being reconciled re-queues it when that pass ends.
    """

    WATCH_JOIN_TIMEOUT = 2.0

    def __init__(
        self,
        reconciler,
        cluster,
        controller_config: ControllerConfig,
        watch_timeout_seconds: int = 300,
    ):
        """
        Initialize controller.

        Args:
            reconciler: Reconciler handling one name per call
            cluster: ClusterModule providing the watch stream
            controller_config: Worker count and requeue delay
            watch_timeout_seconds: Server side timeout of one watch call
        """
        self.reconciler = reconciler
        self.cluster = cluster
        self.config = controller_config
        self.watch_timeout_seconds = watch_timeout_seconds

        self.stats: Dict[str, int] = {"reconciles": 0, "errors": 0, "requeues": 0, "executions": 0}
        self.running = False

        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._dirty: Set[str] = set()
        self._workers: List[asyncio.Task] = []
        self._timers: Set[asyncio.TimerHandle] = set()
        self._stop = threading.Event()
        self._watch_thread: Optional[threading.Thread] = None

    async def start(self, watch: bool = True) -> None:
        """
        Start reconcile workers and, unless disabled, the watch thread.

        Args:
            watch: Start the watch thread (tests enqueue names directly)
        """
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        # Fresh flag per start; a thread left behind by stop() keeps its own
        self._stop = threading.Event()

        for worker_id in range(self.config.workers):
            self._workers.append(asyncio.create_task(self._worker(worker_id)))

        self.running = True
        if watch:
            self._watch_thread = threading.Thread(
                target=self._watch, args=(self._stop,), name="far-watch", daemon=True
            )
            self._watch_thread.start()

        logger.info(f"Controller started with {self.config.workers} workers in namespace {self.config.namespace}")

    async def stop(self) -> None:
        """Stop the watch thread, pending timers and workers."""
        if not self.running:
            return
        self.running = False
        self._stop.set()

        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._pending.clear()
        self._dirty.clear()
        self._in_flight.clear()

        if self._watch_thread:
            # The thread notices the stop flag on its next event or watch timeout
            await asyncio.to_thread(self._watch_thread.join, self.WATCH_JOIN_TIMEOUT)
            if self._watch_thread.is_alive():
                logger.warning("Watch thread still blocked in a watch call, leaving it behind")
            self._watch_thread = None
        logger.info("Controller stopped")

    async def wait_idle(self) -> None:
        """Block until every queued name has been processed."""
        await self._queue.join()

    def enqueue(self, name: str) -> None:
        """Queue a reconcile request; must be called from the event loop thread."""
        if not self.running:
            return
        if name in self._in_flight:
            self._dirty.add(name)
            return
        if name in self._pending:
            return
        self._pending.add(name)
        self._queue.put_nowait(name)

    def enqueue_after(self, name: str, delay: float) -> None:
        """Queue a reconcile request after a delay."""
        self.stats["requeues"] += 1

        def fire():
            self._timers.discard(timer)
            if self.running:
                self.enqueue(name)

        timer = self._loop.call_later(delay, fire)
        self._timers.add(timer)

    async def _worker(self, worker_id: int) -> None:
        logger.debug(f"Reconcile worker {worker_id} started")
        while True:
            name = await self._queue.get()
            self._pending.discard(name)
            self._in_flight.add(name)
            try:
                await self._process(name)
            except Exception as e:
                logger.exception(f"Unexpected error reconciling {name}: {e}")
                self.stats["errors"] += 1
                self.enqueue_after(name, self.config.requeue_after_seconds)
            finally:
                self._in_flight.discard(name)
                if name in self._dirty:
                    self._dirty.discard(name)
                    self.enqueue(name)
                self._queue.task_done()

    async def _process(self, name: str) -> None:
        self.stats["reconciles"] += 1
        try:
            result = await self.reconciler.reconcile(name)
        except RemediationError as e:
            self.stats["errors"] += 1
            if e.retryable:
                logger.info(f"Requeue {name} in {self.config.requeue_after_seconds}s after: {e}")
                self.enqueue_after(name, self.config.requeue_after_seconds)
            else:
                logger.warning(f"Not requeuing {name}, the resource must change first: {e}")
            return

        if result.executed:
            self.stats["executions"] += 1
        logger.debug(f"Reconcile of {name} done: {result.reason}")

    def _watch(self, stop: threading.Event) -> None:
        """
        Watch loop; runs in its own thread.

        Reconnects after errors and whenever the server closes the watch.
        Every (re)connect lists all existing objects again as ADDED events.
        """
        logger.info("Watch started")
        while not stop.is_set():
            try:
                self._watch_once(stop)
            except Exception as e:
                logger.error(f"Watch connection error: {e}")
                logger.info("Reconnecting in 5 seconds...")
                stop.wait(5)
        logger.info("Watch stopped")

    def _watch_once(self, stop: Optional[threading.Event] = None) -> None:
        """Consume one watch call until the server ends it or an ERROR event arrives."""
        stop = stop or self._stop
        for event in self.cluster.stream_remediation_events(self.watch_timeout_seconds):
            if stop.is_set():
                return
            if event.get("type") == "ERROR":
                logger.warning(f"Watch error event: {event.get('raw_object')}")
                return

            obj = event.get("object") or {}
            name = obj.get("metadata", {}).get("name")
            if name:
                logger.debug(f"Watch event {event.get('type')} for {name}")
                self._loop.call_soon_threadsafe(self.enqueue, name)
