"""
Reconciliation worker pool.

Drains the work queue with a fixed number of asyncio tasks. Each key is handed
to the DatabaseReconciler; the result decides whether the key is forgotten or
re-added with backoff.
"""
import asyncio
import time
from typing import List, Optional

from dbcontroller.config.logging import get_logger
from dbcontroller.core.state_machine import ReconcileResult
from dbcontroller.core.work_queue import WorkQueue
from dbcontroller.services import metrics
from dbcontroller.services.database_reconciler import DatabaseReconciler

logger = get_logger(__name__)


class ReconciliationWorker:
    """
    Processes reconciliation keys from the work queue.

    Features:
    - One in-flight reconciliation per key (enforced by the queue)
    - Parallelism across keys (``num_workers`` tasks)
    - Rate-limited requeue of keys that ask for it
    - Graceful shutdown
    """

    def __init__(self, queue: WorkQueue, reconciler: DatabaseReconciler, num_workers: int = 2):
        """
        Initialize reconciliation worker.

        Args:
            queue: Queue the keys are taken from
            reconciler: Reconciler invoked for every key
            num_workers: Number of concurrent worker tasks
        """
        self.queue = queue
        self.reconciler = reconciler
        self.num_workers = num_workers
        self.running = False
        self._tasks: List[asyncio.Task] = []

    async def start(self):
        """Start worker tasks (returns immediately)."""
        if self.running:
            logger.warning("reconciliation_worker_already_running")
            return

        self.running = True
        self._tasks = [
            asyncio.create_task(self._run(worker_id), name=f"reconcile-worker-{worker_id}")
            for worker_id in range(self.num_workers)
        ]
        logger.info("reconciliation_worker_started", num_workers=self.num_workers)

    async def stop(self):
        """Stop worker tasks gracefully, letting in-flight keys finish."""
        if not self.running:
            return

        logger.info("stopping_reconciliation_worker")
        self.running = False
        self.queue.shutdown()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("reconciliation_worker_stopped")

    async def _run(self, worker_id: int):
        while self.running:
            key = await self.queue.get()
            if key is None:
                break
            try:
                await self.process_key(key)
            finally:
                self.queue.done(key)
                metrics.queue_depth.set(len(self.queue))

        logger.debug("reconciliation_worker_task_exited", worker_id=worker_id)

    async def process_key(self, key: str) -> Optional[ReconcileResult]:
        """
        Reconcile one key and apply the queue policy.

        Returns:
            The reconcile result, or None if the reconciler raised
        """
        started = time.monotonic()
        try:
            result = await self.reconciler.sync_database(key)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            metrics.reconcile_errors_total.inc()
            metrics.reconcile_total.labels(result="exception").inc()
            logger.error("reconcile_unexpected_error", key=key, error=str(e), exc_info=True)
            self._requeue(key)
            return None

        label = "dropped" if result.dropped else result.kind.value
        metrics.reconcile_total.labels(result=label).inc()
        metrics.reconcile_duration_seconds.labels(result=label).observe(time.monotonic() - started)

        if result.requeue:
            self._requeue(key)
        else:
            self.queue.forget(key)
        return result

    def _requeue(self, key: str):
        delay = self.queue.add_rate_limited(key)
        metrics.queue_requeue_total.inc()
        logger.debug(
            "reconcile_requeued",
            key=key,
            delay_seconds=delay,
            attempts=self.queue.num_requeues(key),
        )
