"""
Database watcher.

Streams Database resources from the Kubernetes API and turns ADDED and MODIFIED
events into reconciliation keys. A fresh stream starts with a synthetic ADDED
event per existing Database, so every restart also resyncs what is already
there. The stream is restarted with backoff whenever it ends or fails.
"""
import asyncio
from typing import Any, Dict, Optional

import aiohttp
from kubernetes_asyncio import client, watch
from kubernetes_asyncio.client import ApiException

from dbcontroller.config.logging import get_logger
from dbcontroller.config.settings import Settings, settings as default_settings
from dbcontroller.core.work_queue import WorkQueue
from dbcontroller.services import metrics
from dbcontroller.utils.namespace import meta_namespace_key

logger = get_logger(__name__)

ENQUEUE_EVENT_TYPES = frozenset({"ADDED", "MODIFIED"})


class DatabaseWatcher:
    """Watches Database resources and enqueues their keys."""

    def __init__(
        self,
        api_client: client.ApiClient,
        queue: WorkQueue,
        config: Settings = default_settings,
        initial_backoff: float = 1.0,
        max_backoff: float = 60.0,
    ):
        self.custom_api = client.CustomObjectsApi(api_client)
        self.queue = queue
        self.group = config.crd_group
        self.version = config.crd_version
        self.plural = config.database_plural
        self.namespace = config.watch_namespace
        self.timeout_seconds = config.watch_timeout_seconds
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._watch: Optional[watch.Watch] = None

    async def start(self):
        """Start the watch loop in the background."""
        if self.running:
            logger.warning("database_watcher_already_running")
            return

        self.running = True
        self._task = asyncio.create_task(self._watch_loop(), name="database-watcher")
        logger.info("database_watcher_started", namespace=self.namespace or "*")

    async def stop(self):
        """Stop watching."""
        if not self.running:
            return

        logger.info("database_watcher_stopping")
        self.running = False
        if self._watch is not None:
            self._watch.stop()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("database_watcher_stopped")

    async def _watch_loop(self):
        backoff = self.initial_backoff
        while self.running:
            try:
                await self._watch_once()
                backoff = self.initial_backoff
            except asyncio.CancelledError:
                raise
            except ApiException as e:
                if e.status == 410:
                    # resource version expired, relist right away
                    logger.info("database_watch_expired")
                    metrics.watch_restarts_total.inc()
                    continue
                logger.warning("database_watch_failed", status=e.status, error=e.reason, retry_in=backoff)
                backoff = await self._backoff(backoff)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.warning(
                    "database_watch_failed",
                    error_type=type(e).__name__,
                    error=str(e),
                    retry_in=backoff,
                )
                backoff = await self._backoff(backoff)

    async def _backoff(self, delay: float) -> float:
        metrics.watch_restarts_total.inc()
        await asyncio.sleep(delay)
        return min(delay * 2, self.max_backoff)

    def _stream(self):
        kwargs: Dict[str, Any] = {
            "group": self.group,
            "version": self.version,
            "plural": self.plural,
            "timeout_seconds": self.timeout_seconds,
        }
        if self.namespace:
            return self._watch.stream(
                self.custom_api.list_namespaced_custom_object,
                namespace=self.namespace,
                **kwargs,
            )
        return self._watch.stream(self.custom_api.list_cluster_custom_object, **kwargs)

    async def _watch_once(self):
        self._watch = watch.Watch()
        try:
            async with self._stream() as stream:
                async for event in stream:
                    self.handle_event(event)
        finally:
            self._watch = None
        logger.debug("database_watch_stream_ended")

    def handle_event(self, event: Dict[str, Any]) -> Optional[str]:
        """
        Enqueue the key of a watch event's object.

        Returns:
            The enqueued key, or None if the event was ignored
        """
        event_type = event.get("type", "")
        metrics.watch_events_total.labels(type=event_type or "UNKNOWN").inc()
        if event_type not in ENQUEUE_EVENT_TYPES:
            return None

        metadata = (event.get("object") or {}).get("metadata") or {}
        name = metadata.get("name")
        if not name:
            logger.warning("database_watch_event_without_name", event_type=event_type)
            return None

        key = meta_namespace_key(metadata.get("namespace") or "default", name)
        self.queue.add(key)
        metrics.queue_depth.set(len(self.queue))
        logger.debug("database_enqueued", key=key, event_type=event_type)
        return key
