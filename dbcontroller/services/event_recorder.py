"""
Event recording for Database resources.

Events are informational: a failure to record one is logged and never fails
the reconciliation that produced it.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
import uuid

from kubernetes_asyncio import client
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from dbcontroller.config.logging import get_logger
from dbcontroller.config.settings import Settings, settings as default_settings
from dbcontroller.models import Database
from dbcontroller.utils.retry import is_retryable_k8s_error

logger = get_logger(__name__)

EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"


class EventRecorder(ABC):
    """Sink for events about a Database."""

    @abstractmethod
    async def event(self, obj: Database, event_type: str, reason: str, message: str) -> None:
        """Record an event. Must not raise."""


class KubernetesEventRecorder(EventRecorder):
    """Records core/v1 Events through the Kubernetes API."""

    def __init__(self, api_client: client.ApiClient, config: Settings = default_settings):
        self.core_api = client.CoreV1Api(api_client)
        self.component = config.event_component

    async def event(self, obj: Database, event_type: str, reason: str, message: str) -> None:
        try:
            await self._create(obj, event_type, reason, message)
        except Exception as e:
            logger.warning(
                "event_record_failed",
                database=obj.key,
                reason=reason,
                error_type=type(e).__name__,
                error=str(e),
            )
            return

        logger.debug("event_recorded", database=obj.key, type=event_type, reason=reason)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception(is_retryable_k8s_error),
        reraise=True,
    )
    async def _create(self, obj: Database, event_type: str, reason: str, message: str) -> None:
        now = datetime.now(timezone.utc)
        body = client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                name=f"{obj.name}.{uuid.uuid4().hex[:16]}",
                namespace=obj.namespace,
            ),
            involved_object=client.V1ObjectReference(
                api_version=obj.api_version,
                kind=obj.kind,
                name=obj.name,
                namespace=obj.namespace,
                uid=obj.metadata.uid or None,
                resource_version=obj.metadata.resource_version,
            ),
            type=event_type,
            reason=reason,
            message=message,
            source=client.V1EventSource(component=self.component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        await self.core_api.create_namespaced_event(namespace=obj.namespace, body=body)


__all__ = [
    "EVENT_TYPE_NORMAL",
    "EVENT_TYPE_WARNING",
    "EventRecorder",
    "KubernetesEventRecorder",
]
