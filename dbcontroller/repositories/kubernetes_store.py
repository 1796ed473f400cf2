"""
Kubernetes implementation of the object store.

Reads go straight to the API server; transient API failures (408/429/5xx) are
retried a few times with tenacity before the read is reported as an ERROR
result. Everything longer-lived is left to the work queue.
"""
import asyncio
import base64
from typing import Any, Callable, Dict, TypeVar

import aiohttp
from kubernetes_asyncio import client
from kubernetes_asyncio.client import ApiException
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from dbcontroller.config.logging import get_logger
from dbcontroller.config.settings import Settings, settings as default_settings
from dbcontroller.exceptions import StoreConflictError, StoreError
from dbcontroller.models import ConfigMap, Database, DatabaseServer, ObjectMeta, Secret
from dbcontroller.repositories.object_store import Fetched, ObjectStore
from dbcontroller.utils.retry import is_retryable_k8s_error

logger = get_logger(__name__)

T = TypeVar("T")


def _decode_secret_data(data: Dict[str, str]) -> Dict[str, str]:
    return {
        key: base64.b64decode(value).decode("utf-8", errors="replace")
        for key, value in (data or {}).items()
    }


class KubernetesObjectStore(ObjectStore):
    """Object store backed by the Kubernetes API."""

    def __init__(self, api_client: client.ApiClient, config: Settings = default_settings):
        self.api_client = api_client
        self.custom_api = client.CustomObjectsApi(api_client)
        self.core_api = client.CoreV1Api(api_client)
        self.group = config.crd_group
        self.version = config.crd_version
        self.database_plural = config.database_plural
        self.server_plural = config.server_plural

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception(is_retryable_k8s_error),
        reraise=True,
    )
    async def _read(self, func: Callable[..., Any], **kwargs) -> Any:
        return await func(**kwargs)

    async def _fetch(
        self,
        kind: str,
        namespace: str,
        name: str,
        func: Callable[..., Any],
        convert: Callable[[Any], T],
        /,
        **kwargs,
    ) -> Fetched[T]:
        try:
            raw = await self._read(func, **kwargs)
        except ApiException as e:
            if e.status == 404:
                return Fetched.not_found()
            logger.error(
                "k8s_object_get_failed",
                kind=kind,
                namespace=namespace,
                name=name,
                status=e.status,
                error=e.reason,
            )
            return Fetched.failed(
                StoreError(f"failed to get {kind} '{namespace}/{name}': {e.reason}", status=e.status)
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("k8s_object_get_failed", kind=kind, namespace=namespace, name=name, error=str(e))
            return Fetched.failed(StoreError(f"failed to get {kind} '{namespace}/{name}': {e}"))

        try:
            return Fetched.found(convert(raw))
        except ValidationError as e:
            logger.error("k8s_object_invalid", kind=kind, namespace=namespace, name=name, error=str(e))
            return Fetched.failed(StoreError(f"invalid {kind} '{namespace}/{name}': {e}"))

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self.api_client.sanitize_for_serialization(obj)

    def _secret_from_k8s(self, obj: Any) -> Secret:
        raw = self._to_dict(obj)
        return Secret(
            metadata=ObjectMeta.model_validate(raw.get("metadata") or {}),
            type=raw.get("type") or "Opaque",
            data=_decode_secret_data(raw.get("data")),
        )

    def _config_map_from_k8s(self, obj: Any) -> ConfigMap:
        raw = self._to_dict(obj)
        return ConfigMap(
            metadata=ObjectMeta.model_validate(raw.get("metadata") or {}),
            data=raw.get("data") or {},
        )

    async def get_database(self, namespace: str, name: str) -> Fetched[Database]:
        return await self._fetch(
            "Database", namespace, name,
            self.custom_api.get_namespaced_custom_object,
            Database.model_validate,
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.database_plural,
            name=name,
        )

    async def get_database_server(self, namespace: str, name: str) -> Fetched[DatabaseServer]:
        return await self._fetch(
            "DatabaseServer", namespace, name,
            self.custom_api.get_namespaced_custom_object,
            DatabaseServer.model_validate,
            group=self.group,
            version=self.version,
            namespace=namespace,
            plural=self.server_plural,
            name=name,
        )

    async def get_secret(self, namespace: str, name: str) -> Fetched[Secret]:
        return await self._fetch(
            "Secret", namespace, name,
            self.core_api.read_namespaced_secret,
            self._secret_from_k8s,
            name=name,
            namespace=namespace,
        )

    async def get_config_map(self, namespace: str, name: str) -> Fetched[ConfigMap]:
        return await self._fetch(
            "ConfigMap", namespace, name,
            self.core_api.read_namespaced_config_map,
            self._config_map_from_k8s,
            name=name,
            namespace=namespace,
        )

    async def create_secret(self, secret: Secret) -> Secret:
        metadata = secret.metadata.model_dump(by_alias=True, exclude_none=True)
        metadata.pop("uid", None)
        body = {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": metadata,
            "type": secret.type,
            "stringData": dict(secret.data),
        }
        try:
            created = await self.core_api.create_namespaced_secret(
                namespace=secret.metadata.namespace,
                body=body,
            )
        except ApiException as e:
            logger.error(
                "k8s_secret_create_failed",
                namespace=secret.metadata.namespace,
                name=secret.metadata.name,
                status=e.status,
                error=e.reason,
            )
            raise StoreError(
                f"failed to create Secret '{secret.metadata.namespace}/{secret.metadata.name}': {e.reason}",
                status=e.status,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StoreError(
                f"failed to create Secret '{secret.metadata.namespace}/{secret.metadata.name}': {e}"
            )

        logger.info("k8s_secret_created", namespace=secret.metadata.namespace, name=secret.metadata.name)
        return self._secret_from_k8s(created)

    async def update_database_status(self, database: Database) -> Database:
        try:
            result = await self.custom_api.replace_namespaced_custom_object_status(
                group=self.group,
                version=self.version,
                namespace=database.namespace,
                plural=self.database_plural,
                name=database.name,
                body=database.to_k8s(),
            )
        except ApiException as e:
            if e.status == 409:
                raise StoreConflictError("Database", database.namespace, database.name)
            raise StoreError(
                f"failed to update status of Database '{database.key}': {e.reason}",
                status=e.status,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StoreError(f"failed to update status of Database '{database.key}': {e}")

        return Database.model_validate(result)
