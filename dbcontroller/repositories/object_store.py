"""
Object store contract.

The reconciler reads and writes Database, DatabaseServer, Secret and ConfigMap
objects only through ``ObjectStore``. Reads return a ``Fetched`` result tagged
FOUND, NOT_FOUND or ERROR so callers branch on a closed set of kinds instead of
probing exception types. Writes raise ``StoreError`` (``StoreConflictError`` on
a resource-version mismatch).

Objects returned by a store may be shared with other reconciliations and must
be treated as read-only; copy before mutating.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from dbcontroller.exceptions import ControllerError
from dbcontroller.models import ConfigMap, Database, DatabaseServer, Secret

T = TypeVar("T")


class FetchKind(str, Enum):
    """Outcome of a read."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class Fetched(Generic[T]):
    """Tagged result of a read: the object, a not-found marker, or an error."""

    kind: FetchKind
    obj: Optional[T] = None
    error: Optional[ControllerError] = None

    @classmethod
    def found(cls, obj: T) -> "Fetched[T]":
        return cls(FetchKind.FOUND, obj=obj)

    @classmethod
    def not_found(cls) -> "Fetched[T]":
        return cls(FetchKind.NOT_FOUND)

    @classmethod
    def failed(cls, error: ControllerError) -> "Fetched[T]":
        return cls(FetchKind.ERROR, error=error)

    @property
    def is_found(self) -> bool:
        return self.kind is FetchKind.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.kind is FetchKind.NOT_FOUND

    @property
    def is_error(self) -> bool:
        return self.kind is FetchKind.ERROR


class ObjectStore(ABC):
    """Read/write access to the resources the controller works with."""

    @abstractmethod
    async def get_database(self, namespace: str, name: str) -> Fetched[Database]:
        """Fetch a Database."""

    @abstractmethod
    async def get_database_server(self, namespace: str, name: str) -> Fetched[DatabaseServer]:
        """Fetch a DatabaseServer."""

    @abstractmethod
    async def get_secret(self, namespace: str, name: str) -> Fetched[Secret]:
        """Fetch a Secret with decoded data."""

    @abstractmethod
    async def get_config_map(self, namespace: str, name: str) -> Fetched[ConfigMap]:
        """Fetch a ConfigMap."""

    @abstractmethod
    async def create_secret(self, secret: Secret) -> Secret:
        """
        Create a Secret.

        Raises:
            StoreError: If the secret could not be created
        """

    @abstractmethod
    async def update_database_status(self, database: Database) -> Database:
        """
        Replace the status subresource of a Database.

        The update is checked against ``database.metadata.resource_version``.

        Raises:
            StoreConflictError: If the stored object has a newer version
            StoreError: For any other failure
        """
