from dbcontroller.models.database import (
    Database,
    DatabaseSpec,
    DatabaseState,
    DatabaseStatus,
    DatabaseUser,
    ResolvedDatabase,
    ResolvedUser,
    ValueSource,
)
from dbcontroller.models.meta import ObjectMeta, OwnerReference
from dbcontroller.models.secret import ConfigMap, Secret
from dbcontroller.models.server import DatabaseServer

__all__ = [
    "ConfigMap",
    "Database",
    "DatabaseServer",
    "DatabaseSpec",
    "DatabaseState",
    "DatabaseStatus",
    "DatabaseUser",
    "ObjectMeta",
    "OwnerReference",
    "ResolvedDatabase",
    "ResolvedUser",
    "Secret",
    "ValueSource",
]
