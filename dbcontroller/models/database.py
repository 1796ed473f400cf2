"""
Pydantic models for Database resources.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dbcontroller.models.meta import ObjectMeta, OwnerReference

ADMIN_ROLE = "admin"


class DatabaseState(str, Enum):
    """Reconciliation state reported in Database.status.state."""

    PENDING = "Pending"
    ERROR = "Error"
    SUCCESS = "Success"
    CREATED = "Created"


class KeySelector(BaseModel):
    """Selects one key of a Secret or ConfigMap."""

    name: str = Field(..., description="Name of the referenced object")
    key: str = Field(..., description="Key within the object's data")


class ValueSource(BaseModel):
    """Reference to a value stored in a Secret or a ConfigMap."""

    model_config = ConfigDict(populate_by_name=True)

    secret_key_ref: Optional[KeySelector] = Field(default=None, alias="secretKeyRef")
    config_map_key_ref: Optional[KeySelector] = Field(default=None, alias="configMapKeyRef")

    @property
    def source_name(self) -> str:
        """Name of the object the value is read from."""
        ref = self.secret_key_ref or self.config_map_key_ref
        return ref.name if ref else ""


class DatabaseUser(BaseModel):
    """A user declared on a Database."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Username")
    role: str = Field(default="", description="Role, 'admin' users get a credential secret")
    password: str = Field(default="", description="Literal password")
    password_from: Optional[ValueSource] = Field(
        default=None, alias="passwordFrom", description="Password read from a Secret or ConfigMap"
    )

    @field_validator("role", "password", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class DatabaseSpec(BaseModel):
    """Desired state of a logical database."""

    model_config = ConfigDict(populate_by_name=True)

    server: str = Field(default="", description="DatabaseServer in the same namespace")
    server_type: str = Field(default="", alias="serverType", description="Backend used when no server is set")
    dsn: str = Field(default="", description="Literal DSN override")
    dsn_from: Optional[ValueSource] = Field(default=None, alias="dsnFrom", description="DSN read from a value source")
    users: List[DatabaseUser] = Field(default_factory=list, description="Users in declared order")

    @field_validator("server", "server_type", "dsn", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """An explicit null in the manifest means unset."""
        return "" if v is None else v

    @field_validator("users", mode="before")
    @classmethod
    def null_as_no_users(cls, v: Any) -> Any:
        return [] if v is None else v


class DatabaseStatus(BaseModel):
    """Observed state of a Database."""

    state: Optional[DatabaseState] = Field(default=None, description="Reconciliation state")
    message: str = Field(default="", description="Human-readable detail")


class Database(BaseModel):
    """Database custom resource."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="atlasdb.infoblox.com/v1alpha1", alias="apiVersion")
    kind: str = Field(default="Database")
    metadata: ObjectMeta
    spec: DatabaseSpec = Field(default_factory=DatabaseSpec)
    status: DatabaseStatus = Field(default_factory=DatabaseStatus)

    @field_validator("spec", "status", mode="before")
    @classmethod
    def null_as_default(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    def controller_reference(self) -> OwnerReference:
        """Owner reference that marks a derived object as controlled by this Database."""
        return OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.metadata.name,
            uid=self.metadata.uid,
            controller=True,
            block_owner_deletion=True,
        )

    def to_k8s(self) -> Dict[str, Any]:
        """Serialize to the wire representation."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ResolvedUser(BaseModel):
    """A user with its password resolved for a single reconciliation attempt."""

    model_config = ConfigDict(frozen=True)

    name: str
    role: str = ""
    password: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class ResolvedDatabase(BaseModel):
    """
    Immutable view of a Database handed to plugins.

    Built fresh for every attempt so the stored spec is never rewritten.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str
    users: Tuple[ResolvedUser, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def admin_users(self) -> Tuple[ResolvedUser, ...]:
        return tuple(user for user in self.users if user.is_admin)
