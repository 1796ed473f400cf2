"""
Pydantic models for DatabaseServer resources.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from dbcontroller.models.meta import ObjectMeta


class BackendSpec(BaseModel):
    """Backend-specific block of a DatabaseServer; its presence selects the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    image: Optional[str] = Field(default=None, description="Server image")
    version: Optional[str] = Field(default=None, description="Server version")


class DatabaseServerSpec(BaseModel):
    """Desired state of a database server instance."""

    model_config = ConfigDict(populate_by_name=True)

    host: str = Field(default="", description="Host name of an external server")
    db_host: str = Field(default="", alias="dbHost", description="Host name advertised to clients")
    service_port: int = Field(default=0, alias="servicePort", ge=0, le=65535, description="Service port")
    postgres: Optional[BackendSpec] = Field(default=None, description="PostgreSQL backend")
    mysql: Optional[BackendSpec] = Field(default=None, alias="mySQL", description="MySQL backend")


class DatabaseServer(BaseModel):
    """DatabaseServer custom resource. Read-only to the controller."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="atlasdb.infoblox.com/v1alpha1", alias="apiVersion")
    kind: str = Field(default="DatabaseServer")
    metadata: ObjectMeta
    spec: DatabaseServerSpec = Field(default_factory=DatabaseServerSpec)

    @property
    def name(self) -> str:
        return self.metadata.name

    def active_backend(self) -> Optional[str]:
        """Backend identifier declared by the server, if any."""
        if self.spec.postgres is not None:
            return "postgres"
        if self.spec.mysql is not None:
            return "mysql"
        return None

    @property
    def endpoint_host(self) -> str:
        """Host clients should connect to; the service name when none is declared."""
        return self.spec.db_host or self.spec.host or self.metadata.name

    @classmethod
    def from_endpoint(cls, name: str, namespace: str, host: str, port: int) -> "DatabaseServer":
        """Describe a server known only by an address parsed from a DSN."""
        return cls(
            metadata=ObjectMeta(name=name, namespace=namespace),
            spec=DatabaseServerSpec(host=host, service_port=port),
        )
