"""
Controller configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main controller settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Database Controller", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment (development/staging/production)")
    log_level: str = Field(default="INFO", description="Logging level")

    # Health / metrics server
    host: str = Field(default="0.0.0.0", description="Health server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Health server port")

    # Kubernetes
    kubeconfig_path: Optional[str] = Field(
        default=None, description="Path to kubeconfig file (None for in-cluster)"
    )
    k8s_in_cluster: bool = Field(default=False, description="Running inside Kubernetes cluster")
    watch_namespace: Optional[str] = Field(
        default=None, description="Namespace to watch (None watches all namespaces)"
    )
    watch_timeout_seconds: int = Field(
        default=300, ge=10, le=3600, description="Server-side timeout of a single watch stream"
    )

    # Custom resources
    crd_group: str = Field(default="atlasdb.infoblox.com", description="API group of Database resources")
    crd_version: str = Field(default="v1alpha1", description="API version of Database resources")
    database_plural: str = Field(default="databases", description="Plural name of the Database resource")
    server_plural: str = Field(default="databaseservers", description="Plural name of the DatabaseServer resource")
    event_component: str = Field(default="database-controller", description="Source component for emitted events")

    # Work queue
    num_workers: int = Field(default=2, ge=1, le=32, description="Number of concurrent reconciliation workers")
    requeue_base_delay: float = Field(
        default=0.005, gt=0, description="Initial per-key requeue delay in seconds"
    )
    requeue_max_delay: float = Field(
        default=1000.0, gt=0, description="Maximum per-key requeue delay in seconds"
    )

    # Plugins
    plugin_connect_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds when plugins connect to a database server"
    )

    # Monitoring
    prometheus_enabled: bool = Field(default=True, description="Expose Prometheus metrics")
    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")
    sentry_traces_sample_rate: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Sentry traces sample rate"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = ["development", "staging", "production", "testing"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
