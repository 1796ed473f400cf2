"""
Plugin registry.

Maps backend identifiers (a Database's ``serverType`` or a DatabaseServer's
declared backend) to plugin instances. Unknown backends resolve to None; the
reconciler turns that into a misconfiguration.
"""
from typing import Callable, Dict, List, Optional

from dbcontroller.config.settings import Settings, settings as default_settings
from dbcontroller.models import DatabaseServer
from dbcontroller.plugins.base import DatabasePlugin
from dbcontroller.plugins.mysql import MySQLPlugin
from dbcontroller.plugins.postgres import PostgresPlugin

PluginFactory = Callable[[], DatabasePlugin]

# Alternative spellings accepted in serverType
BACKEND_ALIASES = {
    "postgresql": "postgres",
    "pg": "postgres",
    "mariadb": "mysql",
}


class PluginRegistry:
    """Resolve backend identifiers to database plugins."""

    def __init__(self):
        self._factories: Dict[str, PluginFactory] = {}
        self._instances: Dict[str, DatabasePlugin] = {}

    @staticmethod
    def normalize(backend: str) -> str:
        name = backend.strip().lower()
        return BACKEND_ALIASES.get(name, name)

    def register(self, backend: str, factory: PluginFactory) -> None:
        name = self.normalize(backend)
        self._factories[name] = factory
        self._instances.pop(name, None)

    @property
    def backends(self) -> List[str]:
        return sorted(self._factories)

    def get(self, backend: str) -> Optional[DatabasePlugin]:
        """Plugin for ``backend``, or None if nothing is registered for it."""
        name = self.normalize(backend)
        if name not in self._factories:
            return None
        if name not in self._instances:
            self._instances[name] = self._factories[name]()
        return self._instances[name]

    def for_server(self, server: DatabaseServer) -> Optional[DatabasePlugin]:
        """Plugin for the backend the server declares, or None."""
        backend = server.active_backend()
        if backend is None:
            return None
        return self.get(backend)


def default_registry(config: Settings = default_settings) -> PluginRegistry:
    """Registry with the built-in PostgreSQL and MySQL plugins."""
    registry = PluginRegistry()
    registry.register(
        PostgresPlugin.backend,
        lambda: PostgresPlugin(connect_timeout=config.plugin_connect_timeout),
    )
    registry.register(
        MySQLPlugin.backend,
        lambda: MySQLPlugin(connect_timeout=config.plugin_connect_timeout),
    )
    return registry
