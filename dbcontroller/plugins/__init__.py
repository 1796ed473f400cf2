from dbcontroller.plugins.base import DatabasePlugin
from dbcontroller.plugins.registry import PluginRegistry, default_registry

__all__ = [
    "DatabasePlugin",
    "PluginRegistry",
    "default_registry",
]
