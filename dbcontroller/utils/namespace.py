"""
Utility functions for namespace/name reconciliation keys.
"""
import re
from typing import Tuple

from dbcontroller.exceptions import InvalidKeyError

# DNS-1123 subdomain, as used for namespaces and object names
_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9.]*[a-z0-9])?$")


def meta_namespace_key(namespace: str, name: str) -> str:
    """
    Build the reconciliation key of an object.

    Examples:
        meta_namespace_key("default", "orders") -> "default/orders"
    """
    return f"{namespace}/{name}"


def split_meta_namespace_key(key: str) -> Tuple[str, str]:
    """
    Split a reconciliation key into namespace and name.

    Args:
        key: Key in ``namespace/name`` form

    Returns:
        Tuple of (namespace, name)

    Raises:
        InvalidKeyError: If the key does not have exactly two valid parts

    Examples:
        split_meta_namespace_key("default/orders") -> ("default", "orders")
        split_meta_namespace_key("orders") -> InvalidKeyError
        split_meta_namespace_key("a/b/c") -> InvalidKeyError
    """
    parts = key.split("/")
    if len(parts) != 2:
        raise InvalidKeyError(key)

    namespace, name = parts
    if len(name) > 253 or len(namespace) > 63:
        raise InvalidKeyError(key)
    if not _NAME_PATTERN.match(namespace) or not _NAME_PATTERN.match(name):
        raise InvalidKeyError(key)
    return namespace, name
