"""
Resolve ValueSource references (secretKeyRef / configMapKeyRef) to strings.
"""
from dbcontroller.exceptions import ControllerError, ValueSourceError
from dbcontroller.models import ValueSource
from dbcontroller.repositories.object_store import Fetched, ObjectStore


async def get_value_from_source(store: ObjectStore, namespace: str, source: ValueSource) -> Fetched[str]:
    """
    Read the value a ValueSource points at.

    Args:
        store: Object store to read from
        namespace: Namespace of the referencing object
        source: Reference to a Secret or ConfigMap key

    Returns:
        FOUND with the value; NOT_FOUND if the referenced object does not exist;
        ERROR if the read failed or the object has no such key
    """
    if source.secret_key_ref is not None:
        ref, kind = source.secret_key_ref, "secret"
        fetched = await store.get_secret(namespace, ref.name)
    elif source.config_map_key_ref is not None:
        ref, kind = source.config_map_key_ref, "configmap"
        fetched = await store.get_config_map(namespace, ref.name)
    else:
        return Fetched.failed(ControllerError("value source has neither secretKeyRef nor configMapKeyRef"))

    if not fetched.is_found:
        return Fetched(fetched.kind, error=fetched.error)

    value = fetched.obj.data.get(ref.key)
    if value is None:
        return Fetched.failed(ValueSourceError(kind, ref.name, ref.key))
    return Fetched.found(value)
