"""
Tests for the Kubernetes object store adapter with mocked API objects.
"""
import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from kubernetes_asyncio.client import ApiException

from dbcontroller.exceptions import StoreConflictError, StoreError
from dbcontroller.repositories.kubernetes_store import KubernetesObjectStore
from tests.fakes import make_database, make_secret


@pytest.fixture
def k8s_store():
    store = KubernetesObjectStore(MagicMock())
    store.custom_api = MagicMock()
    store.core_api = MagicMock()
    return store


def database_body(**status):
    return {
        "apiVersion": "atlasdb.infoblox.com/v1alpha1",
        "kind": "Database",
        "metadata": {"name": "orders", "namespace": "default", "uid": "u-1", "resourceVersion": "7"},
        "spec": {"serverType": "postgres", "users": [{"name": "app", "role": "admin"}]},
        "status": status,
    }


@pytest.mark.asyncio
async def test_get_database_found(k8s_store):
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(return_value=database_body())

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_found
    assert fetched.obj.spec.server_type == "postgres"
    assert fetched.obj.metadata.resource_version == "7"
    kwargs = k8s_store.custom_api.get_namespaced_custom_object.await_args.kwargs
    assert kwargs["plural"] == "databases"


@pytest.mark.asyncio
async def test_get_database_not_found(k8s_store):
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(
        side_effect=ApiException(status=404, reason="Not Found")
    )

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_not_found


@pytest.mark.asyncio
async def test_get_database_forbidden_is_an_error(k8s_store):
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(
        side_effect=ApiException(status=403, reason="Forbidden")
    )

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_error
    assert isinstance(fetched.error, StoreError)
    assert fetched.error.status == 403


@pytest.mark.asyncio
async def test_malformed_object_is_an_error(k8s_store):
    body = database_body()
    body["spec"]["users"] = "not-a-list"
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(return_value=body)

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_error


@pytest.mark.asyncio
async def test_secret_data_is_decoded(k8s_store):
    k8s_store.core_api.read_namespaced_secret = AsyncMock(return_value={
        "metadata": {"name": "pg", "namespace": "default"},
        "data": {"dsn": base64.b64encode(b"postgres://su:pw@pg:5432/").decode()},
    })

    fetched = await k8s_store.get_secret("default", "pg")

    assert fetched.obj.data == {"dsn": "postgres://su:pw@pg:5432/"}


@pytest.mark.asyncio
async def test_create_secret_sends_string_data_and_owner(k8s_store):
    owner = make_database()
    owner.metadata.uid = "u-1"
    k8s_store.core_api.create_namespaced_secret = AsyncMock(return_value={
        "metadata": {"name": "orders", "namespace": "default"},
        "data": {"dsn": base64.b64encode(b"x").decode()},
    })

    created = await k8s_store.create_secret(make_secret("orders", {"dsn": "x"}, owner=owner))

    body = k8s_store.core_api.create_namespaced_secret.await_args.kwargs["body"]
    assert body["stringData"] == {"dsn": "x"}
    assert body["metadata"]["ownerReferences"][0]["uid"] == "u-1"
    assert body["metadata"]["ownerReferences"][0]["controller"] is True
    assert created.data == {"dsn": "x"}


@pytest.mark.asyncio
async def test_create_secret_failure_raises_store_error(k8s_store):
    k8s_store.core_api.create_namespaced_secret = AsyncMock(
        side_effect=ApiException(status=409, reason="AlreadyExists")
    )

    with pytest.raises(StoreError):
        await k8s_store.create_secret(make_secret("orders", {"dsn": "x"}))


@pytest.mark.asyncio
async def test_status_conflict_raises_conflict_error(k8s_store):
    k8s_store.custom_api.replace_namespaced_custom_object_status = AsyncMock(
        side_effect=ApiException(status=409, reason="Conflict")
    )

    with pytest.raises(StoreConflictError):
        await k8s_store.update_database_status(make_database())


@pytest.mark.asyncio
async def test_status_update_sends_status_subresource(k8s_store):
    k8s_store.custom_api.replace_namespaced_custom_object_status = AsyncMock(
        return_value=database_body(state="Success", message="ok")
    )
    db = make_database(serverType="postgres")
    db.status.message = "ok"

    updated = await k8s_store.update_database_status(db)

    body = k8s_store.custom_api.replace_namespaced_custom_object_status.await_args.kwargs["body"]
    assert body["status"]["message"] == "ok"
    assert updated.status.state.value == "Success"


@pytest.mark.asyncio
async def test_null_spec_fields_read_as_unset(k8s_store):
    body = database_body()
    body["spec"] = {"server": None, "serverType": None, "dsn": None, "users": None}
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(return_value=body)

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_found
    spec = fetched.obj.spec
    assert (spec.server, spec.server_type, spec.dsn, spec.users) == ("", "", "", [])


@pytest.mark.asyncio
async def test_null_spec_and_status_read_as_empty(k8s_store):
    body = database_body()
    body["spec"] = None
    body["status"] = None
    k8s_store.custom_api.get_namespaced_custom_object = AsyncMock(return_value=body)

    fetched = await k8s_store.get_database("default", "orders")

    assert fetched.is_found
    assert fetched.obj.spec.users == []
    assert fetched.obj.status.state is None
