"""Unit tests for the Kubernetes API backed resource store."""

from unittest import mock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from kubepress.errors import NotFoundError, StoreConflictError, StoreError
from kubepress.store import ResourceStore


@pytest.fixture(name="resource_store")
def resource_store_fixture():
    """A store whose typed APIs are replaced by mocks."""
    store = ResourceStore(client.ApiClient())
    store._apis = {"core": mock.MagicMock(), "apps": mock.MagicMock()}
    store.custom_api = mock.MagicMock()
    return store


def test_get_returns_camel_case_dict(resource_store):
    """
    arrange: given the API returns a typed ConfigMap model.
    act: read it through the store.
    assert: the result is a manifest dict using the API's field names.
    """
    core = resource_store._apis["core"]
    core.read_namespaced_config_map.return_value = client.V1ConfigMap(
        metadata=client.V1ObjectMeta(name="blog--php", namespace="default", resource_version="7"),
        data={"php.ini": "a = 1\n"},
    )

    result = resource_store.get("ConfigMap", "default", "blog--php")

    core.read_namespaced_config_map.assert_called_once_with(name="blog--php", namespace="default")
    assert result["metadata"]["resourceVersion"] == "7"
    assert result["data"] == {"php.ini": "a = 1\n"}


def test_get_not_found(resource_store):
    resource_store._apis["apps"].read_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")

    with pytest.raises(NotFoundError) as excinfo:
        resource_store.get("Deployment", "default", "blog")

    assert excinfo.value.kind == "Deployment"
    assert excinfo.value.name == "blog"


def test_update_conflict(resource_store):
    resource_store._apis["core"].replace_namespaced_persistent_volume_claim.side_effect = ApiException(
        status=409, reason="Conflict"
    )

    with pytest.raises(StoreConflictError):
        resource_store.update("PersistentVolumeClaim", "default", {"metadata": {"name": "blog"}})


def test_other_errors(resource_store):
    resource_store._apis["core"].create_namespaced_service.side_effect = ApiException(
        status=500, reason="Internal Server Error"
    )

    with pytest.raises(StoreError) as excinfo:
        resource_store.create("Service", "default", {"metadata": {"name": "blog"}})

    assert excinfo.value.status == 500
    assert not isinstance(excinfo.value, (NotFoundError, StoreConflictError))


def test_create_passes_body(resource_store):
    body = {"metadata": {"name": "blog"}, "spec": {}}
    resource_store._apis["apps"].create_namespaced_deployment.return_value = body

    assert resource_store.create("Deployment", "sites", body) == body
    resource_store._apis["apps"].create_namespaced_deployment.assert_called_once_with(
        namespace="sites", body=body
    )


def test_get_site(resource_store):
    resource_store.custom_api.get_namespaced_custom_object.return_value = {"metadata": {"name": "blog"}}

    assert resource_store.get("WordPressSite", "default", "blog") == {"metadata": {"name": "blog"}}
    resource_store.custom_api.get_namespaced_custom_object.assert_called_once_with(
        group="kubepress.io", version="v1", namespace="default", plural="wordpresssites", name="blog"
    )


def test_patch_status(resource_store):
    resource_store.custom_api.patch_namespaced_custom_object_status.return_value = {}

    resource_store.patch_status("default", "blog", {"observedGeneration": 2})

    resource_store.custom_api.patch_namespaced_custom_object_status.assert_called_once_with(
        group="kubepress.io",
        version="v1",
        namespace="default",
        plural="wordpresssites",
        name="blog",
        body={"status": {"observedGeneration": 2}},
    )


def test_unsupported_kind(resource_store):
    with pytest.raises(ValueError):
        resource_store.get("Ingress", "default", "blog")


def test_update_passes_name_and_namespace(resource_store):
    body = {"metadata": {"name": "blog--php", "resourceVersion": "3"}, "data": {}}
    core = resource_store._apis["core"]
    core.replace_namespaced_config_map.return_value = body

    assert resource_store.update("ConfigMap", "sites", body) == body
    core.replace_namespaced_config_map.assert_called_once_with(name="blog--php", namespace="sites", body=body)
