"""Fixtures for KubePress operator tests."""

import copy

import pytest

from kubepress.config import OperatorConfig
from kubepress.site import WordPressSite
from tests.fakes import FakeStore

SITE_OBJECT = {
    "apiVersion": "kubepress.io/v1",
    "kind": "WordPressSite",
    "metadata": {
        "name": "blog",
        "namespace": "default",
        "uid": "0b7c9c64-5d4c-4c0e-9a51-3f1f3c1d2e77",
        "generation": 1,
        "labels": {"team": "web", "app.kubernetes.io/managed-by": "someone-else"},
    },
    "spec": {
        "adminUserSecretKeyRef": "blog-credentials",
        "siteTitle": "My Blog",
        "adminEmail": "admin@example.com",
        "ingress": {"host": "blog.example.com", "tls": True},
        "wordpress": {
            "image": "wordpress:6.5-apache",
            "replicas": 1,
            "storageSize": "5Gi",
            "resources": {
                "cpuRequest": "100m",
                "memoryRequest": "128Mi",
                "cpuLimit": "500m",
                "memoryLimit": "256Mi",
            },
        },
    },
}

CREDENTIALS_SECRET = {
    "apiVersion": "v1",
    "kind": "Secret",
    "metadata": {"name": "blog-credentials", "namespace": "default"},
    "data": {},
}


@pytest.fixture(scope="function", name="store")
def store_fixture():
    """An empty in-memory store holding only the credentials secret."""
    store = FakeStore()
    store.add("Secret", CREDENTIALS_SECRET)
    return store


@pytest.fixture(scope="function", name="operator_config")
def operator_config_fixture():
    return OperatorConfig(version="1.2.3")


@pytest.fixture(scope="function", name="site_obj")
def site_obj_fixture():
    """A fresh copy of the example WordPressSite custom object."""
    return copy.deepcopy(SITE_OBJECT)


@pytest.fixture(scope="function", name="site")
def site_fixture(site_obj):
    return WordPressSite.from_crd(site_obj)
