"""Unit tests for parsing WordPressSite objects."""

from kubepress.config import OperatorConfig
from kubepress.site import WordPressSite


def test_from_crd(site_obj):
    site = WordPressSite.from_crd(site_obj)

    assert site.key == "default/blog"
    assert site.generation == 1
    assert site.admin_user_secret_ref == "blog-credentials"
    assert site.wordpress.image == "wordpress:6.5-apache"
    assert site.wordpress.storage_size == "5Gi"
    assert site.wordpress.resources.memory_limit == "256Mi"
    assert site.ingress.host == "blog.example.com"


def test_defaults_for_missing_fields():
    """
    arrange: given a site with an almost empty spec.
    act: parse it.
    assert: defaults are filled in for every optional value.
    """
    site = WordPressSite.from_crd({
        "metadata": {"name": "minimal", "namespace": "sites"},
        "spec": {"wordpress": {"image": "wordpress:latest", "replicas": 0}},
    })

    assert site.wordpress.replicas == 1
    assert site.wordpress.storage_size == "10Gi"
    assert site.wordpress.max_upload_limit == "64M"
    assert site.wordpress.resources.to_requirements() == {
        "requests": {"cpu": "100m", "memory": "128Mi"},
        "limits": {"cpu": "500m", "memory": "256Mi"},
    }
    assert site.ingress is None
    assert site.conditions == []


def test_site_url():
    site = WordPressSite.from_crd({"metadata": {"name": "blog"}, "spec": {}})
    assert site.site_url == "http://blog"

    site = WordPressSite.from_crd({"metadata": {"name": "blog"}, "spec": {"ingress": {"host": "blog.io"}}})
    assert site.site_url == "http://blog.io"

    site = WordPressSite.from_crd(
        {"metadata": {"name": "blog"}, "spec": {"ingress": {"host": "blog.io", "tls": True}}}
    )
    assert site.site_url == "https://blog.io"


def test_env_and_php_config_values_are_strings():
    site = WordPressSite.from_crd({
        "metadata": {"name": "blog"},
        "spec": {"wordpress": {
            "phpConfig": {"max_input_vars": 5000},
            "env": [{"name": "WP_DEBUG", "value": True}, {"name": "EMPTY"}],
        }},
    })

    assert site.wordpress.php_config == {"max_input_vars": "5000"}
    assert site.wordpress.env == [{"name": "WP_DEBUG", "value": "True"}, {"name": "EMPTY", "value": ""}]


def test_owner_reference(site):
    assert site.owner_reference() == {
        "apiVersion": "kubepress.io/v1",
        "kind": "WordPressSite",
        "name": "blog",
        "uid": site.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def test_operator_config_from_env():
    config = OperatorConfig.from_env({"STORAGE_CLASS_NAME": "nfs", "VERSION": "2.0.0", "WORKERS": "8"})

    assert config.storage_class_name == "nfs"
    assert config.version == "2.0.0"
    assert config.workers == 8
    assert config.namespace == ""
