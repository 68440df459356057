"""Unit tests for quantity conversion and comparison helpers."""

import pytest

from kubepress.errors import FormatError, UnsupportedUnitError, ValidationError
from kubepress.utils import (
    k8s_memory_to_php_memory,
    quantities_equal,
    resource_lists_equal,
    resources_equal,
    set_owner_reference,
    validate_resources,
)


@pytest.mark.parametrize(
    "quantity, expected",
    [
        ("65536Ki", "64M"),
        ("2Gi", "2048M"),
        ("128Mi", "128M"),
        ("1500Ki", "1M"),
        ("1023Ki", "0M"),
    ],
)
def test_k8s_memory_to_php_memory(quantity, expected):
    """
    arrange: given a Kubernetes memory quantity with a binary suffix.
    act: convert it to PHP notation.
    assert: the value is expressed in whole megabytes, truncated.
    """
    assert k8s_memory_to_php_memory(quantity) == expected


@pytest.mark.parametrize("quantity", ["10Xi", "256M", "1.5Gi", "1Ti"])
def test_k8s_memory_to_php_memory_unsupported_unit(quantity):
    with pytest.raises(UnsupportedUnitError):
        k8s_memory_to_php_memory(quantity)


@pytest.mark.parametrize("quantity", ["", "Mi", "256", "abc", "12 Mi"])
def test_k8s_memory_to_php_memory_bad_format(quantity):
    with pytest.raises(FormatError):
        k8s_memory_to_php_memory(quantity)


def test_conversion_errors_are_validation_errors():
    with pytest.raises(ValidationError):
        k8s_memory_to_php_memory("10Xi")


def test_resource_lists_equal():
    """
    arrange: given identical and differing resource lists.
    act: compare them.
    assert: only numerically identical lists with the same names are equal.
    """
    current = {"cpu": "500m", "memory": "256Mi"}
    assert resource_lists_equal(current, {"cpu": "500m", "memory": "256Mi"})
    assert not resource_lists_equal(current, {"cpu": "500m", "memory": "512Mi"})
    assert not resource_lists_equal(current, {"cpu": "500m"})
    assert not resource_lists_equal({"cpu": "500m"}, current)


def test_resource_lists_equal_compares_numerically():
    assert resource_lists_equal({"cpu": "0.5", "memory": "1Gi"}, {"cpu": "500m", "memory": "1024Mi"})
    assert resource_lists_equal(None, {})


def test_resources_equal():
    desired = {
        "requests": {"cpu": "100m", "memory": "128Mi"},
        "limits": {"cpu": "500m", "memory": "256Mi"},
    }
    assert resources_equal(
        {"limits": {"memory": "256Mi", "cpu": "0.5"}, "requests": {"memory": "128Mi", "cpu": "0.1"}},
        desired,
    )
    assert not resources_equal({"requests": desired["requests"]}, desired)
    assert not resources_equal(None, desired)


def test_quantities_equal_with_missing_side():
    assert quantities_equal(None, None)
    assert not quantities_equal(None, "5Gi")
    assert quantities_equal("5Gi", "5120Mi")


def test_validate_resources_rejects_malformed_quantity():
    with pytest.raises(ValidationError):
        validate_resources({"limits": {"cpu": "lots"}})


def test_set_owner_reference():
    """
    arrange: given an object owned by something else.
    act: set the site as controller owner, twice.
    assert: the reference is appended once and the second call is a no-op.
    """
    owner = {"apiVersion": "kubepress.io/v1", "kind": "WordPressSite", "name": "blog", "uid": "abc",
             "controller": True, "blockOwnerDeletion": True}
    obj = {"metadata": {"ownerReferences": [{"kind": "Other", "uid": "zzz", "name": "x"}]}}

    assert set_owner_reference(obj, owner)
    assert not set_owner_reference(obj, owner)
    assert obj["metadata"]["ownerReferences"][1] == owner
    assert len(obj["metadata"]["ownerReferences"]) == 2


def test_set_owner_reference_repairs_modified_reference():
    owner = {"kind": "WordPressSite", "name": "blog", "uid": "abc", "controller": True}
    obj = {"metadata": {"ownerReferences": [{"kind": "WordPressSite", "name": "blog", "uid": "abc"}]}}

    assert set_owner_reference(obj, owner)
    assert obj["metadata"]["ownerReferences"] == [owner]
