"""Deterministic names and label sets for resources owned by a site."""

from typing import Dict

from .config import (
    MAX_NAME_LENGTH,
    CONFIGMAP_SUFFIX,
    TLS_SECRET_SUFFIX,
    MANAGED_BY_LABEL,
    MANAGED_BY_VALUE,
    PART_OF_LABEL,
    PART_OF_VALUE,
    INSTANCE_LABEL,
    NAME_LABEL,
    VERSION_LABEL,
    COMPONENT_LABEL,
    RESOURCE_UID_LABEL,
)
from .site import WordPressSite

# Labels owned by the operator and never copied from the site
RESERVED_LABELS = frozenset({
    NAME_LABEL,
    INSTANCE_LABEL,
    VERSION_LABEL,
    COMPONENT_LABEL,
    PART_OF_LABEL,
    MANAGED_BY_LABEL,
    RESOURCE_UID_LABEL,
})

WORDPRESS_COMPONENT = "wordpress"
WORDPRESS_SERVER = {NAME_LABEL: "wordpress-server"}


def resource_name(site_name: str) -> str:
    """Base name shared by the Deployment and Service."""
    return site_name


def _suffixed_name(site_name: str, suffix: str) -> str:
    limit = MAX_NAME_LENGTH - len(suffix)
    return resource_name(site_name[:limit]) + suffix


def configmap_name(site_name: str) -> str:
    return _suffixed_name(site_name, CONFIGMAP_SUFFIX)


def tls_secret_name(site_name: str) -> str:
    return _suffixed_name(site_name, TLS_SECRET_SUFFIX)


def pvc_name(site_name: str) -> str:
    return resource_name(site_name)


def database_secret_name(site_name: str) -> str:
    return resource_name(site_name)


def independent_labels(site: WordPressSite) -> Dict[str, str]:
    """
    Labels that never change for the lifetime of a site.

    They do not depend on the operator version or on labels the user adds later,
    so they are safe to use in selectors of already existing objects.
    """
    return {
        MANAGED_BY_LABEL: MANAGED_BY_VALUE,
        PART_OF_LABEL: PART_OF_VALUE,
        INSTANCE_LABEL: site.name,
        RESOURCE_UID_LABEL: site.uid,
    }


def common_labels(site: WordPressSite, version: str = "", *extra_labels: Dict[str, str]) -> Dict[str, str]:
    """
    Full label set for a managed object.

    Merge order: independent labels, then non-reserved site labels, then the
    version label, then caller supplied extras. Later steps win.
    """
    labels = independent_labels(site)

    user_labels = {
        key: value for key, value in site.labels.items()
        if key not in RESERVED_LABELS
    }
    labels.update(user_labels)

    if version:
        labels[VERSION_LABEL] = version

    for extra in extra_labels:
        labels.update(extra)

    return labels


def wordpress_labels(site: WordPressSite, version: str = "", *extra_labels: Dict[str, str]) -> Dict[str, str]:
    labels = common_labels(site, version, *extra_labels)
    labels[COMPONENT_LABEL] = WORDPRESS_COMPONENT
    return labels


def wordpress_labels_for_matching(site: WordPressSite, *extra_labels: Dict[str, str]) -> Dict[str, str]:
    """Selector labels for WordPress pods. Stable across site edits."""
    labels = independent_labels(site)
    labels[COMPONENT_LABEL] = WORDPRESS_COMPONENT
    for extra in extra_labels:
        labels.update(extra)
    return labels
