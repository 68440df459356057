"""Reconciliation of the ClusterIP Service in front of WordPress."""

import logging
from typing import Any, Dict, List

from .config import OperatorConfig, HTTP_PORT
from .errors import NotFoundError, wrap_store_errors
from .naming import (
    WORDPRESS_SERVER,
    resource_name,
    wordpress_labels,
    wordpress_labels_for_matching,
)
from .site import WordPressSite
from .store import ResourceStore

logger = logging.getLogger(__name__)

KIND = "Service"


def desired_ports() -> List[Dict[str, Any]]:
    return [{"name": "http", "port": HTTP_PORT, "targetPort": "http", "protocol": "TCP"}]


def _ports_match(actual: List[Dict[str, Any]], desired: List[Dict[str, Any]]) -> bool:
    if len(actual) != len(desired):
        return False
    for current, wanted in zip(actual, desired):
        # The API server adds defaults such as nodePort, only compare what we set
        if any(current.get(key) != value for key, value in wanted.items()):
            return False
    return True


class ServiceReconciler:
    """Converges the Service routing traffic to the WordPress pods."""

    def __init__(self, store: ResourceStore, config: OperatorConfig):
        self.store = store
        self.config = config

    def build(self, site: WordPressSite) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": KIND,
            "metadata": {
                "name": resource_name(site.name),
                "namespace": site.namespace,
                "labels": wordpress_labels(site, self.config.version, WORDPRESS_SERVER),
                "ownerReferences": [site.owner_reference()],
            },
            "spec": {
                "type": "ClusterIP",
                "selector": wordpress_labels_for_matching(site, WORDPRESS_SERVER),
                "ports": desired_ports(),
            },
        }

    def converge(self, site: WordPressSite) -> None:
        name = resource_name(site.name)
        selector = wordpress_labels_for_matching(site, WORDPRESS_SERVER)
        ports = desired_ports()

        with wrap_store_errors(KIND, name):
            try:
                service = self.store.get(KIND, site.namespace, name)
            except NotFoundError:
                logger.info(f"Service {site.namespace}/{name} not found, creating it")
                self.store.create(KIND, site.namespace, self.build(site))
                return

            spec = service.setdefault("spec", {})
            update_needed = False

            if spec.get("selector") != selector:
                spec["selector"] = selector
                update_needed = True

            if not _ports_match(spec.get("ports") or [], ports):
                spec["ports"] = ports
                update_needed = True

            if update_needed:
                logger.info(f"Updating Service {site.namespace}/{name}")
                self.store.update(KIND, site.namespace, service)
