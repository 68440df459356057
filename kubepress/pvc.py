"""Reconciliation of the central PersistentVolumeClaim of a site."""

import logging
from typing import Any, Dict

from .config import OperatorConfig
from .errors import NotFoundError, wrap_store_errors
from .naming import pvc_name, wordpress_labels
from .site import WordPressSite
from .store import ResourceStore
from .utils import quantities_equal, to_quantity

logger = logging.getLogger(__name__)

KIND = "PersistentVolumeClaim"

# Replicas share one filesystem, so the claim has to be mountable by many nodes
ACCESS_MODE = "ReadWriteMany"


class PVCReconciler:
    """Converges the WordPress data volume claim."""

    def __init__(self, store: ResourceStore, config: OperatorConfig):
        self.store = store
        self.config = config

    def build(self, site: WordPressSite) -> Dict[str, Any]:
        """Build the desired claim for a site."""
        spec: Dict[str, Any] = {
            "accessModes": [ACCESS_MODE],
            "resources": {"requests": {"storage": site.wordpress.storage_size}},
        }
        # Without a storage class the cluster default is used
        if self.config.storage_class_name:
            spec["storageClassName"] = self.config.storage_class_name

        return {
            "apiVersion": "v1",
            "kind": KIND,
            "metadata": {
                "name": pvc_name(site.name),
                "namespace": site.namespace,
                "labels": wordpress_labels(
                    site, self.config.version, {"app.kubernetes.io/name": "wordpress-data"}
                ),
                "ownerReferences": [site.owner_reference()],
            },
            "spec": spec,
        }

    def converge(self, site: WordPressSite) -> None:
        """Create the claim if missing, otherwise resize it to the desired size."""
        name = pvc_name(site.name)
        desired_size = site.wordpress.storage_size
        to_quantity(desired_size)

        with wrap_store_errors(KIND, name):
            try:
                pvc = self.store.get(KIND, site.namespace, name)
            except NotFoundError:
                logger.info(f"PVC {site.namespace}/{name} not found, creating it")
                self.store.create(KIND, site.namespace, self.build(site))
                return

            requests = pvc.setdefault("spec", {}).setdefault("resources", {}).setdefault("requests", {})
            current_size = requests.get("storage")
            if quantities_equal(current_size, desired_size):
                return

            # Access mode and storage class are immutable, only the request changes
            logger.info(f"Resizing PVC {site.namespace}/{name} from {current_size} to {desired_size}")
            requests["storage"] = desired_size
            self.store.update(KIND, site.namespace, pvc)
