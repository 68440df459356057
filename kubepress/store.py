"""Get/create/update access to the cluster objects managed by the operator."""

import logging
from typing import Any, Dict

from kubernetes import client
from kubernetes.client.rest import ApiException

from .config import CRD_GROUP, CRD_VERSION, CRD_PLURAL, CRD_KIND
from .errors import NotFoundError, StoreConflictError, StoreError

logger = logging.getLogger(__name__)

# kind -> (api group, method suffix) of the typed client
_BUILTIN_KINDS = {
    "PersistentVolumeClaim": ("core", "persistent_volume_claim"),
    "ConfigMap": ("core", "config_map"),
    "Secret": ("core", "secret"),
    "Service": ("core", "service"),
    "Deployment": ("apps", "deployment"),
}


class ResourceStore:
    """
    Thin capability wrapper around the Kubernetes API.

    All objects go in and come out as camelCase manifest dicts. Retrying on
    conflicts is left to the caller.
    """

    def __init__(self, api_client: client.ApiClient = None):
        """
        Initialize the store.

        Args:
            api_client: Configured API client (default: a new client using the
                loaded kubeconfig)
        """
        self.api_client = api_client or client.ApiClient()
        self._apis = {
            "core": client.CoreV1Api(self.api_client),
            "apps": client.AppsV1Api(self.api_client),
        }
        self.custom_api = client.CustomObjectsApi(self.api_client)

    def _call(self, kind: str, obj_namespace: str, obj_name: str, method, **kwargs) -> Dict[str, Any]:
        # obj_namespace and obj_name only label errors, the API arguments go in kwargs
        try:
            result = method(**kwargs)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, obj_namespace, obj_name) from e
            if e.status == 409:
                raise StoreConflictError(
                    f"conflict writing {kind} {obj_namespace}/{obj_name}: {e.reason}"
                ) from e
            raise StoreError(
                f"{kind} {obj_namespace}/{obj_name}: {e.status} {e.reason}", status=e.status or 0
            ) from e

        if isinstance(result, dict):
            return result
        return self.api_client.sanitize_for_serialization(result)

    def _builtin(self, kind: str, verb: str):
        if kind not in _BUILTIN_KINDS:
            raise ValueError(f"Unsupported kind: {kind}")
        group, suffix = _BUILTIN_KINDS[kind]
        return getattr(self._apis[group], f"{verb}_namespaced_{suffix}")

    def get(self, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        """
        Read an object.

        Raises:
            NotFoundError: if the object does not exist
        """
        if kind == CRD_KIND:
            return self._call(
                kind, namespace, name,
                self.custom_api.get_namespaced_custom_object,
                group=CRD_GROUP,
                version=CRD_VERSION,
                namespace=namespace,
                plural=CRD_PLURAL,
                name=name,
            )
        method = self._builtin(kind, "read")
        return self._call(kind, namespace, name, method, name=name, namespace=namespace)

    def create(self, kind: str, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object. An already existing object raises StoreConflictError."""
        name = body.get("metadata", {}).get("name", "")
        logger.debug(f"Creating {kind} {namespace}/{name}")
        method = self._builtin(kind, "create")
        return self._call(kind, namespace, name, method, namespace=namespace, body=body)

    def update(self, kind: str, namespace: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace an object.

        The body must carry the resourceVersion it was read with, the API server
        rejects the write with a conflict if the object changed in the meantime.
        """
        name = body.get("metadata", {}).get("name", "")
        logger.debug(f"Updating {kind} {namespace}/{name}")
        method = self._builtin(kind, "replace")
        return self._call(kind, namespace, name, method, name=name, namespace=namespace, body=body)

    def patch_status(self, namespace: str, name: str, status: Dict[str, Any]) -> Dict[str, Any]:
        """Merge-patch the status subresource of a WordPressSite."""
        logger.debug(f"Patching status of {CRD_KIND} {namespace}/{name}")
        return self._call(
            CRD_KIND, namespace, name,
            self.custom_api.patch_namespaced_custom_object_status,
            group=CRD_GROUP,
            version=CRD_VERSION,
            namespace=namespace,
            plural=CRD_PLURAL,
            name=name,
            body={"status": status},
        )
