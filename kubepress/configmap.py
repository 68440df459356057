"""Reconciliation of the php.ini ConfigMap, and the restart it triggers."""

import copy
import hashlib
import logging
import threading
import time
from typing import Any, Dict, Optional

from .config import (
    OperatorConfig,
    PHP_CONFIG_HASH_ANNOTATION,
    PHP_INI_KEY,
    RESTARTED_AT_ANNOTATION,
    RESTART_CONFLICT_RETRIES,
)
from .errors import (
    NotFoundError,
    ReconcileCancelled,
    RestartTriggerError,
    StoreConflictError,
    wrap_store_errors,
)
from .naming import configmap_name, resource_name, wordpress_labels
from .site import WordPressSite
from .store import ResourceStore
from .utils import k8s_memory_to_php_memory, set_owner_reference

logger = logging.getLogger(__name__)

KIND = "ConfigMap"


def php_settings(site: WordPressSite) -> Dict[str, str]:
    """Default PHP settings for a site, overridden by the site's phpConfig."""
    memory_limit = k8s_memory_to_php_memory(site.wordpress.resources.memory_limit)
    max_upload_limit = site.wordpress.max_upload_limit

    settings = {
        "upload_max_filesize": max_upload_limit,
        "post_max_size": max_upload_limit,
        "memory_limit": memory_limit,
        "max_execution_time": "60",
        "max_input_vars": "3000",
        "session.cookie_httponly": "1",
        "session.cookie_secure": "1",
        "session.use_only_cookies": "1",
    }
    settings.update(site.wordpress.php_config)
    return settings


def render_php_ini(settings: Dict[str, str]) -> str:
    """Render settings as php.ini lines, sorted by key so the output is stable."""
    return "".join(f"{key} = {settings[key]}\n" for key in sorted(settings))


def php_config_hash(content: str) -> str:
    """Digest of rendered php.ini content, stamped on the pod template it was rolled out to."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class ConfigMapReconciler:
    """Converges the php.ini ConfigMap and restarts WordPress when it changes."""

    def __init__(self, store: ResourceStore, config: OperatorConfig):
        self.store = store
        self.config = config

    def build(self, site: WordPressSite, content: str) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": KIND,
            "metadata": {
                "name": configmap_name(site.name),
                "namespace": site.namespace,
                "labels": wordpress_labels(
                    site, self.config.version, {"app.kubernetes.io/name": "php-config"}
                ),
                "annotations": {},
                "ownerReferences": [site.owner_reference()],
            },
            "data": {PHP_INI_KEY: content},
        }

    def converge(self, site: WordPressSite, cancel: Optional[threading.Event] = None) -> bool:
        """
        Create or update the ConfigMap, then restart WordPress if its pods
        were not rolled out with the current php.ini.

        Returns:
            True if the stored php.ini content changed
        """
        name = configmap_name(site.name)
        content = render_php_ini(php_settings(site))

        with wrap_store_errors(KIND, name):
            try:
                existing = self.store.get(KIND, site.namespace, name)
            except NotFoundError:
                existing = None

            if existing is None:
                logger.info(f"ConfigMap {site.namespace}/{name} not found, creating it")
                self.store.create(KIND, site.namespace, self.build(site, content))
                changed = False
            else:
                changed = (existing.get("data") or {}).get(PHP_INI_KEY) != content

                # Upsert: also repairs data or ownership edited by someone else
                desired = copy.deepcopy(existing)
                desired["data"] = {PHP_INI_KEY: content}
                set_owner_reference(desired, site.owner_reference())
                if desired != existing:
                    logger.info(f"Updating ConfigMap {site.namespace}/{name}")
                    self.store.update(KIND, site.namespace, desired)

        self.trigger_restart(site, php_config_hash(content), cancel)
        return changed

    def trigger_restart(
        self,
        site: WordPressSite,
        config_hash: str,
        cancel: Optional[threading.Event] = None,
    ) -> bool:
        """
        Stamp the restart annotation on the Deployment's pod template.

        php.ini is read once at PHP startup, so new content needs new pods. The
        template records the hash of the content it was restarted for, and a
        restart that failed is retried by every later pass until it succeeds.

        Returns:
            False if there is no Deployment yet or it already runs ``config_hash``
        """
        name = resource_name(site.name)

        for attempt in range(1, RESTART_CONFLICT_RETRIES + 1):
            with wrap_store_errors("Deployment", name, RestartTriggerError):
                try:
                    deployment = self.store.get("Deployment", site.namespace, name)
                except NotFoundError:
                    # Will start with the new configuration anyway
                    return False

                template_meta = deployment.setdefault("spec", {}).setdefault("template", {}).setdefault("metadata", {})
                annotations = template_meta.get("annotations") or {}
                if annotations.get(PHP_CONFIG_HASH_ANNOTATION) == config_hash:
                    return False

                if cancel is not None and cancel.is_set():
                    raise ReconcileCancelled(f"cancelled before restarting {site.key}")

                annotations[RESTARTED_AT_ANNOTATION] = str(int(time.time()))
                annotations[PHP_CONFIG_HASH_ANNOTATION] = config_hash
                template_meta["annotations"] = annotations

                try:
                    self.store.update("Deployment", site.namespace, deployment)
                except StoreConflictError as e:
                    logger.debug(
                        f"Conflict restarting Deployment {site.namespace}/{name} "
                        f"(attempt {attempt}/{RESTART_CONFLICT_RETRIES})"
                    )
                    if attempt == RESTART_CONFLICT_RETRIES:
                        raise RestartTriggerError("Deployment", name, e) from e
                    continue

            logger.info(f"PHP configuration changed, restarting Deployment {site.namespace}/{name}")
            return True

        return False
