"""Main controller logic for the KubePress operator."""

import logging
import queue
import threading
import time
from typing import Optional, Set, Tuple

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from .config import (
    CRD_GROUP,
    CRD_VERSION,
    CRD_PLURAL,
    CRD_KIND,
    MANAGED_BY_LABEL,
    MANAGED_BY_VALUE,
    REQUEUE_DELAY_SECONDS,
    OperatorConfig,
)
from .errors import NotFoundError, StoreError
from .reconciler import SiteReconciler
from .store import ResourceStore

logger = logging.getLogger(__name__)

SiteKey = Tuple[str, str]

MANAGED_SELECTOR = f"{MANAGED_BY_LABEL}={MANAGED_BY_VALUE}"


def owner_site(obj) -> Optional[SiteKey]:
    """Return the (namespace, name) of the WordPressSite controlling an object."""
    metadata = obj.metadata
    for owner in metadata.owner_references or []:
        if owner.kind == CRD_KIND and owner.controller:
            return metadata.namespace, owner.name
    return None


class WordPressSiteController:
    """
    Watches WordPressSite objects and the resources they own, and
    reconciles each site on a pool of worker threads.
    """

    def __init__(self, config: OperatorConfig, store: ResourceStore = None, reconciler: SiteReconciler = None):
        """
        Initialize the controller.

        Args:
            config: Operator settings
            store: Access to cluster objects (default: store on the loaded kubeconfig)
            reconciler: Site reconciler (default: one built on ``store``)
        """
        self.config = config
        self.store = store or ResourceStore()
        self.reconciler = reconciler or SiteReconciler(self.store, config)

        self._queue: "queue.Queue[SiteKey]" = queue.Queue()
        self._lock = threading.Lock()
        self._pending: Set[SiteKey] = set()
        self._active: Set[SiteKey] = set()
        self._dirty: Set[SiteKey] = set()
        self._known: Set[SiteKey] = set()
        self._stop_event = threading.Event()

    def enqueue(self, namespace: str, name: str) -> None:
        """Schedule a site for reconciliation. Duplicate requests collapse."""
        key = (namespace, name)
        with self._lock:
            if key in self._active:
                # Picked up again once the running pass finishes
                self._dirty.add(key)
                return
            if key in self._pending:
                return
            self._pending.add(key)
        self._queue.put(key)

    def enqueue_after(self, namespace: str, name: str, delay: float) -> None:
        timer = threading.Timer(delay, self.enqueue, args=(namespace, name))
        timer.daemon = True
        timer.start()

    def handle_site_event(self, event_type: str, site_obj: dict) -> None:
        """
        Handle a WordPressSite watch event.

        Args:
            event_type: ADDED, MODIFIED, or DELETED
            site_obj: The custom object from the event
        """
        metadata = site_obj.get("metadata", {})
        name = metadata.get("name", "")
        namespace = metadata.get("namespace", "default")
        key = (namespace, name)

        if event_type in ("ADDED", "MODIFIED"):
            with self._lock:
                self._known.add(key)
            logger.debug(f"WordPressSite {event_type}: {namespace}/{name}")
            self.enqueue(namespace, name)

        elif event_type == "DELETED":
            # Owned resources are garbage collected through their owner references
            with self._lock:
                self._known.discard(key)
            logger.info(f"WordPressSite DELETED: {namespace}/{name}")

    def handle_owned_event(self, event_type: str, obj) -> None:
        """Handle an event on a Deployment, ConfigMap or PVC owned by a site."""
        key = owner_site(obj)
        if key is None:
            return
        logger.debug(f"{type(obj).__name__} {event_type}: {obj.metadata.namespace}/{obj.metadata.name}")
        self.enqueue(*key)

    def process(self, key: SiteKey) -> None:
        """Run one reconciliation pass for a site."""
        namespace, name = key
        try:
            site_obj = self.store.get(CRD_KIND, namespace, name)
        except NotFoundError:
            logger.debug(f"WordPressSite {namespace}/{name} is gone, skipping")
            return
        except StoreError as e:
            logger.error(f"Error reading WordPressSite {namespace}/{name}: {e}")
            self.enqueue_after(namespace, name, REQUEUE_DELAY_SECONDS)
            return

        result = self.reconciler.reconcile(site_obj, cancel=self._stop_event)
        if result.requeue and not self._stop_event.is_set():
            self.enqueue_after(namespace, name, REQUEUE_DELAY_SECONDS)

    def worker(self) -> None:
        """Take sites off the queue until stopped."""
        while not self._stop_event.is_set():
            try:
                key = self._queue.get(timeout=1)
            except queue.Empty:
                continue

            with self._lock:
                self._pending.discard(key)
                self._active.add(key)

            try:
                self.process(key)
            except Exception:
                logger.exception(f"Unexpected error reconciling {key[0]}/{key[1]}")
            finally:
                with self._lock:
                    self._active.discard(key)
                    rerun = key in self._dirty
                    self._dirty.discard(key)
                self._queue.task_done()

            if rerun:
                self.enqueue(*key)

    def watch_sites(self) -> None:
        """Watch for WordPressSite events in a loop."""
        logger.info("Starting WordPressSite watcher...")
        custom_api = client.CustomObjectsApi(self.store.api_client)

        while not self._stop_event.is_set():
            w = watch.Watch()
            try:
                if self.config.namespace:
                    stream = w.stream(
                        custom_api.list_namespaced_custom_object,
                        group=CRD_GROUP,
                        version=CRD_VERSION,
                        namespace=self.config.namespace,
                        plural=CRD_PLURAL,
                        timeout_seconds=self.config.watch_timeout,
                    )
                else:
                    stream = w.stream(
                        custom_api.list_cluster_custom_object,
                        group=CRD_GROUP,
                        version=CRD_VERSION,
                        plural=CRD_PLURAL,
                        timeout_seconds=self.config.watch_timeout,
                    )

                for event in stream:
                    if self._stop_event.is_set():
                        w.stop()
                        break
                    self.handle_site_event(event["type"], event["object"])

            except ApiException as e:
                logger.error(f"WordPressSite watch error: {e}")
                time.sleep(5)
            except Exception as e:
                logger.error(f"Unexpected error in WordPressSite watcher: {e}")
                time.sleep(5)

    def watch_owned(self, list_namespaced, list_all) -> None:
        """Watch objects labelled as managed by the operator."""
        while not self._stop_event.is_set():
            w = watch.Watch()
            try:
                if self.config.namespace:
                    stream = w.stream(
                        list_namespaced,
                        namespace=self.config.namespace,
                        label_selector=MANAGED_SELECTOR,
                        timeout_seconds=self.config.watch_timeout,
                    )
                else:
                    stream = w.stream(
                        list_all,
                        label_selector=MANAGED_SELECTOR,
                        timeout_seconds=self.config.watch_timeout,
                    )

                for event in stream:
                    if self._stop_event.is_set():
                        w.stop()
                        break
                    self.handle_owned_event(event["type"], event["object"])

            except ApiException as e:
                logger.error(f"Watch error on {list_all.__name__}: {e}")
                time.sleep(5)
            except Exception as e:
                logger.error(f"Unexpected error in watcher {list_all.__name__}: {e}")
                time.sleep(5)

    def periodic_resync(self) -> None:
        """Periodically re-enqueue every known site."""
        logger.info(f"Starting periodic resync (interval: {self.config.resync_interval}s)")

        while not self._stop_event.wait(self.config.resync_interval):
            with self._lock:
                keys = list(self._known)
            logger.debug(f"Resyncing {len(keys)} WordPressSite(s)")
            for namespace, name in keys:
                self.enqueue(namespace, name)

    def _start_thread(self, target, name: str, *args) -> threading.Thread:
        thread = threading.Thread(target=target, name=name, args=args, daemon=True)
        thread.start()
        return thread

    def run(self) -> None:
        """Run the controller."""
        logger.info("=" * 60)
        logger.info("Starting KubePress WordPress operator")
        logger.info("=" * 60)
        logger.info(f"Namespace: {self.config.namespace or 'all namespaces'}")
        logger.info(f"Version: {self.config.version or 'unknown'}")
        logger.info(f"Storage class: {self.config.storage_class_name or 'cluster default'}")
        logger.info(f"Workers: {self.config.workers}")

        core = client.CoreV1Api(self.store.api_client)
        apps = client.AppsV1Api(self.store.api_client)

        self._start_thread(self.watch_sites, "site-watcher")
        self._start_thread(
            self.watch_owned, "deployment-watcher",
            apps.list_namespaced_deployment, apps.list_deployment_for_all_namespaces,
        )
        self._start_thread(
            self.watch_owned, "configmap-watcher",
            core.list_namespaced_config_map, core.list_config_map_for_all_namespaces,
        )
        self._start_thread(
            self.watch_owned, "pvc-watcher",
            core.list_namespaced_persistent_volume_claim,
            core.list_persistent_volume_claim_for_all_namespaces,
        )
        self._start_thread(self.periodic_resync, "periodic-resync")
        for i in range(self.config.workers):
            self._start_thread(self.worker, f"worker-{i}")

        logger.info("Controller is running. Press Ctrl+C to stop.")

        # Keep main thread alive
        try:
            while not self._stop_event.is_set():
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutdown requested...")
            self._stop_event.set()

    def stop(self) -> None:
        """Stop the controller."""
        logger.info("Stopping controller...")
        self._stop_event.set()
