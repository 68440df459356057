"""Reconciliation logic for WordPressSite objects."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import OperatorConfig, MAX_CONFLICT_RETRIES
from .configmap import ConfigMapReconciler
from .deployment import DeploymentReconciler
from .errors import (
    DependencyMissingError,
    KubepressError,
    PropagatedError,
    ReconcileCancelled,
    RestartTriggerError,
    StoreConflictError,
    StoreError,
    ValidationError,
)
from .pvc import PVCReconciler
from .service import ServiceReconciler
from .site import WordPressSite
from .status import (
    CONDITION_FALSE,
    CONDITION_TRUE,
    CONDITION_UNKNOWN,
    READY,
    StatusReporter,
    set_condition,
)
from .store import ResourceStore

logger = logging.getLogger(__name__)

STORAGE_READY = "StorageReady"
CONFIGURATION_READY = "ConfigurationReady"
WORKLOAD_READY = "WorkloadReady"
SERVICE_READY = "ServiceReady"


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    site: str
    success: bool
    error: Optional[Exception] = None
    requeue: bool = False


def _failure_reason(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "ValidationFailed"
    if isinstance(error, DependencyMissingError):
        return "DependencyMissing"
    if isinstance(error, StoreConflictError):
        return "Conflict"
    if isinstance(error, RestartTriggerError):
        return "RestartFailed"
    return "ReconcileFailed"


class SiteReconciler:
    """
    Converges all resources of a site, in dependency order.

    Storage and configuration come first because the Deployment mounts both.
    """

    def __init__(self, store: ResourceStore, config: OperatorConfig):
        """
        Initialize the reconciler.

        Args:
            store: Access to the cluster objects
            config: Operator settings
        """
        self.store = store
        self.config = config
        self.pvc = PVCReconciler(store, config)
        self.configmap = ConfigMapReconciler(store, config)
        self.deployment = DeploymentReconciler(store, config)
        self.service = ServiceReconciler(store, config)
        self.status = StatusReporter(store)

    def _steps(self, cancel: Optional[threading.Event]):
        return [
            (STORAGE_READY, "PVC", self.pvc.converge),
            (CONFIGURATION_READY, "ConfigMap", lambda site: self.configmap.converge(site, cancel)),
            (WORKLOAD_READY, "Deployment", self.deployment.converge),
            (SERVICE_READY, "Service", self.service.converge),
        ]

    def converge(self, site: WordPressSite, cancel: Optional[threading.Event] = None) -> None:
        """
        Run every step once, updating the site's conditions as it goes.

        The first failing step stops the pass, later steps are marked blocked.

        Raises:
            KubepressError: the error of the failing step
        """
        steps = self._steps(cancel)

        for index, (condition_type, kind, step) in enumerate(steps):
            if cancel is not None and cancel.is_set():
                raise ReconcileCancelled(f"reconciliation of {site.key} cancelled before {kind}")

            try:
                step(site)
            except (StoreConflictError, ReconcileCancelled):
                # Conflicts are retried from scratch by the caller, conditions stay as they are
                raise
            except KubepressError as e:
                set_condition(site, condition_type, CONDITION_FALSE, _failure_reason(e), str(e))
                for blocked_type, _, _ in steps[index + 1:]:
                    set_condition(
                        site, blocked_type, CONDITION_UNKNOWN, "Blocked",
                        f"Waiting for {kind} to be reconciled",
                    )
                raise

            set_condition(site, condition_type, CONDITION_TRUE, "Reconciled", f"{kind} is up to date")

    def reconcile(self, crd_object: Dict[str, Any], cancel: Optional[threading.Event] = None) -> ReconcileResult:
        """
        Reconcile one WordPressSite custom object.

        Conflicts restart the whole pass from fresh reads. Other errors end the
        pass and are reported through the site's conditions.

        Args:
            crd_object: The WordPressSite object as returned by the API
            cancel: Set to abort between resource operations

        Returns:
            ReconcileResult describing the outcome
        """
        site = WordPressSite.from_crd(crd_object)
        before = self.status.snapshot(site)
        error: Optional[Exception] = None

        for attempt in range(1, MAX_CONFLICT_RETRIES + 1):
            try:
                self.converge(site, cancel)
                error = None
                break
            except StoreConflictError as e:
                error = e
                logger.info(f"Conflict reconciling {site.key} (attempt {attempt}/{MAX_CONFLICT_RETRIES}): {e}")
            except ReconcileCancelled as e:
                logger.info(str(e))
                return ReconcileResult(site=site.key, success=False, error=e)
            except KubepressError as e:
                error = e
                break

        if error is None:
            set_condition(site, READY, CONDITION_TRUE, "Reconciled", "All resources are up to date")
            logger.info(f"Reconciled WordPressSite {site.key}")
        else:
            set_condition(site, READY, CONDITION_FALSE, _failure_reason(error), str(error))
            if isinstance(error, DependencyMissingError):
                logger.warning(f"WordPressSite {site.key} is waiting: {error}")
            else:
                logger.error(f"Failed to reconcile WordPressSite {site.key}: {error}")

        try:
            self.status.write(site, before)
        except StoreError as e:
            logger.error(f"Failed to update status of WordPressSite {site.key}: {e}")
            if error is None:
                error = PropagatedError("WordPressSite", site.name, e)

        return ReconcileResult(
            site=site.key,
            success=error is None,
            error=error,
            requeue=error is not None and not isinstance(error, ValidationError),
        )
