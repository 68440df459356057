"""Status conditions of a WordPressSite."""

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .site import WordPressSite
from .store import ResourceStore

logger = logging.getLogger(__name__)

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

READY = "Ready"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def find_condition(conditions: List[Dict[str, Any]], condition_type: str) -> Optional[Dict[str, Any]]:
    for condition in conditions:
        if condition.get("type") == condition_type:
            return condition
    return None


def set_condition(
    site: WordPressSite,
    condition_type: str,
    status: str,
    reason: str,
    message: str,
) -> bool:
    """
    Set or replace the condition of the given type on the site.

    An unchanged status/reason/message keeps the existing entry, including its
    lastTransitionTime. Returns True if the conditions were modified.
    """
    condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "observedGeneration": site.generation,
        "lastTransitionTime": _now(),
    }

    for i, existing in enumerate(site.conditions):
        if existing.get("type") != condition_type:
            continue
        if (
            existing.get("status") == status
            and existing.get("reason") == reason
            and existing.get("message") == message
        ):
            if existing.get("observedGeneration") == site.generation:
                return False
            site.conditions[i] = dict(existing, observedGeneration=site.generation)
            return True
        site.conditions[i] = condition
        return True

    site.conditions.append(condition)
    return True


class StatusReporter:
    """Writes a site's conditions back to its status subresource."""

    def __init__(self, store: ResourceStore):
        self.store = store

    def snapshot(self, site: WordPressSite) -> Dict[str, Any]:
        return {
            "conditions": copy.deepcopy(site.conditions),
            "observedGeneration": site.observed_generation,
        }

    def write(self, site: WordPressSite, before: Dict[str, Any]) -> bool:
        """
        Patch the status if it differs from ``before``.

        Returns:
            True if a write was issued
        """
        site.observed_generation = site.generation
        after = self.snapshot(site)
        if after == before:
            logger.debug(f"Status of {site.key} unchanged")
            return False

        self.store.patch_status(site.namespace, site.name, after)
        logger.debug(f"Updated status of {site.key}")
        return True
