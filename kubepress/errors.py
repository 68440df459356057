"""Exceptions raised while converging WordPressSite resources."""

import contextlib


class KubepressError(Exception):
    """Base class for all operator errors."""


class StoreError(KubepressError):
    """A read or write against the cluster resource store failed."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """The requested object does not exist. Drives the create branch."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(f"{kind} {namespace}/{name} not found", status=404)
        self.kind = kind
        self.namespace = namespace
        self.name = name


class StoreConflictError(StoreError):
    """A write was rejected because it was based on a stale read."""

    def __init__(self, message: str):
        super().__init__(message, status=409)


class ValidationError(KubepressError):
    """The site carries a value that cannot be turned into a valid resource."""


class FormatError(ValidationError):
    """A quantity string is not of the form <integer><unit>."""


class UnsupportedUnitError(ValidationError):
    """A quantity string uses a unit that cannot be converted."""


class DependencyMissingError(KubepressError):
    """An object the site refers to does not exist yet."""


class PropagatedError(KubepressError):
    """A store failure, annotated with the resource it happened on."""

    def __init__(self, kind: str, name: str, cause: Exception):
        super().__init__(f"{kind} {name}: {cause}")
        self.kind = kind
        self.name = name
        self.cause = cause


class RestartTriggerError(PropagatedError):
    """The ConfigMap was stored but the Deployment could not be restarted."""


class ReconcileCancelled(KubepressError):
    """The reconciliation pass was asked to stop."""


@contextlib.contextmanager
def wrap_store_errors(kind: str, name: str, error_class=PropagatedError):
    """Attach the resource to generic store failures.

    NotFound and conflict errors pass through unchanged, callers act on them.
    """
    try:
        yield
    except (NotFoundError, StoreConflictError):
        raise
    except StoreError as e:
        raise error_class(kind, name, e) from e
