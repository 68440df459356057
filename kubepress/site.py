"""Parsed representation of a WordPressSite custom object."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import (
    CRD_GROUP,
    CRD_VERSION,
    CRD_KIND,
    DEFAULT_CPU_REQUEST,
    DEFAULT_MEMORY_REQUEST,
    DEFAULT_CPU_LIMIT,
    DEFAULT_MEMORY_LIMIT,
    DEFAULT_MAX_UPLOAD_LIMIT,
    DEFAULT_REPLICAS,
    DEFAULT_STORAGE_SIZE,
)


@dataclass
class ResourceSpec:
    """CPU and memory requests/limits of the WordPress container."""
    cpu_request: str = DEFAULT_CPU_REQUEST
    memory_request: str = DEFAULT_MEMORY_REQUEST
    cpu_limit: str = DEFAULT_CPU_LIMIT
    memory_limit: str = DEFAULT_MEMORY_LIMIT

    @classmethod
    def from_crd(cls, resources: Dict[str, Any]) -> "ResourceSpec":
        return cls(
            cpu_request=resources.get("cpuRequest") or DEFAULT_CPU_REQUEST,
            memory_request=resources.get("memoryRequest") or DEFAULT_MEMORY_REQUEST,
            cpu_limit=resources.get("cpuLimit") or DEFAULT_CPU_LIMIT,
            memory_limit=resources.get("memoryLimit") or DEFAULT_MEMORY_LIMIT,
        )

    def to_requirements(self) -> Dict[str, Dict[str, str]]:
        """Render as a container ``resources`` block."""
        return {
            "requests": {"cpu": self.cpu_request, "memory": self.memory_request},
            "limits": {"cpu": self.cpu_limit, "memory": self.memory_limit},
        }


@dataclass
class IngressSpec:
    host: str = ""
    tls: bool = False


@dataclass
class WordPressSpec:
    """Workload part of the site specification."""
    image: str = ""
    replicas: int = DEFAULT_REPLICAS
    resources: ResourceSpec = field(default_factory=ResourceSpec)
    max_upload_limit: str = DEFAULT_MAX_UPLOAD_LIMIT
    php_config: Dict[str, str] = field(default_factory=dict)
    env: List[Dict[str, str]] = field(default_factory=list)
    storage_size: str = DEFAULT_STORAGE_SIZE

    @classmethod
    def from_crd(cls, wordpress: Dict[str, Any]) -> "WordPressSpec":
        replicas = wordpress.get("replicas") or 0
        return cls(
            image=wordpress.get("image", ""),
            replicas=replicas if replicas > 0 else DEFAULT_REPLICAS,
            resources=ResourceSpec.from_crd(wordpress.get("resources") or {}),
            max_upload_limit=wordpress.get("maxUploadLimit") or DEFAULT_MAX_UPLOAD_LIMIT,
            php_config={k: str(v) for k, v in (wordpress.get("phpConfig") or {}).items()},
            env=[
                {"name": e["name"], "value": str(e.get("value", ""))}
                for e in (wordpress.get("env") or [])
            ],
            storage_size=wordpress.get("storageSize") or DEFAULT_STORAGE_SIZE,
        )


@dataclass
class WordPressSite:
    """Parsed WordPressSite, the desired state of one site."""
    name: str
    namespace: str
    uid: str = ""
    generation: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    wordpress: WordPressSpec = field(default_factory=WordPressSpec)
    ingress: Optional[IngressSpec] = None
    admin_user_secret_ref: str = ""
    site_title: str = ""
    admin_email: str = ""
    conditions: List[Dict[str, Any]] = field(default_factory=list)
    observed_generation: int = 0

    @classmethod
    def from_crd(cls, crd_object: Dict[str, Any]) -> "WordPressSite":
        """Create a WordPressSite from the custom object returned by the API."""
        metadata = crd_object.get("metadata", {})
        spec = crd_object.get("spec", {})
        status = crd_object.get("status") or {}
        ingress = spec.get("ingress")

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", "default"),
            uid=metadata.get("uid", ""),
            generation=metadata.get("generation", 0),
            labels=dict(metadata.get("labels") or {}),
            wordpress=WordPressSpec.from_crd(spec.get("wordpress") or {}),
            ingress=IngressSpec(
                host=ingress.get("host", ""),
                tls=bool(ingress.get("tls", False)),
            ) if ingress else None,
            admin_user_secret_ref=spec.get("adminUserSecretKeyRef", ""),
            site_title=spec.get("siteTitle", ""),
            admin_email=spec.get("adminEmail", ""),
            conditions=copy.deepcopy(status.get("conditions") or []),
            observed_generation=status.get("observedGeneration", 0),
        )

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def site_url(self) -> str:
        """Public URL the site is installed under."""
        if self.ingress and self.ingress.host:
            protocol = "https" if self.ingress.tls else "http"
            return f"{protocol}://{self.ingress.host}"
        return f"http://{self.name}"

    def owner_reference(self) -> Dict[str, Any]:
        """Controller reference making managed objects cascade with the site."""
        return {
            "apiVersion": f"{CRD_GROUP}/{CRD_VERSION}",
            "kind": CRD_KIND,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }
