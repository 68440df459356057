"""Configuration settings for the KubePress WordPress operator."""

import os
from dataclasses import dataclass

# CRD Settings
CRD_GROUP = "kubepress.io"
CRD_VERSION = "v1"
CRD_PLURAL = "wordpresssites"
CRD_KIND = "WordPressSite"

# Labels
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "kubepress-operator"
PART_OF_LABEL = "app.kubernetes.io/part-of"
PART_OF_VALUE = "kubepress"
INSTANCE_LABEL = "app.kubernetes.io/instance"
NAME_LABEL = "app.kubernetes.io/name"
VERSION_LABEL = "app.kubernetes.io/version"
COMPONENT_LABEL = "app.kubernetes.io/component"
RESOURCE_UID_LABEL = "kubepress.io/resource-uid"

# Controller annotations
RESTARTED_AT_ANNOTATION = "kubepress.io/restarted-at"
PHP_CONFIG_HASH_ANNOTATION = "kubepress.io/php-config-hash"

# Kubernetes name length ceiling (DNS label)
MAX_NAME_LENGTH = 63
CONFIGMAP_SUFFIX = "--php"
TLS_SECRET_SUFFIX = "--tls"

# ConfigMap key holding the rendered php.ini
PHP_INI_KEY = "php.ini"

# Volumes
DATA_VOLUME_NAME = "wordpress-central-data"
PHP_CONFIG_VOLUME_NAME = "php-config"
WEB_ROOT = "/var/www/html"
PHP_INI_MOUNT_PATH = "/usr/local/etc/php/conf.d/custom.ini"
HTTP_PORT = 80

# Defaults if not specified on the site
DEFAULT_STORAGE_SIZE = "10Gi"
DEFAULT_MAX_UPLOAD_LIMIT = "64M"
DEFAULT_REPLICAS = 1
DEFAULT_CPU_REQUEST = "100m"
DEFAULT_MEMORY_REQUEST = "128Mi"
DEFAULT_CPU_LIMIT = "500m"
DEFAULT_MEMORY_LIMIT = "256Mi"

# Watch settings
WATCH_TIMEOUT_SECONDS = 300
RESYNC_INTERVAL_SECONDS = 300
REQUEUE_DELAY_SECONDS = 10
DEFAULT_WORKERS = 4

# Retry settings
MAX_CONFLICT_RETRIES = 3
RESTART_CONFLICT_RETRIES = 3


@dataclass
class OperatorConfig:
    """Process-wide settings, loaded once at startup and passed explicitly."""
    namespace: str = ""
    storage_class_name: str = ""
    version: str = ""
    workers: int = DEFAULT_WORKERS
    resync_interval: int = RESYNC_INTERVAL_SECONDS
    watch_timeout: int = WATCH_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ=None) -> "OperatorConfig":
        """Create an OperatorConfig from environment variables."""
        environ = os.environ if environ is None else environ
        return cls(
            namespace=environ.get("WATCH_NAMESPACE", ""),
            storage_class_name=environ.get("STORAGE_CLASS_NAME", ""),
            version=environ.get("VERSION", ""),
            workers=int(environ.get("WORKERS", DEFAULT_WORKERS)),
            resync_interval=int(environ.get("RESYNC_INTERVAL_SECONDS", RESYNC_INTERVAL_SECONDS)),
            watch_timeout=int(environ.get("WATCH_TIMEOUT_SECONDS", WATCH_TIMEOUT_SECONDS)),
        )
