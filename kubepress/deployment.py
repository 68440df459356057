"""Reconciliation of the WordPress Deployment."""

import logging
from typing import Any, Dict, List

from .config import (
    OperatorConfig,
    DATA_VOLUME_NAME,
    PHP_CONFIG_HASH_ANNOTATION,
    PHP_CONFIG_VOLUME_NAME,
    PHP_INI_KEY,
    PHP_INI_MOUNT_PATH,
    WEB_ROOT,
    HTTP_PORT,
)
from .configmap import php_config_hash, php_settings, render_php_ini
from .errors import (
    DependencyMissingError,
    NotFoundError,
    ValidationError,
    wrap_store_errors,
)
from .naming import (
    WORDPRESS_SERVER,
    configmap_name,
    pvc_name,
    resource_name,
    wordpress_labels,
    wordpress_labels_for_matching,
)
from .site import WordPressSite
from .store import ResourceStore
from .utils import k8s_memory_to_php_memory, resources_equal, validate_resources

logger = logging.getLogger(__name__)

KIND = "Deployment"

MEMORY_LIMIT_ENV = "WORDPRESS_MEMORY_LIMIT"

# Runs before WordPress starts. Every step is skipped when already done, so
# restarts never touch an existing installation.
INIT_SCRIPT = f"""set -e

if [ ! -f /tmp/wp-cli ]; then
	curl -s -O https://raw.githubusercontent.com/wp-cli/builds/gh-pages/phar/wp-cli.phar >/dev/null 2>&1
	chmod +x wp-cli.phar >/dev/null 2>&1
	mv wp-cli.phar /tmp/wp-cli
fi

if [ ! -f {WEB_ROOT}/index.php ]; then
	echo "Downloading WordPress core files..."
	/tmp/wp-cli core download --path="{WEB_ROOT}/" --locale=en_US --allow-root
fi

if [ ! -f {WEB_ROOT}/wp-config.php ]; then
	echo "Creating wp-config.php..."
	/tmp/wp-cli config create --path="{WEB_ROOT}/" \\
		--dbhost="$WORDPRESS_DB_HOST" \\
		--dbname="$WORDPRESS_DB_NAME" \\
		--dbuser="$WORDPRESS_DB_USER" \\
		--dbpass="$WORDPRESS_DB_PASSWORD" \\
		--allow-root \\
		--extra-php <<PHP
define('FS_METHOD', 'direct');
define('WP_MEMORY_LIMIT', '256M');
PHP

	sed -i '2 i define('\\''FORCE_SSL_ADMIN'\\'', true); if ($_SERVER["HTTP_X_FORWARDED_PROTO"] == "https") $_SERVER["HTTPS"]="on";' {WEB_ROOT}/wp-config.php
fi

/tmp/wp-cli config set WP_MEMORY_LIMIT "${MEMORY_LIMIT_ENV}" --path="{WEB_ROOT}/" --allow-root

if ! /tmp/wp-cli core is-installed --path="{WEB_ROOT}/" --quiet 2>/dev/null; then
	/tmp/wp-cli core install \\
		--path="{WEB_ROOT}/" \\
		--url="$WORDPRESS_URL" \\
		--title="$WORDPRESS_TITLE" \\
		--admin_user="$WORDPRESS_ADMIN_USER" \\
		--admin_password="$WORDPRESS_ADMIN_PASSWORD" \\
		--admin_email="$WORDPRESS_ADMIN_EMAIL" \\
		--skip-email \\
		--allow-root
fi

chown -R 33:33 {WEB_ROOT}
"""


def secret_env(name: str, secret_name: str, key: str) -> Dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret_name, "key": key}},
    }


def database_env(secret_name: str) -> List[Dict[str, Any]]:
    return [
        secret_env("WORDPRESS_DB_HOST", secret_name, "databaseHost"),
        secret_env("WORDPRESS_DB_NAME", secret_name, "database"),
        secret_env("WORDPRESS_DB_USER", secret_name, "databaseUsername"),
        secret_env("WORDPRESS_DB_PASSWORD", secret_name, "databasePassword"),
    ]


def upsert_env(env: List[Dict[str, Any]], name: str, value: str) -> bool:
    """Set ``name`` to ``value`` in an env list. Returns True if it changed."""
    for var in env:
        if var.get("name") == name:
            if var.get("value") == value and "valueFrom" not in var:
                return False
            var.pop("valueFrom", None)
            var["value"] = value
            return True
    env.append({"name": name, "value": value})
    return True


def add_missing_env(env: List[Dict[str, Any]], env_vars: List[Dict[str, str]]) -> bool:
    """
    Append variables whose name is not set yet.

    Existing variables are never modified or removed.
    """
    existing = {var.get("name") for var in env}
    changed = False
    for var in env_vars:
        if var["name"] not in existing:
            env.append({"name": var["name"], "value": var["value"]})
            existing.add(var["name"])
            changed = True
    return changed


class DeploymentReconciler:
    """Converges the WordPress Deployment."""

    def __init__(self, store: ResourceStore, config: OperatorConfig):
        self.store = store
        self.config = config

    def _check_secret(self, site: WordPressSite) -> None:
        secret_name = site.admin_user_secret_ref
        if not secret_name:
            raise ValidationError(f"{site.key}: adminUserSecretKeyRef is not set")
        with wrap_store_errors("Secret", secret_name):
            try:
                self.store.get("Secret", site.namespace, secret_name)
            except NotFoundError as e:
                raise DependencyMissingError(
                    f"secret {site.namespace}/{secret_name} referenced by {site.key} does not exist"
                ) from e

    def build(self, site: WordPressSite, memory_limit: str) -> Dict[str, Any]:
        """Build the desired Deployment for a site."""
        secret_name = site.admin_user_secret_ref
        wordpress = site.wordpress

        labels = wordpress_labels(site, self.config.version, WORDPRESS_SERVER)
        labels_for_matching = wordpress_labels_for_matching(site, WORDPRESS_SERVER)

        volume_mounts = [
            {"name": DATA_VOLUME_NAME, "mountPath": WEB_ROOT},
            {"name": PHP_CONFIG_VOLUME_NAME, "mountPath": PHP_INI_MOUNT_PATH, "subPath": PHP_INI_KEY},
        ]
        volumes = [
            {
                "name": DATA_VOLUME_NAME,
                "persistentVolumeClaim": {"claimName": pvc_name(site.name)},
            },
            {
                "name": PHP_CONFIG_VOLUME_NAME,
                "configMap": {"name": configmap_name(site.name)},
            },
        ]

        if site.admin_email:
            admin_email = {"name": "WORDPRESS_ADMIN_EMAIL", "value": site.admin_email}
        else:
            admin_email = secret_env("WORDPRESS_ADMIN_EMAIL", secret_name, "email")

        init_container = {
            "name": "init",
            "image": wordpress.image,
            "command": ["sh", "-c", INIT_SCRIPT],
            "volumeMounts": volume_mounts,
            "env": database_env(secret_name) + [
                {"name": "WORDPRESS_URL", "value": site.site_url},
                {"name": "WORDPRESS_TITLE", "value": site.site_title},
                secret_env("WORDPRESS_ADMIN_USER", secret_name, "username"),
                secret_env("WORDPRESS_ADMIN_PASSWORD", secret_name, "password"),
                admin_email,
                {"name": MEMORY_LIMIT_ENV, "value": memory_limit},
            ],
        }

        main_env = database_env(secret_name) + [
            {"name": "WORDPRESS_TABLE_PREFIX", "value": "wp_"},
            {"name": "APACHE_RUN_USER", "value": "www-data"},
            {"name": "APACHE_RUN_GROUP", "value": "www-data"},
        ]
        add_missing_env(main_env, wordpress.env)

        container = {
            "name": "wordpress",
            "image": wordpress.image,
            "env": main_env,
            "ports": [{"name": "http", "containerPort": HTTP_PORT}],
            "volumeMounts": volume_mounts,
            "resources": wordpress.resources.to_requirements(),
        }

        return {
            "apiVersion": "apps/v1",
            "kind": KIND,
            "metadata": {
                "name": resource_name(site.name),
                "namespace": site.namespace,
                "labels": labels,
                "ownerReferences": [site.owner_reference()],
            },
            "spec": {
                "replicas": wordpress.replicas,
                "selector": {"matchLabels": labels_for_matching},
                "template": {
                    "metadata": {
                        "labels": labels,
                        "annotations": {
                            PHP_CONFIG_HASH_ANNOTATION: php_config_hash(render_php_ini(php_settings(site))),
                        },
                    },
                    "spec": {
                        "initContainers": [init_container],
                        "containers": [container],
                        "volumes": volumes,
                    },
                },
            },
        }

    def converge(self, site: WordPressSite) -> None:
        """Create the Deployment if missing, otherwise patch drifted fields."""
        name = resource_name(site.name)
        wordpress = site.wordpress
        desired_resources = wordpress.resources.to_requirements()
        validate_resources(desired_resources)
        memory_limit = k8s_memory_to_php_memory(wordpress.resources.memory_limit)

        with wrap_store_errors(KIND, name):
            try:
                deployment = self.store.get(KIND, site.namespace, name)
            except NotFoundError:
                logger.info(f"Deployment {site.namespace}/{name} not found, creating it")
                self._check_secret(site)
                self.store.create(KIND, site.namespace, self.build(site, memory_limit))
                return

            pod_spec = deployment["spec"]["template"]["spec"]
            container = pod_spec["containers"][0]
            init_containers = pod_spec.get("initContainers") or []
            update_needed = False

            if container.get("image") != wordpress.image:
                logger.info(f"Deployment {site.key}: image {container.get('image')} -> {wordpress.image}")
                container["image"] = wordpress.image
                update_needed = True

            for init_container in init_containers:
                if init_container.get("image") != wordpress.image:
                    init_container["image"] = wordpress.image
                    update_needed = True

            if deployment["spec"].get("replicas") != wordpress.replicas:
                logger.info(
                    f"Deployment {site.key}: replicas {deployment['spec'].get('replicas')} -> {wordpress.replicas}"
                )
                deployment["spec"]["replicas"] = wordpress.replicas
                update_needed = True

            if not resources_equal(container.get("resources"), desired_resources):
                logger.info(f"Deployment {site.key}: resources changed")
                container["resources"] = desired_resources
                update_needed = True

            env = container.get("env") or []
            if add_missing_env(env, wordpress.env):
                container["env"] = env
                update_needed = True

            if init_containers:
                init_env = init_containers[0].get("env") or []
                if upsert_env(init_env, MEMORY_LIMIT_ENV, memory_limit):
                    init_containers[0]["env"] = init_env
                    update_needed = True

            if update_needed:
                logger.info(f"Updating Deployment {site.namespace}/{name}")
                self.store.update(KIND, site.namespace, deployment)
