#!/usr/bin/env python3
"""
KubePress WordPress operator - Entry Point

A CRD-based Kubernetes controller that watches WordPressSite objects and
converges their PVC, php.ini ConfigMap, Deployment and Service.

Usage:
    python run.py [--namespace NAMESPACE] [--in-cluster] [--workers N] [--verbose]

Environment:
    STORAGE_CLASS_NAME  Storage class for new PVCs (default: cluster default)
    VERSION             Operator version, added as a label to managed objects
"""

import argparse
import logging
import sys

from kubernetes import config

from kubepress.config import OperatorConfig
from kubepress.controller import WordPressSiteController

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="KubePress - Reconcile WordPressSite objects into running WordPress sites"
    )
    parser.add_argument(
        "--namespace", "-n",
        default=None,
        help="Namespace to watch (default: $WATCH_NAMESPACE or all namespaces)"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of sites reconciled concurrently"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )
    return parser.parse_args(argv)


def build_config(args) -> OperatorConfig:
    """Environment settings, overridden by command line flags."""
    operator_config = OperatorConfig.from_env()
    if args.namespace is not None:
        operator_config.namespace = args.namespace
    if args.workers is not None:
        operator_config.workers = args.workers
    if not operator_config.storage_class_name:
        logger.info("STORAGE_CLASS_NAME is not set. Default storage class will be used.")
    return operator_config


def main():
    """Main entry point."""
    args = parse_args()

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    operator_config = build_config(args)

    # Load Kubernetes configuration
    try:
        if args.in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster configuration")
        else:
            config.load_kube_config()
            logger.info("Loaded kubeconfig from default location")
    except Exception as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    # Create and run controller
    controller = WordPressSiteController(operator_config)

    try:
        controller.run()
    except KeyboardInterrupt:
        controller.stop()
        logger.info("Controller stopped")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Controller error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
