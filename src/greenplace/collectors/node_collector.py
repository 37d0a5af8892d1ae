# src/greenplace/collectors/node_collector.py

import asyncio
import logging
from typing import List, Optional

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client.rest import ApiException

from ..models.node import NodeUsage
from .base_collector import BaseCollector

logger = logging.getLogger(__name__)

ENERGY_ANNOTATION = "greenplace.io/energy-kwh"
INSTANCE_TYPE_LABELS = ("node.kubernetes.io/instance-type", "beta.kubernetes.io/instance-type")

# Kubernetes configuration is process-wide; load it once.
_CONFIG_LOCK = asyncio.Lock()
_CONFIG_LOADED = False


async def ensure_k8s_config() -> bool:
    """
    Loads the Kubernetes configuration exactly once, trying the in-cluster
    service account first and the local kubeconfig second.

    Returns:
        bool: True if config was loaded (now or earlier), False otherwise.
    """
    global _CONFIG_LOADED

    if _CONFIG_LOADED:
        return True

    async with _CONFIG_LOCK:
        if _CONFIG_LOADED:
            return True

        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration.")
            _CONFIG_LOADED = True
            return True
        except config.ConfigException:
            logger.debug("In-cluster config not found.")

        try:
            await config.load_kube_config()
            logger.info("Loaded Kubernetes configuration from kubeconfig file.")
            _CONFIG_LOADED = True
            return True
        except config.ConfigException:
            logger.warning("Could not find kubeconfig file.")
        except Exception as e:
            logger.warning(f"Unexpected error loading kubeconfig: {e}")

    logger.warning("Failed to load any Kubernetes configuration.")
    return False


def _energy_from_annotations(name: str, annotations: dict) -> Optional[float]:
    raw = annotations.get(ENERGY_ANNOTATION)
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Node '%s' has a non-numeric %s annotation: %r", name, ENERGY_ANNOTATION, raw)
        return None
    if value < 0:
        logger.warning("Node '%s' has a negative %s annotation: %r", name, ENERGY_ANNOTATION, raw)
        return None
    return value


class NodeCollector(BaseCollector):
    """Lists cluster nodes with their topology labels and energy annotation."""

    def __init__(self, api: Optional[client.CoreV1Api] = None):
        self._api = api

    async def _ensure_client(self) -> Optional[client.CoreV1Api]:
        if self._api:
            return self._api
        if await ensure_k8s_config():
            self._api = client.CoreV1Api()
        return self._api

    async def collect(self) -> List[NodeUsage]:
        """
        Collects every node of the cluster.

        Returns:
            List[NodeUsage]: one entry per node; empty when the cluster cannot
            be reached.
        """
        api = await self._ensure_client()
        if not api:
            logger.debug("Kubernetes client not configured; skipping node collection.")
            return []

        try:
            nodes = await api.list_node(watch=False)
        except ApiException as e:
            logger.error("Kubernetes API error while listing nodes: %s", e)
            return []
        except Exception as e:
            logger.error("An unexpected error occurred while collecting nodes: %s", e)
            return []

        usages = []
        for node in nodes.items or []:
            name = node.metadata.name
            labels = node.metadata.labels or {}
            annotations = node.metadata.annotations or {}
            instance_type = next((labels[key] for key in INSTANCE_TYPE_LABELS if labels.get(key)), None)

            usages.append(
                NodeUsage(
                    name=name,
                    labels=labels,
                    energy_kwh=_energy_from_annotations(name, annotations),
                    instance_type=instance_type,
                )
            )
            logger.debug(" -> Node '%s': instance=%s", name, instance_type)

        if not usages:
            logger.warning("No nodes found in the cluster.")
        return usages

    async def close(self):
        """Close the Kubernetes API client if it exists."""
        if self._api:
            await self._api.api_client.close()
            logger.debug("NodeCollector Kubernetes client closed.")
            self._api = None
