#!/usr/bin/env python3
"""
Cluster image inventory.

Lists pods in all namespaces and collects the images referenced by their
containers and init containers, normalized for joining against pull events.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from kubernetes import client, config

from zim.image_ref import normalize_image_reference
from zim.utils.error_utils import ClusterQueryError, create_kubernetes_error
from zim.utils.logging_utils import get_logger
from zim.utils.retry_utils import retry_operation

logger = get_logger(__name__)

PAGE_SIZE = 500


def _container_images(containers: Optional[List[Any]]) -> List[str]:
	return [c.image for c in containers or [] if c.image]


@dataclass
class PodImages:
	"""Images referenced by one pod spec"""
	name: str = ""
	namespace: str = ""
	containers: List[str] = field(default_factory=list)
	init_containers: List[str] = field(default_factory=list)

	@property
	def images(self) -> List[str]:
		return self.containers + self.init_containers


def _build_api_client(kubeconfig: Optional[str]) -> client.ApiClient:
	"""Create an API client from the kubeconfig file, falling back to in-cluster config.

	Raises:
		ClusterQueryError if neither configuration can be loaded
	"""
	kubeconfig_error = None
	if kubeconfig and os.path.exists(kubeconfig):
		try:
			api_client = config.new_client_from_config(config_file=kubeconfig)
			logger.debug(f"Kubernetes client initialized from {kubeconfig}")
			return api_client
		except Exception as e:
			kubeconfig_error = e
			logger.debug(f"Could not load kubeconfig {kubeconfig}: {e}")

	try:
		configuration = client.Configuration()
		config.load_incluster_config(client_configuration=configuration)
		logger.debug("Kubernetes client initialized with in-cluster config")
		return client.ApiClient(configuration)
	except Exception as e:
		error = create_kubernetes_error("Load cluster configuration", kubeconfig_error or e)
		error.details["kubeconfig"] = kubeconfig
		if kubeconfig_error is None:
			error.suggestions.insert(0, f"No kubeconfig found at {kubeconfig}; pass --kubeconfig")
		raise error from e


class KubernetesPodLister:
	"""Lists pods across all namespaces through the Kubernetes API"""

	def __init__(self, kubeconfig: Optional[str] = None, timeout: int = 30,
	             retry_settings: Optional[Dict[str, Any]] = None, core_v1: Any = None):
		self.kubeconfig = kubeconfig
		self.timeout = timeout
		self.retry_settings = retry_settings or {}
		self._core_v1 = core_v1

	@property
	def core_v1(self) -> Any:
		if self._core_v1 is None:
			self._core_v1 = client.CoreV1Api(_build_api_client(self.kubeconfig))
		return self._core_v1

	def _list_page(self, continue_token: Optional[str]) -> Any:
		kwargs = {"limit": PAGE_SIZE, "_request_timeout": self.timeout}
		if continue_token:
			kwargs["_continue"] = continue_token
		core_v1 = self.core_v1
		return retry_operation(
			lambda: core_v1.list_pod_for_all_namespaces(**kwargs),
			operation_name="list pods in all namespaces",
			**self.retry_settings,
		)

	def list_all_pods(self) -> List[PodImages]:
		"""Every pod's container and init-container images, following list pagination."""
		pods: List[PodImages] = []
		continue_token = None
		while True:
			try:
				page = self._list_page(continue_token)
			except ClusterQueryError:
				raise
			except Exception as e:
				raise create_kubernetes_error("List pods in all namespaces", e) from e

			for pod in page.items or []:
				spec = pod.spec
				metadata = pod.metadata
				pods.append(PodImages(
					name=metadata.name if metadata else "",
					namespace=metadata.namespace if metadata else "",
					containers=_container_images(spec.containers if spec else None),
					init_containers=_container_images(spec.init_containers if spec else None),
				))

			continue_token = page.metadata._continue if page.metadata else None
			if not continue_token:
				break

		logger.debug(f"Listed {len(pods)} pods across all namespaces")
		return pods


class ClusterImageInventory:
	"""Normalized identities of every image referenced by a pod in the cluster"""

	def __init__(self, pod_lister: Any):
		self.pod_lister = pod_lister

	def list_live_images(self) -> Set[str]:
		"""Union of normalized container and init-container images over all pods.

		Raises:
			ClusterQueryError if the pod listing fails; no partial inventory is returned
		"""
		try:
			pods = self.pod_lister.list_all_pods()
		except ClusterQueryError:
			raise
		except Exception as e:
			raise create_kubernetes_error("List pods in all namespaces", e) from e

		live_images: Set[str] = set()
		for pod in pods:
			for image in pod.images:
				identity = normalize_image_reference(image)
				if identity:
					live_images.add(identity)

		logger.info(f"Found {len(live_images)} unique images in use across {len(pods)} pods")
		return live_images
