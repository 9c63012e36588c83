"""Access to the RBAC API of a single cluster."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client import ApiException

from .errors import KubeConfigError
from .models import RBAC_API_VERSION, ClusterRoleBinding, strip_server_fields


def load_api_client(
    context: Optional[str] = None, kubeconfig: Optional[str] = None
) -> client.ApiClient:
    """
    Build an ApiClient for one cluster.

    A kubeconfig context is used when one can be loaded; otherwise the
    in-cluster service account configuration is tried.
    """
    try:
        return config.new_client_from_config(config_file=kubeconfig, context=context)
    except config.ConfigException as e:
        if context:
            raise KubeConfigError(f"Could not load kubeconfig context '{context}': {e}")
    configuration = client.Configuration()
    try:
        config.load_incluster_config(client_configuration=configuration)
    except config.ConfigException as e:
        raise KubeConfigError(
            f"No usable kubeconfig and not running in a cluster: {e}"
        )
    return client.ApiClient(configuration=configuration)


class ClusterRbacClient:
    """Reads and writes ClusterRoleBindings and ClusterRoles on one cluster."""

    def __init__(
        self,
        rbac_v1: Optional[client.RbacAuthorizationV1Api] = None,
        api_client: Optional[client.ApiClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.rbac_v1 = rbac_v1 or client.RbacAuthorizationV1Api(api_client)
        serializer = api_client if api_client is not None else getattr(self.rbac_v1, "api_client", None)
        if not isinstance(serializer, client.ApiClient):
            serializer = client.ApiClient()
        self._serializer = serializer
        self.logger = logger or logging.getLogger(__name__)

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self._serializer.sanitize_for_serialization(obj)

    def list_cluster_role_bindings(self) -> List[ClusterRoleBinding]:
        response = self.rbac_v1.list_cluster_role_binding()
        return [ClusterRoleBinding.from_dict(self._to_dict(item)) for item in response.items]

    def get_cluster_role_binding(self, name: str) -> ClusterRoleBinding:
        """Read a binding by name; a missing binding raises ApiException with status 404."""

        return ClusterRoleBinding.from_dict(
            self._to_dict(self.rbac_v1.read_cluster_role_binding(name=name))
        )

    def create_cluster_role_binding(self, binding: ClusterRoleBinding) -> None:
        self.rbac_v1.create_cluster_role_binding(body=binding.to_dict())
        self.logger.info("ClusterRoleBinding '%s' created", binding.name)

    def update_cluster_role_binding(self, binding: ClusterRoleBinding) -> None:
        self.rbac_v1.replace_cluster_role_binding(name=binding.name, body=binding.to_dict())
        self.logger.info("ClusterRoleBinding '%s' updated", binding.name)

    def read_cluster_role(self, name: str) -> Dict[str, Any]:
        manifest = self._to_dict(self.rbac_v1.read_cluster_role(name=name))
        manifest.setdefault("apiVersion", RBAC_API_VERSION)
        manifest.setdefault("kind", "ClusterRole")
        manifest["metadata"] = strip_server_fields(manifest.get("metadata") or {})
        return manifest

    def create_cluster_role(self, manifest: Dict[str, Any]) -> bool:
        """Create a ClusterRole, returning False if one with that name already exists."""

        name = manifest["metadata"]["name"]
        try:
            self.rbac_v1.create_cluster_role(body=manifest)
        except ApiException as exc:
            if exc.status != 409:
                raise
            self.logger.info("ClusterRole '%s' already exists", name)
            return False
        self.logger.info("ClusterRole '%s' created", name)
        return True
