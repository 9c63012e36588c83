"""Collection of ClusterRoleBindings and ClusterRoles for a set of namespaces."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .classifier import belongs_to_namespace
from .errors import DecodeError
from .kube import ClusterRbacClient
from .models import ClusterRoleBinding, Subject


def binding_relevant(binding: ClusterRoleBinding, namespace: str) -> bool:
    """Return True if any subject of ``binding`` belongs to ``namespace``."""

    return any(belongs_to_namespace(subject, namespace) for subject in binding.subjects)


def extract_subjects(
    binding: ClusterRoleBinding, namespaces: Iterable[str]
) -> Tuple[Subject, ...]:
    """
    Return the subjects of ``binding`` that belong to one of ``namespaces``.

    A subject is appended once for every requested namespace it matches, so a
    namespace listed twice yields the subject twice.
    """
    requested = list(namespaces)
    collected: List[Subject] = []
    for subject in binding.subjects:
        for namespace in requested:
            if belongs_to_namespace(subject, namespace):
                collected.append(subject)
    return tuple(collected)


def prepare_for_collection(
    binding: ClusterRoleBinding, namespaces: Iterable[str]
) -> ClusterRoleBinding:
    """Return a copy of ``binding`` carrying only the subjects of ``namespaces``."""

    return binding.with_subjects(extract_subjects(binding, namespaces))


def prepare_manifest_for_collection(
    manifest: Mapping[str, Any], namespaces: Iterable[str]
) -> Dict[str, Any]:
    return prepare_for_collection(ClusterRoleBinding.from_dict(manifest), namespaces).to_dict()


def _object_name(manifest: Mapping[str, Any]) -> str:
    metadata = manifest.get("metadata") if isinstance(manifest, Mapping) else None
    if not isinstance(metadata, Mapping) or not metadata.get("name"):
        raise DecodeError("Object is missing metadata.name")
    return str(metadata["name"])


class ClusterRoleBindingCollector:
    """Decides which cluster-scoped RBAC objects belong to a namespace."""

    def __init__(
        self, rbac_client: ClusterRbacClient, logger: Optional[logging.Logger] = None
    ) -> None:
        self.rbac_client = rbac_client
        self.logger = logger or logging.getLogger(__name__)

    def cluster_role_relevant(self, cluster_role_name: str, namespace: str) -> bool:
        """
        Return True if a binding of the ClusterRole has a subject in ``namespace``.

        ClusterRoles carry no subjects, so every ClusterRoleBinding on the
        cluster is listed and those referencing the role are scanned. Errors
        listing or decoding the bindings propagate.
        """
        for binding in self.rbac_client.list_cluster_role_bindings():
            if binding.role_ref_name != cluster_role_name:
                continue
            if binding_relevant(binding, namespace):
                self.logger.debug(
                    "ClusterRole '%s' is bound in namespace '%s' by '%s'",
                    cluster_role_name,
                    namespace,
                    binding.name,
                )
                return True
        return False

    def cluster_role_binding_to_be_collected(
        self, manifest: Mapping[str, Any], namespace: str
    ) -> bool:
        return binding_relevant(ClusterRoleBinding.from_dict(manifest), namespace)

    def cluster_role_to_be_collected(self, manifest: Mapping[str, Any], namespace: str) -> bool:
        return self.cluster_role_relevant(_object_name(manifest), namespace)

    def relevant_bindings(self, namespace: str) -> List[ClusterRoleBinding]:
        """List the cluster's ClusterRoleBindings with a subject in ``namespace``."""

        return [
            binding
            for binding in self.rbac_client.list_cluster_role_bindings()
            if binding_relevant(binding, namespace)
        ]

    def collect(
        self, namespaces: Iterable[str]
    ) -> Tuple[List[ClusterRoleBinding], List[Dict[str, Any]]]:
        """
        Gather everything needed to migrate ``namespaces``.

        Returns the relevant bindings, narrowed to the requested namespaces'
        subjects and stripped of server-managed metadata, together with the
        manifests of the ClusterRoles they reference.
        """
        requested = list(namespaces)
        bindings: List[ClusterRoleBinding] = []
        for binding in self.rbac_client.list_cluster_role_bindings():
            if not any(binding_relevant(binding, namespace) for namespace in requested):
                continue
            collected = prepare_for_collection(binding, requested).without_server_fields()
            self.logger.info(
                "Collected ClusterRoleBinding '%s' with %d subject(s)",
                collected.name,
                len(collected.subjects),
            )
            bindings.append(collected)

        cluster_roles: List[Dict[str, Any]] = []
        for role_name in dict.fromkeys(binding.role_ref_name for binding in bindings):
            cluster_roles.append(self.rbac_client.read_cluster_role(role_name))
            self.logger.info("Collected ClusterRole '%s'", role_name)
        return bindings, cluster_roles
