"""Applying collected ClusterRoleBindings to a destination cluster."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from kubernetes.client import ApiException

from .classifier import belongs_to_namespace
from .errors import UnsupportedSubjectKind
from .kube import ClusterRbacClient
from .models import GROUP_KIND, SERVICE_ACCOUNT_KIND, USER_KIND, ClusterRoleBinding, Subject
from .serviceaccount import make_namespace_group_name, make_username, split_username


def remap_subject(subject: Subject, destination_namespace: str) -> Subject:
    """
    Return ``subject`` rewritten to refer to ``destination_namespace``.

    The subject must already be known to belong to the source namespace.

    Raises:
        InvalidServiceAccountUsername: if a User subject's name is not a
            service account username.
    """
    if subject.kind == SERVICE_ACCOUNT_KIND:
        return replace(subject, namespace=destination_namespace)
    if subject.kind == USER_KIND:
        username = split_username(subject.name)
        return replace(subject, name=make_username(destination_namespace, username.name))
    if subject.kind == GROUP_KIND:
        return replace(subject, name=make_namespace_group_name(destination_namespace))
    raise UnsupportedSubjectKind(f"Cannot remap subject of kind '{subject.kind}'")


def remap_subjects(
    binding: ClusterRoleBinding, namespace_mappings: Mapping[str, str]
) -> Tuple[Subject, ...]:
    """
    Rewrite the subjects of ``binding`` for each source -> destination mapping.

    Subjects that belong to none of the source namespaces are dropped so no
    identity from the source cluster leaks into the destination.
    """
    remapped: List[Subject] = []
    for source_namespace, destination_namespace in namespace_mappings.items():
        for subject in binding.subjects:
            if not belongs_to_namespace(subject, source_namespace):
                continue
            remapped.append(remap_subject(subject, destination_namespace))
    return tuple(remapped)


def prepare_for_apply(
    binding: ClusterRoleBinding, namespace_mappings: Mapping[str, str]
) -> ClusterRoleBinding:
    return binding.with_subjects(remap_subjects(binding, namespace_mappings))


def prepare_manifest_for_apply(
    manifest: Mapping[str, Any], namespace_mappings: Mapping[str, str]
) -> Dict[str, Any]:
    return prepare_for_apply(ClusterRoleBinding.from_dict(manifest), namespace_mappings).to_dict()


def merge_subjects(
    current: Tuple[Subject, ...], incoming: Tuple[Subject, ...]
) -> Tuple[Subject, ...]:
    """
    Union two subject lists keyed by canonical identity.

    Current subjects keep their position; an incoming subject with the same
    identity replaces the current one and new identities are appended.
    """
    merged: Dict[str, Subject] = {}
    for subject in current:
        merged[subject.canonical_identity()] = subject
    for subject in incoming:
        merged[subject.canonical_identity()] = subject
    return tuple(merged.values())


@dataclass
class MergeResult:
    name: str
    action: str
    subjects: Tuple[Subject, ...]


class ClusterRoleBindingMerger:
    """Writes bindings to the destination cluster without dropping foreign subjects."""

    CREATED = "created"
    UPDATED = "updated"

    def __init__(
        self, rbac_client: ClusterRbacClient, logger: Optional[logging.Logger] = None
    ) -> None:
        self.rbac_client = rbac_client
        self.logger = logger or logging.getLogger(__name__)

    def merge_and_apply(self, binding: ClusterRoleBinding) -> MergeResult:
        """
        Create ``binding`` or merge its subjects into the existing binding.

        Only a 404 on the initial read is handled; every other API error is
        raised to the caller. Nothing is retried, and a concurrent writer to
        the same binding may have its change overwritten.
        """
        try:
            current = self.rbac_client.get_cluster_role_binding(binding.name)
        except ApiException as exc:
            if exc.status != 404:
                raise
            self.rbac_client.create_cluster_role_binding(binding)
            return MergeResult(name=binding.name, action=self.CREATED, subjects=binding.subjects)

        updated = current.with_subjects(merge_subjects(current.subjects, binding.subjects))
        self.logger.debug(
            "Merging %d subject(s) into ClusterRoleBinding '%s' (%d present)",
            len(binding.subjects),
            binding.name,
            len(current.subjects),
        )
        self.rbac_client.update_cluster_role_binding(updated)
        return MergeResult(name=updated.name, action=self.UPDATED, subjects=updated.subjects)

    def merge_and_apply_manifest(self, manifest: Mapping[str, Any]) -> MergeResult:
        return self.merge_and_apply(ClusterRoleBinding.from_dict(manifest))
