"""Namespace-scoped migration of ClusterRoleBindings between clusters."""

from .applier import ClusterRoleBindingMerger, MergeResult, prepare_for_apply, remap_subjects
from .classifier import belongs_to_namespace
from .collector import ClusterRoleBindingCollector, binding_relevant, extract_subjects, prepare_for_collection
from .models import ClusterRoleBinding, RoleRef, Subject

__all__ = [
    "ClusterRoleBinding",
    "ClusterRoleBindingCollector",
    "ClusterRoleBindingMerger",
    "MergeResult",
    "RoleRef",
    "Subject",
    "belongs_to_namespace",
    "binding_relevant",
    "extract_subjects",
    "prepare_for_apply",
    "prepare_for_collection",
    "remap_subjects",
]
