from typing import Any, Dict, List, Optional

from kubernetes.client import ApiException

RBAC_API_VERSION = "rbac.authorization.k8s.io/v1"


def not_found() -> ApiException:
    """The error the API server returns for a missing object."""
    return ApiException(status=404, reason="Not Found")


def sa_subject(name: str, namespace: str) -> Dict[str, str]:
    return {"kind": "ServiceAccount", "name": name, "namespace": namespace}


def user_subject(name: str) -> Dict[str, str]:
    return {"kind": "User", "name": name, "apiGroup": "rbac.authorization.k8s.io"}


def group_subject(name: str) -> Dict[str, str]:
    return {"kind": "Group", "name": name, "apiGroup": "rbac.authorization.k8s.io"}


def crb_manifest(
    name: str,
    role: str,
    subjects: List[Dict[str, str]],
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Builds an unstructured ClusterRoleBinding as the API server returns it."""
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRoleBinding",
        "metadata": {"name": name, **(metadata or {})},
        "roleRef": {
            "apiGroup": "rbac.authorization.k8s.io",
            "kind": "ClusterRole",
            "name": role,
        },
        "subjects": subjects,
    }


def cluster_role_manifest(name: str) -> Dict[str, Any]:
    return {
        "apiVersion": RBAC_API_VERSION,
        "kind": "ClusterRole",
        "metadata": {"name": name, "resourceVersion": "42", "uid": "abc"},
        "rules": [{"apiGroups": [""], "resources": ["pods"], "verbs": ["get", "list"]}],
    }
