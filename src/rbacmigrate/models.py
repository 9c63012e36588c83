"""Value types for RBAC subjects and ClusterRoleBindings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Final, Iterable, Mapping, Tuple

from .errors import DecodeError

RBAC_API_GROUP: Final[str] = "rbac.authorization.k8s.io"
RBAC_API_VERSION: Final[str] = f"{RBAC_API_GROUP}/v1"

SERVICE_ACCOUNT_KIND: Final[str] = "ServiceAccount"
USER_KIND: Final[str] = "User"
GROUP_KIND: Final[str] = "Group"
SUBJECT_KINDS: Final[Tuple[str, ...]] = (SERVICE_ACCOUNT_KIND, USER_KIND, GROUP_KIND)

# Metadata the API server owns; never carried from one cluster to another.
SERVER_MANAGED_METADATA: Final[Tuple[str, ...]] = (
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "managedFields",
    "generation",
    "selfLink",
)


@dataclass(frozen=True)
class Subject:
    kind: str
    name: str
    namespace: str = ""
    api_group: str = ""

    @classmethod
    def service_account(cls, name: str, namespace: str) -> "Subject":
        return cls(kind=SERVICE_ACCOUNT_KIND, name=name, namespace=namespace)

    @classmethod
    def user(cls, name: str) -> "Subject":
        return cls(kind=USER_KIND, name=name, api_group=RBAC_API_GROUP)

    @classmethod
    def group(cls, name: str) -> "Subject":
        return cls(kind=GROUP_KIND, name=name, api_group=RBAC_API_GROUP)

    @classmethod
    def from_dict(cls, data: Any) -> "Subject":
        if not isinstance(data, Mapping):
            raise DecodeError(f"Subject must be a mapping, got {type(data).__name__}")
        kind = data.get("kind")
        name = data.get("name")
        if not kind or not name:
            raise DecodeError(f"Subject is missing kind or name: {dict(data)}")
        return cls(
            kind=str(kind),
            name=str(name),
            namespace=str(data.get("namespace") or ""),
            api_group=str(data.get("apiGroup") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        body = {"kind": self.kind, "name": self.name}
        if self.api_group:
            body["apiGroup"] = self.api_group
        if self.namespace:
            body["namespace"] = self.namespace
        return body

    def canonical_identity(self) -> str:
        """Return the key two subjects share when they name the same principal."""

        return json.dumps([self.kind, self.name, self.namespace])


@dataclass(frozen=True)
class RoleRef:
    name: str
    kind: str = "ClusterRole"
    api_group: str = RBAC_API_GROUP

    @classmethod
    def from_dict(cls, data: Any) -> "RoleRef":
        if not isinstance(data, Mapping) or not data.get("name"):
            raise DecodeError(f"roleRef must be a mapping with a name, got {data!r}")
        return cls(
            name=str(data["name"]),
            kind=str(data.get("kind") or "ClusterRole"),
            api_group=str(data.get("apiGroup") or RBAC_API_GROUP),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"apiGroup": self.api_group, "kind": self.kind, "name": self.name}


@dataclass(frozen=True)
class ClusterRoleBinding:
    """
    A cluster-scoped grant of a ClusterRole to a list of subjects.

    ``metadata`` holds everything from the object's metadata besides the name
    (labels, annotations, resourceVersion, ...) so that a binding read from the
    cluster can be written back without losing fields.
    """

    name: str
    role_ref: RoleRef
    subjects: Tuple[Subject, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @property
    def role_ref_name(self) -> str:
        return self.role_ref.name

    @classmethod
    def from_dict(cls, manifest: Any) -> "ClusterRoleBinding":
        """
        Decode an unstructured ClusterRoleBinding manifest.

        Raises:
            DecodeError: if the manifest lacks a name or a roleRef, or its
                subjects are not a list of subject mappings.
        """
        if not isinstance(manifest, Mapping):
            raise DecodeError(f"ClusterRoleBinding must be a mapping, got {type(manifest).__name__}")
        metadata = manifest.get("metadata") or {}
        if not isinstance(metadata, Mapping) or not metadata.get("name"):
            raise DecodeError("ClusterRoleBinding is missing metadata.name")
        raw_subjects = manifest.get("subjects") or []
        if not isinstance(raw_subjects, list):
            raise DecodeError(
                f"ClusterRoleBinding '{metadata['name']}' has non-list subjects"
            )
        return cls(
            name=str(metadata["name"]),
            role_ref=RoleRef.from_dict(manifest.get("roleRef")),
            subjects=tuple(Subject.from_dict(subject) for subject in raw_subjects),
            metadata={key: value for key, value in metadata.items() if key != "name"},
        )

    def to_dict(self) -> Dict[str, Any]:
        metadata = dict(self.metadata)
        metadata["name"] = self.name
        return {
            "apiVersion": RBAC_API_VERSION,
            "kind": "ClusterRoleBinding",
            "metadata": metadata,
            "roleRef": self.role_ref.to_dict(),
            "subjects": [subject.to_dict() for subject in self.subjects],
        }

    def with_subjects(self, subjects: Iterable[Subject]) -> "ClusterRoleBinding":
        return replace(self, subjects=tuple(subjects))

    def without_server_fields(self) -> "ClusterRoleBinding":
        return replace(self, metadata=strip_server_fields(self.metadata))


def strip_server_fields(metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``metadata`` without the fields the API server manages."""

    return {
        key: value
        for key, value in metadata.items()
        if key not in SERVER_MANAGED_METADATA and value is not None
    }
