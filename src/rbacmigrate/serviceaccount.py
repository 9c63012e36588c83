"""Encoding helpers for service account usernames and group names.

Kubernetes authenticates a service account as the user
``system:serviceaccount:<namespace>:<name>`` and places it in the groups
``system:serviceaccounts`` and ``system:serviceaccounts:<namespace>``. RBAC
subjects of kind User and Group refer to service accounts through these
strings, so the namespace a subject belongs to has to be recovered from them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Optional

from .errors import InvalidServiceAccountUsername

SERVICE_ACCOUNT_USERNAME_PREFIX: Final[str] = "system:serviceaccount:"
SERVICE_ACCOUNT_GROUP_PREFIX: Final[str] = "system:serviceaccounts:"

DNS1123_LABEL_REGEX: Final[str] = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
DNS1123_SUBDOMAIN_REGEX: Final[str] = (
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
DNS1123_LABEL_MAX_LENGTH: Final[int] = 63
DNS1123_SUBDOMAIN_MAX_LENGTH: Final[int] = 253


@dataclass(frozen=True)
class ServiceAccountUsername:
    """The (namespace, name) pair encoded in a service account username."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return make_username(self.namespace, self.name)


def _is_dns1123_label(value: str) -> bool:
    return len(value) <= DNS1123_LABEL_MAX_LENGTH and re.fullmatch(DNS1123_LABEL_REGEX, value) is not None


def _is_dns1123_subdomain(value: str) -> bool:
    return (
        len(value) <= DNS1123_SUBDOMAIN_MAX_LENGTH
        and re.fullmatch(DNS1123_SUBDOMAIN_REGEX, value) is not None
    )


def make_username(namespace: str, name: str) -> str:
    """Return the username a service account authenticates as."""

    return f"{SERVICE_ACCOUNT_USERNAME_PREFIX}{namespace}:{name}"


def make_namespace_group_name(namespace: str) -> str:
    """Return the group every service account in ``namespace`` belongs to."""

    return f"{SERVICE_ACCOUNT_GROUP_PREFIX}{namespace}"


def split_username(username: str) -> ServiceAccountUsername:
    """
    Split a service account username into its namespace and account name.

    Raises:
        InvalidServiceAccountUsername: if ``username`` does not have the form
            ``system:serviceaccount:<namespace>:<name>`` or either part is not
            a valid object name.
    """
    if not username.startswith(SERVICE_ACCOUNT_USERNAME_PREFIX):
        raise InvalidServiceAccountUsername(
            f"Username '{username}' must be in the form "
            f"{SERVICE_ACCOUNT_USERNAME_PREFIX}namespace:name"
        )
    parts = username[len(SERVICE_ACCOUNT_USERNAME_PREFIX):].split(":")
    if len(parts) != 2:
        raise InvalidServiceAccountUsername(
            f"Username '{username}' must be in the form "
            f"{SERVICE_ACCOUNT_USERNAME_PREFIX}namespace:name"
        )
    namespace, name = parts
    if not _is_dns1123_label(namespace):
        raise InvalidServiceAccountUsername(
            f"Username '{username}' has an invalid namespace '{namespace}'"
        )
    if not _is_dns1123_subdomain(name):
        raise InvalidServiceAccountUsername(
            f"Username '{username}' has an invalid service account name '{name}'"
        )
    return ServiceAccountUsername(namespace=namespace, name=name)


def parse_username(username: str) -> Optional[ServiceAccountUsername]:
    """Like :func:`split_username`, but returns None for a malformed username."""

    try:
        return split_username(username)
    except InvalidServiceAccountUsername:
        return None


def namespace_from_group_name(group: str) -> str:
    """
    Strip the service account group prefix from ``group``.

    A name without the prefix is returned unchanged; it will not equal any
    real namespace name.
    """
    if group.startswith(SERVICE_ACCOUNT_GROUP_PREFIX):
        return group[len(SERVICE_ACCOUNT_GROUP_PREFIX):]
    return group
