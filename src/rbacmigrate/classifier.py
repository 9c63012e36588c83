"""Deciding which namespace an RBAC subject belongs to."""

from __future__ import annotations

from .models import GROUP_KIND, SERVICE_ACCOUNT_KIND, USER_KIND, Subject
from .serviceaccount import namespace_from_group_name, parse_username


def belongs_to_namespace(subject: Subject, namespace: str) -> bool:
    """
    Return True if ``subject`` refers to a principal of ``namespace``.

    ServiceAccount subjects are matched on their namespace field. User and
    Group subjects only match when their name is a service account username
    or namespace group name; anything else, including a malformed username,
    is not a match.
    """
    if subject.kind == SERVICE_ACCOUNT_KIND:
        return subject.namespace == namespace
    if subject.kind == USER_KIND:
        username = parse_username(subject.name)
        return username is not None and username.namespace == namespace
    if subject.kind == GROUP_KIND:
        return namespace_from_group_name(subject.name) == namespace
    return False
