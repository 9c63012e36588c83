"""
This file contains shared fixtures for all tests.
"""

import pytest
from unittest.mock import MagicMock

from rbacmigrate.kube import ClusterRbacClient


@pytest.fixture
def mock_rbac_api():
    """A stand-in for kubernetes.client.RbacAuthorizationV1Api."""
    return MagicMock()


@pytest.fixture
def rbac_client(mock_rbac_api):
    return ClusterRbacClient(rbac_v1=mock_rbac_api)


@pytest.fixture
def list_bindings(mock_rbac_api):
    """Sets the ClusterRoleBindings returned by list_cluster_role_binding."""

    def _set(*manifests):
        mock_rbac_api.list_cluster_role_binding.return_value = MagicMock(items=list(manifests))

    return _set
