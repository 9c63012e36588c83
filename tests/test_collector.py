import pytest
from kubernetes.client import ApiException

from rbacmigrate.collector import (
    ClusterRoleBindingCollector,
    binding_relevant,
    extract_subjects,
    prepare_for_collection,
    prepare_manifest_for_collection,
)
from rbacmigrate.errors import DecodeError
from rbacmigrate.models import ClusterRoleBinding, Subject
from tests.helpers import (
    cluster_role_manifest,
    crb_manifest,
    group_subject,
    sa_subject,
    user_subject,
)

# --- Test Data ---

SA1 = sa_subject("sa1", "ns-a")
USER1 = user_subject("system:serviceaccount:ns-b:user1")
GROUP1 = group_subject("system:serviceaccounts:ns-a")
HUMAN = user_subject("alice@example.com")

MIXED_BINDING = crb_manifest("mixed", "edit", [SA1, USER1, GROUP1, HUMAN])
OTHER_ROLE_BINDING = crb_manifest("other", "view", [sa_subject("sa9", "ns-a")])
UNRELATED_BINDING = crb_manifest("unrelated", "edit", [sa_subject("sa2", "ns-z"), HUMAN])


def _binding(manifest):
    return ClusterRoleBinding.from_dict(manifest)


# --- Test Cases ---

def test_binding_relevant():
    binding = _binding(MIXED_BINDING)
    assert binding_relevant(binding, "ns-a")
    assert binding_relevant(binding, "ns-b")
    assert not binding_relevant(binding, "ns-z")


def test_binding_without_subjects_is_not_relevant():
    assert not binding_relevant(_binding(crb_manifest("empty", "edit", [])), "ns-a")


def test_extract_subjects_for_single_namespace():
    subjects = extract_subjects(_binding(MIXED_BINDING), {"ns-a"})
    assert subjects == (Subject.from_dict(SA1), Subject.from_dict(GROUP1))


def test_extract_subjects_for_multiple_namespaces_keeps_binding_order():
    subjects = extract_subjects(_binding(MIXED_BINDING), ["ns-b", "ns-a"])
    assert subjects == (
        Subject.from_dict(SA1),
        Subject.from_dict(USER1),
        Subject.from_dict(GROUP1),
    )


def test_extract_subjects_repeats_subject_per_matching_namespace():
    subjects = extract_subjects(_binding(MIXED_BINDING), ["ns-a", "ns-a"])
    assert subjects == (
        Subject.from_dict(SA1),
        Subject.from_dict(SA1),
        Subject.from_dict(GROUP1),
        Subject.from_dict(GROUP1),
    )


def test_prepare_for_collection_keeps_name_and_role():
    binding = _binding(MIXED_BINDING)
    collected = prepare_for_collection(binding, {"ns-b"})

    assert collected.name == "mixed"
    assert collected.role_ref == binding.role_ref
    assert collected.subjects == (Subject.from_dict(USER1),)
    # The source binding is left untouched
    assert len(binding.subjects) == 4


def test_prepare_manifest_for_collection():
    manifest = prepare_manifest_for_collection(MIXED_BINDING, ["ns-a"])
    assert manifest["metadata"]["name"] == "mixed"
    assert manifest["subjects"] == [SA1, GROUP1]
    assert len(MIXED_BINDING["subjects"]) == 4


def test_cluster_role_binding_to_be_collected(rbac_client):
    collector = ClusterRoleBindingCollector(rbac_client)
    assert collector.cluster_role_binding_to_be_collected(MIXED_BINDING, "ns-b")
    assert not collector.cluster_role_binding_to_be_collected(UNRELATED_BINDING, "ns-b")


def test_cluster_role_binding_to_be_collected_rejects_malformed(rbac_client):
    collector = ClusterRoleBindingCollector(rbac_client)
    with pytest.raises(DecodeError):
        collector.cluster_role_binding_to_be_collected({"metadata": {"name": "x"}}, "ns-a")


def test_cluster_role_relevant_through_bindings(rbac_client, list_bindings):
    list_bindings(UNRELATED_BINDING, OTHER_ROLE_BINDING, MIXED_BINDING)
    collector = ClusterRoleBindingCollector(rbac_client)

    assert collector.cluster_role_relevant("edit", "ns-b")
    assert collector.cluster_role_relevant("view", "ns-a")
    # 'view' is only bound in ns-a
    assert not collector.cluster_role_relevant("view", "ns-b")
    assert not collector.cluster_role_relevant("admin", "ns-a")


def test_cluster_role_to_be_collected(rbac_client, list_bindings):
    list_bindings(MIXED_BINDING)
    collector = ClusterRoleBindingCollector(rbac_client)

    assert collector.cluster_role_to_be_collected(cluster_role_manifest("edit"), "ns-a")
    assert not collector.cluster_role_to_be_collected(cluster_role_manifest("edit"), "ns-z")


def test_cluster_role_to_be_collected_requires_name(rbac_client):
    collector = ClusterRoleBindingCollector(rbac_client)
    with pytest.raises(DecodeError):
        collector.cluster_role_to_be_collected({"metadata": {}}, "ns-a")


def test_cluster_role_relevant_propagates_list_errors(rbac_client, mock_rbac_api):
    mock_rbac_api.list_cluster_role_binding.side_effect = ApiException(status=500, reason="boom")
    collector = ClusterRoleBindingCollector(rbac_client)

    with pytest.raises(ApiException) as exc_info:
        collector.cluster_role_relevant("edit", "ns-a")
    assert exc_info.value.status == 500


def test_cluster_role_relevant_propagates_decode_errors(rbac_client, list_bindings):
    list_bindings(MIXED_BINDING, {"metadata": {"name": "broken"}})
    collector = ClusterRoleBindingCollector(rbac_client)

    with pytest.raises(DecodeError):
        collector.cluster_role_relevant("edit", "ns-a")


def test_relevant_bindings(rbac_client, list_bindings):
    list_bindings(UNRELATED_BINDING, OTHER_ROLE_BINDING, MIXED_BINDING)
    collector = ClusterRoleBindingCollector(rbac_client)

    assert [b.name for b in collector.relevant_bindings("ns-a")] == ["other", "mixed"]


def test_collect_narrows_bindings_and_reads_roles(rbac_client, mock_rbac_api, list_bindings):
    list_bindings(
        crb_manifest(
            "mixed",
            "edit",
            [SA1, USER1, GROUP1, HUMAN],
            metadata={"resourceVersion": "12", "uid": "xyz", "labels": {"team": "a"}},
        ),
        UNRELATED_BINDING,
        OTHER_ROLE_BINDING,
    )
    mock_rbac_api.read_cluster_role.side_effect = lambda name: cluster_role_manifest(name)
    collector = ClusterRoleBindingCollector(rbac_client)

    bindings, cluster_roles = collector.collect(["ns-a"])

    assert [b.name for b in bindings] == ["mixed", "other"]
    assert bindings[0].subjects == (Subject.from_dict(SA1), Subject.from_dict(GROUP1))
    assert bindings[0].metadata == {"labels": {"team": "a"}}
    assert [role["metadata"]["name"] for role in cluster_roles] == ["edit", "view"]
    assert cluster_roles[0]["metadata"] == {"name": "edit"}
