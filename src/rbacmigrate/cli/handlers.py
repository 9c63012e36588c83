"""
This module contains the handler functions for the CLI commands.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from rich.console import Console
from rich.table import Table

from ..applier import ClusterRoleBindingMerger, prepare_for_apply
from ..collector import ClusterRoleBindingCollector
from ..errors import DecodeError
from ..kube import ClusterRbacClient, load_api_client
from ..models import ClusterRoleBinding

logger = logging.getLogger(__name__)


def build_rbac_client(config: Dict[str, Any], cluster: str) -> ClusterRbacClient:
    """Creates a client for the 'source' or 'destination' cluster of the config."""
    context = (config.get(cluster) or {}).get("context")
    api_client = load_api_client(context=context, kubeconfig=config.get("kubeconfig"))
    return ClusterRbacClient(api_client=api_client)


def _format_subjects(binding: ClusterRoleBinding) -> str:
    return "\n".join(
        f"{subject.kind}/{subject.namespace + '/' if subject.namespace else ''}{subject.name}"
        for subject in binding.subjects
    )


def inspect_namespaces(config: Dict[str, Any], namespaces: Sequence[str]) -> None:
    """Shows the ClusterRoleBindings and ClusterRoles relevant to each namespace."""
    console = Console()
    collector = ClusterRoleBindingCollector(build_rbac_client(config, "source"))

    for namespace in namespaces:
        bindings = collector.relevant_bindings(namespace)
        if not bindings:
            console.print(f"No ClusterRoleBindings reference namespace '{namespace}'.")
            continue

        table = Table(title=f"Cluster RBAC in namespace [bold]{namespace}[/bold]")
        table.add_column("ClusterRoleBinding", style="cyan", no_wrap=True)
        table.add_column("ClusterRole", style="magenta", no_wrap=True)
        table.add_column("Subjects", style="green")
        for binding in bindings:
            table.add_row(binding.name, binding.role_ref_name, _format_subjects(binding))
        console.print(table)


def collect_namespaces(
    config: Dict[str, Any], namespaces: Sequence[str], output: Optional[Path]
) -> None:
    """Writes the cluster RBAC objects of the namespaces as a multi-document YAML."""
    console = Console(stderr=True)
    collector = ClusterRoleBindingCollector(build_rbac_client(config, "source"))
    bindings, cluster_roles = collector.collect(namespaces)

    documents: List[Dict[str, Any]] = list(cluster_roles)
    documents.extend(binding.to_dict() for binding in bindings)

    if output is None:
        # Plain print so the YAML can be piped without Rich's markup
        print(yaml.safe_dump_all(documents, sort_keys=False), end="")
    else:
        with open(output, "w") as f:
            yaml.safe_dump_all(documents, f, sort_keys=False)
    console.print(
        f"✅ Collected {len(bindings)} ClusterRoleBinding(s) and "
        f"{len(cluster_roles)} ClusterRole(s) for {', '.join(namespaces)}."
    )


def load_collected(path: Path) -> tuple[List[Dict[str, Any]], List[ClusterRoleBinding]]:
    """Reads a file written by collect, returning ClusterRole manifests and bindings."""
    try:
        with open(path, "r") as f:
            documents = [doc for doc in yaml.safe_load_all(f) if doc]
    except (OSError, yaml.YAMLError) as e:
        raise DecodeError(f"Could not read collected objects from {path}: {e}")

    cluster_roles: List[Dict[str, Any]] = []
    bindings: List[ClusterRoleBinding] = []
    for document in documents:
        if not isinstance(document, dict):
            raise DecodeError(f"Unexpected document in {path}: {document!r}")
        kind = document.get("kind")
        if kind == "ClusterRole":
            cluster_roles.append(document)
        elif kind == "ClusterRoleBinding":
            bindings.append(ClusterRoleBinding.from_dict(document))
        else:
            logger.warning("Skipping unsupported kind '%s' in %s", kind, path)
    return cluster_roles, bindings


def apply_collected(
    config: Dict[str, Any],
    path: Path,
    namespace_mappings: Dict[str, str],
    dry_run: bool = False,
) -> None:
    """Remaps collected bindings and merges them into the destination cluster."""
    console = Console()
    cluster_roles, bindings = load_collected(path)
    prepared = [prepare_for_apply(binding, namespace_mappings) for binding in bindings]

    if dry_run:
        print(
            yaml.safe_dump_all(
                cluster_roles + [binding.to_dict() for binding in prepared], sort_keys=False
            ),
            end="",
        )
        return

    rbac_client = build_rbac_client(config, "destination")
    for cluster_role in cluster_roles:
        rbac_client.create_cluster_role(cluster_role)

    merger = ClusterRoleBindingMerger(rbac_client)
    table = Table(title="Applied ClusterRoleBindings")
    table.add_column("Name", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Subjects", style="magenta")
    for binding in prepared:
        result = merger.merge_and_apply(binding)
        table.add_row(result.name, result.action, str(len(result.subjects)))
    console.print(table)
