"""
Issue Derivation
================

Findings computed from a snapshot's flattened events and environments.

Issues are read-only to the selection engine apart from their selection
membership. An issue id encodes what it references, so two issues that
differ only in referenced ids never share an id.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from ..contracts.base import ResourceId, ViewSection
from ..contracts.events import ResourceEvent
from ..contracts.graph import Issue, IssueId, NodeId
from ..contracts.identity import edge_id, node_id
from .environments import ResourceEnvironments


SECRET_VALUE_TYPE = "Secret Value"
SECRET_HELD_EVENT_TYPE = "Held"
SECRET_HARDCODED_EVENT_TYPE = "Hardcoded"
BLOB_TYPE = "Blob"


def label_for_resource(rid: ResourceId) -> str:
    """Short label for messages: secret values are abbreviated to a hash prefix."""
    if not rid:
        return ""
    primary = rid[-1]
    if primary.type == SECRET_VALUE_TYPE:
        return primary.id[:7]
    if primary.type == "Kubernetes Cluster":
        return primary.id.split("-")[0]
    return primary.id


def secrets_issues(resource_events: Tuple[ResourceEvent, ...]) -> Dict[IssueId, Issue]:
    """Secret values held in several places, and secret values hardcoded in blobs."""
    issues: Dict[IssueId, Issue] = {}
    secrets_held_by: Dict[NodeId, List[ResourceEvent]] = {}

    for event in resource_events:
        if event.type not in (SECRET_HELD_EVENT_TYPE, SECRET_HARDCODED_EVENT_TYPE):
            continue
        if event.resource[0].type != SECRET_VALUE_TYPE:
            continue
        secrets_held_by.setdefault(node_id(event.resource), []).append(event)

    for secret_node_id, events in secrets_held_by.items():
        if len(events) >= 2:
            issue_id = f"multiple-helds-{secret_node_id}"
            issues[issue_id] = Issue(
                id=issue_id,
                message=(
                    f"Secret Value {label_for_resource(events[0].resource)} "
                    f"is held in multiple locations"
                ),
                resource_ids=(secret_node_id,) + tuple(node_id(e.principal) for e in events),
                edge_ids=tuple(edge_id(e.principal, e.resource) for e in events)
            )

        for event in events:
            if event.type != SECRET_HARDCODED_EVENT_TYPE or event.principal[-1].type != BLOB_TYPE:
                continue
            eid = edge_id(event.principal, event.resource)
            issue_id = f"hardcoded-secret-value-{eid}"
            issues[issue_id] = Issue(
                id=issue_id,
                message=(
                    f"Secret Value {label_for_resource(event.resource)} is hardcoded in "
                    f"{'/'.join(part.id for part in event.principal[1:])}"
                ),
                resource_ids=(secret_node_id, node_id(event.principal)),
                edge_ids=(eid,)
            )

    return issues


def environment_issues(
    resource_events: Tuple[ResourceEvent, ...],
    resources_environments: Mapping[NodeId, ResourceEnvironments]
) -> Dict[IssueId, Issue]:
    """Events whose principal and resource are tagged with disjoint environments."""
    issues: Dict[IssueId, Issue] = {}

    for event in resource_events:
        principal_node_id = node_id(event.principal)
        resource_node_id = node_id(event.resource)

        resource_environments = resources_environments.get(resource_node_id, {})
        if not resource_environments:
            continue

        principal_environments = resources_environments.get(principal_node_id, {})
        if not principal_environments:
            continue

        if any(env in resource_environments for env in principal_environments):
            continue

        issue_id = f"across-environments-{principal_node_id}-{resource_node_id}"
        issues[issue_id] = Issue(
            id=issue_id,
            message=(
                f"Principal {label_for_resource(event.principal)} performed action "
                f"{event.type} on resource {label_for_resource(event.resource)} "
                f"across environments"
            ),
            resource_ids=(resource_node_id, principal_node_id),
            edge_ids=(edge_id(event.principal, event.resource),)
        )

    return issues


def derive_issues(
    section: ViewSection,
    resource_events: Tuple[ResourceEvent, ...],
    resources_environments: Mapping[NodeId, ResourceEnvironments]
) -> Mapping[IssueId, Issue]:
    if section == ViewSection.SECRETS:
        issues = secrets_issues(resource_events)
        issues.update(environment_issues(resource_events, resources_environments))
    elif section == ViewSection.ENVIRONMENTS:
        issues = environment_issues(resource_events, resources_environments)
    else:
        issues = {}
    return MappingProxyType(issues)


def issue_ids_by_node(issues: Mapping[IssueId, Issue]) -> Dict[NodeId, Tuple[IssueId, ...]]:
    by_node: Dict[NodeId, List[IssueId]] = {}
    for issue in issues.values():
        for nid in issue.resource_ids:
            ids = by_node.setdefault(nid, [])
            if issue.id not in ids:
                ids.append(issue.id)
    return {nid: tuple(ids) for nid, ids in by_node.items()}
