"""
Engine Test Fixtures

Explicit, deterministic query results and snapshots.
All fixtures are hand-written - random generation lives in contract_tests.
"""

from dataclasses import replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Optional, Sequence

from resource_graph.contracts import (
    GlobalContainer, Issue, PrincipalChainPart, QueryResponse, Resource,
    ResourceEvent, ResourceId, ViewSection, edge_id, node_id, resource_id,
)
from resource_graph.core.store import GraphStore, build_store
from resource_graph.temporal.date_filter import DateFilter


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

T0 = datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 1, 10, 18, 30, 0, tzinfo=timezone.utc)
OLD_FIRST = datetime(2025, 6, 1, 0, 0, 0, tzinfo=timezone.utc)
OLD_LAST = datetime(2025, 6, 2, 0, 0, 0, tzinfo=timezone.utc)

WINDOW = DateFilter(
    start_date=datetime(2025, 12, 1, tzinfo=timezone.utc),
    end_date=datetime(2026, 2, 1, tzinfo=timezone.utc)
)
WIDE_WINDOW = DateFilter(
    start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
    end_date=datetime(2026, 2, 1, tzinfo=timezone.utc)
)


# =============================================================================
# RESOURCE ADDRESSES
# =============================================================================

ACCOUNT = resource_id(("AWS Account", "123456789012"))
ROLE = ACCOUNT + resource_id(("IAM Role", "deployer"))
BUCKET = ACCOUNT + resource_id(("S3 Bucket", "artifacts"))
FUNCTION = ACCOUNT + resource_id(("Lambda Function", "build"))

ORG = resource_id(("GitHub Organization", "acme"))
USER = ORG + resource_id(("GitHub User", "alice"))
REPO = ORG + resource_id(("GitHub Repository", "app"))
BLOB = REPO + resource_id(("Blob", "config.py"))

SECRET = resource_id(("Secret Value", "5f2b9c8e7d6a14"))
VAULT_SECRET = resource_id(("Vault", "kv"), ("Vault Secret", "db"))

CLUSTER = resource_id(("Kubernetes Cluster", "prod-eu-1"))


# =============================================================================
# BUILDERS
# =============================================================================

def part(rid: ResourceId, event: Optional[str] = None) -> PrincipalChainPart:
    return PrincipalChainPart(id=rid, event=event)


def res(rid: ResourceId, *environments: str, first=T0, last=T1) -> Resource:
    return Resource(id=rid, first_seen_at=first, last_seen_at=last, environments=tuple(environments))


def event(
    principal: ResourceId,
    type_: str,
    resource: ResourceId,
    chains: Optional[Sequence[Sequence[PrincipalChainPart]]] = None,
    first=T0,
    last=T1
) -> ResourceEvent:
    """Event whose chain defaults to the principal acting directly."""
    if chains is None:
        chains = [[part(principal)]]
    return ResourceEvent(
        principal=principal,
        type=type_,
        resource=resource,
        first_seen_at=first,
        last_seen_at=last,
        principal_chains=tuple(tuple(chain) for chain in chains)
    )


# =============================================================================
# QUERY FIXTURES
# =============================================================================

def create_query() -> QueryResponse:
    """
    Cloud account, GitHub organisation and a leaked secret.

    Edges after flattening:
    - USER -> ROLE (AssumeRole), chained before ROLE -> BUCKET (Read)
    - FUNCTION -> BUCKET (Write)
    - VAULT_SECRET -> SECRET (Held)
    - BLOB -> SECRET (Hardcoded)
    - FUNCTION -> ROLE (AssumeRole), outside WINDOW
    """
    return QueryResponse(
        resources=(
            res(ACCOUNT, "production"),
            res(ROLE),
            res(BUCKET),
            res(FUNCTION),
            res(ORG, "development"),
            res(USER),
            res(REPO),
            res(BLOB),
            res(SECRET),
            res(VAULT_SECRET),
            res(CLUSTER, "staging", first=OLD_FIRST, last=OLD_LAST),
        ),
        events=(
            event(USER, "Read", BUCKET, chains=[[part(USER), part(ROLE, "AssumeRole")]]),
            event(FUNCTION, "Write", BUCKET),
            event(VAULT_SECRET, "Held", SECRET),
            event(BLOB, "Hardcoded", SECRET),
            event(FUNCTION, "AssumeRole", ROLE, first=OLD_FIRST, last=OLD_LAST),
        ),
        global_containers=(
            GlobalContainer(id=CLUSTER, contains=FUNCTION),
        )
    )


def create_store(section: ViewSection = ViewSection.SECRETS) -> GraphStore:
    return build_store(create_query(), section, WINDOW)


# Minimal graph used by the selection scenarios: A -> B, B -> C, D -> A
NODE_A = resource_id(("Host", "a"))
NODE_B = resource_id(("Host", "b"))
NODE_C = resource_id(("Host", "c"))
NODE_D = resource_id(("Host", "d"))

A, B, C, D = node_id(NODE_A), node_id(NODE_B), node_id(NODE_C), node_id(NODE_D)
E_AB = edge_id(NODE_A, NODE_B)
E_BC = edge_id(NODE_B, NODE_C)
E_DA = edge_id(NODE_D, NODE_A)


def create_simple_query() -> QueryResponse:
    return QueryResponse(
        resources=(res(NODE_A), res(NODE_B), res(NODE_C), res(NODE_D)),
        events=(
            event(NODE_A, "Connect", NODE_B),
            event(NODE_B, "Connect", NODE_C),
            event(NODE_D, "Connect", NODE_A),
        )
    )


def issue(issue_id: str, resource_ids: Iterable[str] = (), edge_ids: Iterable[str] = ()) -> Issue:
    return Issue(
        id=issue_id,
        message=f"Issue {issue_id}",
        resource_ids=tuple(resource_ids),
        edge_ids=tuple(edge_ids)
    )


def create_simple_store(*issues: Issue) -> GraphStore:
    """Minimal graph with externally supplied issues."""
    store = build_store(create_simple_query(), ViewSection.INVENTORY, WINDOW)
    return replace(store, issues=MappingProxyType({i.id: i for i in issues}))


# =============================================================================
# INVARIANT CHECKS
# =============================================================================

def assert_invariants(state: GraphStore):
    """Selection flags and sets agree, edges stay anchored and issues stay covered."""
    selection = state.selection

    for eid, edge in state.edges.items():
        assert edge.marker == edge.selected, f"Edge {eid} marker out of sync"
        assert (eid in selection.edges) == edge.selected, f"Edge {eid} flag out of sync"

    for nid, node in state.nodes.items():
        assert (nid in selection.resources) == node.selected, f"Node {nid} flag out of sync"

    for eid in selection.edges:
        edge = state.edges[eid]
        assert edge.source in selection.resources or edge.target in selection.resources, \
            f"Selected edge {eid} has no selected endpoint"

    for iid in selection.issues:
        selected_issue = state.issues[iid]
        assert set(selected_issue.resource_ids) <= selection.resources, \
            f"Selected issue {iid} references an unselected resource"
        assert set(selected_issue.edge_ids) <= selection.edges, \
            f"Selected issue {iid} references an unselected edge"
