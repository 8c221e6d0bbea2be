"""
Graph Store
===========

The authoritative, immutable snapshot handed to rendering consumers.

LIFECYCLE:
- Built empty-selected when a query's results load or the date filter changes
- Transformed only by actions, each returning either the SAME object
  (no-op) or a new snapshot sharing every untouched field by reference
- Discarded wholesale on the next query or filter change; derived caches
  (notably the EventChainIndex) are never patched in place
"""

from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from ..contracts.base import ViewSection
from ..contracts.events import QueryResponse, Resource, ResourceEvent
from ..contracts.graph import (
    EMPTY_SELECTION, Edge, EdgeId, EventChainLink, Issue, IssueId, LayoutState,
    Node, NodeId, Selection, Viewport
)
from ..contracts.identity import node_id
from ..temporal.date_filter import DateFilter, is_within_date_range, validate_date_filter
from .chain_index import EventChainIndex, build_event_chain_index
from .environments import (
    ResourceEnvironments, build_resources_environments, collect_environments
)
from .graph import attach_issue_ids, derive_edges, derive_nodes
from .hierarchy import initial_visibility
from .issues import derive_issues, issue_ids_by_node


@dataclass(frozen=True)
class GraphStore:
    """
    Immutable snapshot of one query view.

    ``query`` is the unfiltered validated result; ``resources``/``events``
    are the subsets overlapping ``date_filter``. A fit-view request made
    before layout waits in ``fit_view_after_layout`` together with its mode.
    """
    section: ViewSection
    query: QueryResponse
    date_filter: DateFilter
    resources: Tuple[Resource, ...]
    events: Tuple[ResourceEvent, ...]
    environments: Tuple[str, ...]
    resources_environments: Mapping[NodeId, ResourceEnvironments]
    event_chain_index: EventChainIndex
    nodes: Mapping[NodeId, Node]
    edges: Mapping[EdgeId, Edge]
    issues: Mapping[IssueId, Issue]
    selection: Selection = EMPTY_SELECTION
    layout_state: LayoutState = LayoutState.NOT_LAID_OUT
    fit_view_after_layout: bool = True
    fit_to_selection_after_layout: bool = True
    viewport: Optional[Viewport] = None

    @property
    def resource_events(self) -> Tuple[ResourceEvent, ...]:
        """Flattened single-hop events the edges were derived from."""
        return self.event_chain_index.resource_events

    @property
    def event_chain_links(self) -> Mapping[EdgeId, EventChainLink]:
        return self.event_chain_index.links


def build_store(
    query: QueryResponse,
    section: ViewSection,
    date_filter: DateFilter
) -> GraphStore:
    """
    Derive a complete snapshot from a validated query result.

    Pure function: same inputs → equal snapshot. Raises InvalidDateRange or
    InvalidChainLink without producing any snapshot.
    """
    validate_date_filter(date_filter)

    # Environments come from the unfiltered data so colour indices are
    # stable across date filters
    environments = collect_environments(query.resources)
    resources_environments = build_resources_environments(query.resources)
    all_resources_by_node = {node_id(resource.id): resource for resource in query.resources}

    resources = tuple(
        resource for resource in query.resources
        if is_within_date_range(date_filter, resource.first_seen_at, resource.last_seen_at)
    )
    events = tuple(
        event for event in query.events
        if is_within_date_range(date_filter, event.first_seen_at, event.last_seen_at)
    )

    event_chain_index = build_event_chain_index(events)

    nodes = derive_nodes(
        resources,
        event_chain_index.resource_events,
        query.global_containers,
        all_resources_by_node,
        environments
    )
    edges = derive_edges(event_chain_index.resource_events)

    issues = derive_issues(section, event_chain_index.resource_events, resources_environments)
    nodes = attach_issue_ids(nodes, issue_ids_by_node(issues))
    nodes = initial_visibility(nodes, section)

    return GraphStore(
        section=section,
        query=query,
        date_filter=date_filter,
        resources=resources,
        events=events,
        environments=environments,
        resources_environments=resources_environments,
        event_chain_index=event_chain_index,
        nodes=MappingProxyType(nodes),
        edges=MappingProxyType(edges),
        issues=issues
    )


def set_date_filter(state: GraphStore, date_filter: DateFilter) -> GraphStore:
    """
    Re-derive the snapshot for a new time window.

    Same window → same snapshot object. Otherwise selection is cleared and
    layout is reset by construction: the new snapshot shares nothing derived.
    """
    validate_date_filter(date_filter)

    if (
        state.date_filter.start_date == date_filter.start_date
        and state.date_filter.end_date == date_filter.end_date
    ):
        return state

    return build_store(state.query, state.section, date_filter)
