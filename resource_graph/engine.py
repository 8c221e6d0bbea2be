"""
Engine Orchestration Module

Single entry point that serialises every action against the current
GraphStore snapshot.

DESIGN PRINCIPLES:
==================
1. Actions are frozen dataclasses; the reducer is a pure function
2. The session holds exactly one snapshot and swaps it atomically
3. Every dispatch is recorded through observability, including failures
4. A failed action leaves the current snapshot in place
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Mapping, Optional
import os
import time

from .contracts.base import GraphStoreError, ResourceId, ViewSection, format_resource_id
from .contracts.events import ActionOutcomeKind, QueryResponse
from .contracts.graph import EdgeId, IssueId, NodeId, Position
from .core.selection import (
    clear_selection, deselect_edge, deselect_issue, deselect_resource,
    select_edge, select_issue, select_resource
)
from .core.store import GraphStore, build_store, set_date_filter
from .core.tagging import tag_environment, untag_environment
from .core.visibility import collapse_all, expand_all, toggle_node_collapsed
from .observability import ObservabilityConfig, ObservabilityEngine
from .temporal.date_filter import DateFilter, last_days
from .temporal.layout import fit_view, invalidate_layout, update_layout


# =============================================================================
# CONFIGURATION
# =============================================================================

ENV_PREFIX = "RESOURCE_GRAPH_"


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Configuration for a GraphSession."""
    default_window_days: int = 30
    default_section: ViewSection = ViewSection.INVENTORY
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.observability = self.observability or ObservabilityConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
        """
        Build a config from RESOURCE_GRAPH_* variables.

        RESOURCE_GRAPH_WINDOW_DAYS, RESOURCE_GRAPH_SECTION,
        RESOURCE_GRAPH_AUDIT, RESOURCE_GRAPH_AUDIT_CAPACITY and
        RESOURCE_GRAPH_METRICS are read; unset variables keep the defaults.
        Unparseable values raise ValueError.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if f"{ENV_PREFIX}WINDOW_DAYS" in env:
            config.default_window_days = int(env[f"{ENV_PREFIX}WINDOW_DAYS"])
            if config.default_window_days < 0:
                raise ValueError("RESOURCE_GRAPH_WINDOW_DAYS must not be negative")
        if f"{ENV_PREFIX}SECTION" in env:
            config.default_section = ViewSection(env[f"{ENV_PREFIX}SECTION"].strip().lower())
        if f"{ENV_PREFIX}AUDIT" in env:
            config.observability.enable_audit = _env_flag(env[f"{ENV_PREFIX}AUDIT"])
        if f"{ENV_PREFIX}AUDIT_CAPACITY" in env:
            capacity = int(env[f"{ENV_PREFIX}AUDIT_CAPACITY"])
            config.observability.audit_capacity = capacity if capacity > 0 else None
        if f"{ENV_PREFIX}METRICS" in env:
            config.observability.enable_metrics = _env_flag(env[f"{ENV_PREFIX}METRICS"])

        return config


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class Action:
    name: ClassVar[str] = "action"

    @property
    def entity_id(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class SelectResource(Action):
    name: ClassVar[str] = "select_resource"
    resource_id: NodeId
    select_edges: bool = True
    refit_view: bool = True

    @property
    def entity_id(self) -> Optional[str]:
        return self.resource_id


@dataclass(frozen=True)
class DeselectResource(Action):
    name: ClassVar[str] = "deselect_resource"
    resource_id: NodeId

    @property
    def entity_id(self) -> Optional[str]:
        return self.resource_id


@dataclass(frozen=True)
class SelectEdge(Action):
    name: ClassVar[str] = "select_edge"
    edge_id: EdgeId
    refit_view: bool = True

    @property
    def entity_id(self) -> Optional[str]:
        return self.edge_id


@dataclass(frozen=True)
class DeselectEdge(Action):
    name: ClassVar[str] = "deselect_edge"
    edge_id: EdgeId

    @property
    def entity_id(self) -> Optional[str]:
        return self.edge_id


@dataclass(frozen=True)
class SelectIssue(Action):
    name: ClassVar[str] = "select_issue"
    issue_id: IssueId
    refit_view: bool = True

    @property
    def entity_id(self) -> Optional[str]:
        return self.issue_id


@dataclass(frozen=True)
class DeselectIssue(Action):
    name: ClassVar[str] = "deselect_issue"
    issue_id: IssueId

    @property
    def entity_id(self) -> Optional[str]:
        return self.issue_id


@dataclass(frozen=True)
class ClearSelection(Action):
    name: ClassVar[str] = "clear_selection"


@dataclass(frozen=True)
class SetDateFilter(Action):
    name: ClassVar[str] = "set_date_filter"
    date_filter: DateFilter


@dataclass(frozen=True)
class UpdateLayout(Action):
    name: ClassVar[str] = "update_layout"
    positions: Mapping[NodeId, Position] = field(default_factory=dict)


@dataclass(frozen=True)
class FitView(Action):
    name: ClassVar[str] = "fit_view"
    fit_to_selection: bool = True


@dataclass(frozen=True)
class InvalidateLayout(Action):
    name: ClassVar[str] = "invalidate_layout"


@dataclass(frozen=True)
class CollapseAll(Action):
    name: ClassVar[str] = "collapse_all"


@dataclass(frozen=True)
class ExpandAll(Action):
    name: ClassVar[str] = "expand_all"


@dataclass(frozen=True)
class ToggleNodeCollapsed(Action):
    name: ClassVar[str] = "toggle_node_collapsed"
    node_id: NodeId

    @property
    def entity_id(self) -> Optional[str]:
        return self.node_id


@dataclass(frozen=True)
class TagEnvironment(Action):
    name: ClassVar[str] = "tag_environment"
    resource_id: ResourceId
    environment: str

    @property
    def entity_id(self) -> Optional[str]:
        return format_resource_id(self.resource_id)


@dataclass(frozen=True)
class UntagEnvironment(Action):
    name: ClassVar[str] = "untag_environment"
    resource_id: ResourceId
    environment: str

    @property
    def entity_id(self) -> Optional[str]:
        return format_resource_id(self.resource_id)


@dataclass(frozen=True)
class Reinitialize(Action):
    """Replace the snapshot with one derived from a new query result."""
    name: ClassVar[str] = "reinitialize"
    query: QueryResponse
    section: Optional[ViewSection] = None
    date_filter: Optional[DateFilter] = None


# =============================================================================
# REDUCER
# =============================================================================

def reduce(state: GraphStore, action: Action) -> GraphStore:
    """
    Apply one action. Returns ``state`` itself when nothing changes.

    Raises GraphStoreError subclasses for stale ids and invalid inputs,
    TypeError for an object that is not a known action.
    """
    if isinstance(action, SelectResource):
        return select_resource(state, action.resource_id, action.select_edges, action.refit_view)
    if isinstance(action, DeselectResource):
        return deselect_resource(state, action.resource_id)
    if isinstance(action, SelectEdge):
        return select_edge(state, action.edge_id, action.refit_view)
    if isinstance(action, DeselectEdge):
        return deselect_edge(state, action.edge_id)
    if isinstance(action, SelectIssue):
        return select_issue(state, action.issue_id, action.refit_view)
    if isinstance(action, DeselectIssue):
        return deselect_issue(state, action.issue_id)
    if isinstance(action, ClearSelection):
        return clear_selection(state)
    if isinstance(action, SetDateFilter):
        return set_date_filter(state, action.date_filter)
    if isinstance(action, UpdateLayout):
        return update_layout(state, action.positions)
    if isinstance(action, FitView):
        return fit_view(state, action.fit_to_selection)
    if isinstance(action, InvalidateLayout):
        return invalidate_layout(state)
    if isinstance(action, CollapseAll):
        return collapse_all(state)
    if isinstance(action, ExpandAll):
        return expand_all(state)
    if isinstance(action, ToggleNodeCollapsed):
        return toggle_node_collapsed(state, action.node_id)
    if isinstance(action, TagEnvironment):
        return tag_environment(state, action.resource_id, action.environment)
    if isinstance(action, UntagEnvironment):
        return untag_environment(state, action.resource_id, action.environment)
    if isinstance(action, Reinitialize):
        return build_store(
            action.query,
            action.section or state.section,
            action.date_filter or state.date_filter
        )
    raise TypeError(f"Unknown action: {action!r}")


# =============================================================================
# SESSION
# =============================================================================

@dataclass(frozen=True)
class ActionOutcome:
    """Result of one dispatch. ``changed`` is False for a strict no-op."""
    changed: bool
    state: GraphStore


class GraphSession:
    """
    Owner of the current GraphStore snapshot.

    Actions are applied strictly one at a time. The snapshot reference is
    replaced only after the reducer returns, so no caller ever observes a
    half-applied action or a half-rebuilt chain index.
    """

    def __init__(
        self,
        query: QueryResponse,
        section: Optional[ViewSection] = None,
        date_filter: Optional[DateFilter] = None,
        config: Optional[EngineConfig] = None,
        now: Optional[datetime] = None
    ):
        self._config = config or EngineConfig()
        self._observability = ObservabilityEngine(self._config.observability)

        self._state = build_store(
            query,
            section or self._config.default_section,
            date_filter or last_days(self._config.default_window_days, now)
        )
        self._observability.record_snapshot(
            len(self._state.nodes), len(self._state.edges), "initialize"
        )

    @property
    def state(self) -> GraphStore:
        return self._state

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def dispatch(self, action: Action) -> ActionOutcome:
        """
        Reduce ``action`` against the current snapshot and keep the result.

        Failures are recorded and re-raised; the snapshot is unchanged.
        """
        started = time.perf_counter()
        try:
            new_state = reduce(self._state, action)
        except GraphStoreError as e:
            self._observability.record_action(
                action.name,
                ActionOutcomeKind.FAILED,
                entity_id=action.entity_id,
                duration_ms=(time.perf_counter() - started) * 1000,
                error=e.error
            )
            raise

        changed = new_state is not self._state
        self._state = new_state

        self._observability.record_action(
            action.name,
            ActionOutcomeKind.CHANGED if changed else ActionOutcomeKind.NO_OP,
            entity_id=action.entity_id,
            duration_ms=(time.perf_counter() - started) * 1000
        )
        if changed and isinstance(action, (SetDateFilter, Reinitialize)):
            self._observability.record_snapshot(
                len(new_state.nodes), len(new_state.edges), action.name
            )

        return ActionOutcome(changed=changed, state=new_state)

    def reinitialize(
        self,
        query: QueryResponse,
        section: Optional[ViewSection] = None,
        date_filter: Optional[DateFilter] = None
    ) -> ActionOutcome:
        """Swap in a snapshot built from fresh query results."""
        return self.dispatch(Reinitialize(query=query, section=section, date_filter=date_filter))
