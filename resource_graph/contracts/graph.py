"""
Graph Contracts

Derived graph entities and the selection they participate in.

DESIGN PRINCIPLES:
==================
1. Relationships are id references only, never embedded objects
2. Entities are frozen; a change means a replaced entity in a cloned map
3. Selection sets are frozensets, replaced wholesale by actions
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from .base import ResourceId
from .events import ResourceEvent


NodeId = str
EdgeId = str
IssueId = str

MULTIPLE_EVENTS_LABEL = "(Multiple)"


class LayoutState(Enum):
    """
    Whether node positions from the layout collaborator are valid.

    Every re-derivation of nodes/edges starts at NOT_LAID_OUT.
    """
    NOT_LAID_OUT = "not_laid_out"
    LAID_OUT = "laid_out"


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Viewport:
    """Bounding box the view should frame, in layout coordinates."""
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min


@dataclass(frozen=True)
class EnvironmentBadge:
    """Environment shown on a node. ``inherited_from`` is None for own tags."""
    name: str
    color_index: int
    inherited_from: Optional[ResourceId] = None


@dataclass(frozen=True)
class Node:
    """
    Graph vertex derived from a Resource (or an address it implies).

    ``collapsed`` is only ever set on a node with children. ``hidden`` is
    True exactly when some ancestor is collapsed.
    """
    id: NodeId
    resource_id: ResourceId
    parent_id: Optional[NodeId] = None
    environments: Tuple[EnvironmentBadge, ...] = field(default_factory=tuple)
    issue_ids: Tuple[IssueId, ...] = field(default_factory=tuple)
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    position: Optional[Position] = None
    selected: bool = False
    num_children: int = 0
    collapsed: bool = False
    hidden: bool = False


@dataclass(frozen=True)
class Edge:
    """
    Graph connection derived from the flattened events of one (principal, resource) pair.

    ``marker`` is the visual arrow-head flag and always equals ``selected``.
    """
    id: EdgeId
    source: NodeId
    target: NodeId
    label: str
    events: Tuple[ResourceEvent, ...] = field(default_factory=tuple)
    selected: bool = False
    marker: bool = False

    def with_selected(self, selected: bool) -> Edge:
        return Edge(
            id=self.id,
            source=self.source,
            target=self.target,
            label=self.label,
            events=self.events,
            selected=selected,
            marker=selected
        )


@dataclass(frozen=True)
class Issue:
    """
    A finding referencing a subset of the graph.

    Two issues differing only in their referenced ids have different ids.
    """
    id: IssueId
    message: str
    resource_ids: Tuple[NodeId, ...] = field(default_factory=tuple)
    edge_ids: Tuple[EdgeId, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EventChainLink:
    """Edges chained before and after one edge through shared principals."""
    preceding: FrozenSet[EdgeId] = field(default_factory=frozenset)
    following: FrozenSet[EdgeId] = field(default_factory=frozenset)

    @property
    def linked(self) -> FrozenSet[EdgeId]:
        return self.preceding | self.following


@dataclass(frozen=True)
class Selection:
    """The only part of a snapshot the selection engine changes."""
    resources: FrozenSet[NodeId] = field(default_factory=frozenset)
    edges: FrozenSet[EdgeId] = field(default_factory=frozenset)
    issues: FrozenSet[IssueId] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not (self.resources or self.edges or self.issues)


EMPTY_SELECTION = Selection()
