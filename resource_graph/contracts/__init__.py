"""
Contracts Module

This module defines the immutable data model shared by every layer of the
resource graph engine: identities, query-result shapes, derived graph
entities, selection, and the explicit error taxonomy.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All failures are typed errors carrying an ErrorCode
3. Hash-based identity for nodes and edges
4. All timestamps are timezone-aware UTC datetimes
"""

from .base import (
    ErrorCode, Error, GraphStoreError, EntityKind, NotFound, InvalidDateRange,
    InvalidChainLink, InvalidEnvironment, NotCollapsible, QueryValidationError,
    ResourceIdPart, ResourceId, resource_id, parent_resource_id,
    ViewSection,
)
from .identity import node_id, edge_id
from .events import (
    Resource, PrincipalChainPart, PrincipalChain, ResourceEvent,
    GlobalContainer, QueryResponse,
)
from .graph import (
    NodeId, EdgeId, IssueId, LayoutState, Position, Viewport, EnvironmentBadge,
    Node, Edge, Issue, EventChainLink, Selection, EMPTY_SELECTION,
)

__all__ = [
    "ErrorCode", "Error", "GraphStoreError", "EntityKind", "NotFound",
    "InvalidDateRange", "InvalidChainLink", "InvalidEnvironment", "NotCollapsible",
    "QueryValidationError", "ResourceIdPart", "ResourceId", "resource_id",
    "parent_resource_id", "ViewSection", "node_id", "edge_id",
    "Resource", "PrincipalChainPart", "PrincipalChain", "ResourceEvent",
    "GlobalContainer", "QueryResponse", "NodeId", "EdgeId", "IssueId",
    "LayoutState", "Position", "Viewport", "EnvironmentBadge", "Node", "Edge", "Issue",
    "EventChainLink", "Selection", "EMPTY_SELECTION",
]
