"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- All value types are frozen dataclasses for immutability guarantee
- Errors are raised as typed exceptions that carry an immutable Error value
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Lookup errors
    RESOURCE_NOT_FOUND = auto()
    EDGE_NOT_FOUND = auto()
    ISSUE_NOT_FOUND = auto()

    # Derivation errors
    INVALID_CHAIN_LINK = auto()
    INVALID_ENVIRONMENT = auto()
    NOT_COLLAPSIBLE = auto()

    # Boundary errors
    INVALID_DATE_RANGE = auto()
    MALFORMED_PAYLOAD = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data - they can be stored in the audit log and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class GraphStoreError(Exception):
    """
    Base exception for every failure surfaced by the engine.

    The failing action never returns a partial state: callers keep the
    snapshot they dispatched against.
    """

    code: ErrorCode = ErrorCode.MALFORMED_PAYLOAD

    def __init__(self, message: str, context: Optional[Tuple[Tuple[str, str], ...]] = None):
        super().__init__(message)
        self.error = Error(
            code=self.code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=context or ()
        )


class EntityKind(Enum):
    """Kinds of graph entity an id can refer to."""
    RESOURCE = "resource"
    EDGE = "edge"
    ISSUE = "issue"


_NOT_FOUND_CODES = {
    EntityKind.RESOURCE: ErrorCode.RESOURCE_NOT_FOUND,
    EntityKind.EDGE: ErrorCode.EDGE_NOT_FOUND,
    EntityKind.ISSUE: ErrorCode.ISSUE_NOT_FOUND,
}


class NotFound(GraphStoreError):
    """A caller referenced an id that does not exist in the current snapshot."""

    def __init__(self, kind: EntityKind, entity_id: str, action: Optional[str] = None):
        self.kind = kind
        self.entity_id = entity_id
        self.code = _NOT_FOUND_CODES[kind]
        message = f"{kind.value.capitalize()} with id {entity_id} not found"
        if action:
            message += f" while attempting to {action}"
        super().__init__(
            message,
            context=(("kind", kind.value), ("id", entity_id))
        )


class InvalidDateRange(GraphStoreError):
    """Date filter bounds are missing, naive, or out of order."""
    code = ErrorCode.INVALID_DATE_RANGE


class InvalidChainLink(GraphStoreError):
    """A principal chain entry cannot be turned into an edge."""
    code = ErrorCode.INVALID_CHAIN_LINK


class InvalidEnvironment(GraphStoreError):
    """An environment tag operation does not apply to the resource."""
    code = ErrorCode.INVALID_ENVIRONMENT


class NotCollapsible(GraphStoreError):
    """Only a node with children can be collapsed or expanded."""
    code = ErrorCode.NOT_COLLAPSIBLE


class QueryValidationError(GraphStoreError):
    """Raw query payload rejected at the ingestion boundary."""
    code = ErrorCode.MALFORMED_PAYLOAD


# =============================================================================
# IDENTITY TYPES (Immutable, order-significant)
# =============================================================================

@dataclass(frozen=True)
class ResourceIdPart:
    """One typed segment of a hierarchical resource address."""
    type: str
    id: str


# Ordered from outermost container to the resource itself. Never reordered.
ResourceId = Tuple[ResourceIdPart, ...]


def resource_id(*parts: Tuple[str, str]) -> ResourceId:
    """Build a ResourceId from ``(type, id)`` pairs."""
    return tuple(ResourceIdPart(type=part_type, id=part_id) for part_type, part_id in parts)


def parent_resource_id(rid: ResourceId) -> Optional[ResourceId]:
    """Address of the containing resource, or None for a root resource."""
    if len(rid) <= 1:
        return None
    return rid[:-1]


def format_resource_id(rid: ResourceId) -> str:
    """Human readable rendering used in error messages and audit entries."""
    return " › ".join(f"{part.type}:{part.id}" for part in rid)


# =============================================================================
# VIEW SECTIONS
# =============================================================================

class ViewSection(Enum):
    """
    Which part of the application the graph is rendered for.
    Determines which issues are derived for a snapshot.
    """
    INVENTORY = "inventory"
    SECRETS = "secrets"
    ENVIRONMENTS = "environments"
