"""
Event Contracts

Immutable shapes of the validated query result and of the records emitted
to the observability layer.

Query result types mirror what the query API returns, after the ingestion
layer has checked and converted them. The engine never sees raw payloads.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .base import ErrorCode, ResourceId


# =============================================================================
# QUERY RESULT CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class Resource:
    """A discovered asset. Source of truth for a Node."""
    id: ResourceId
    first_seen_at: datetime
    last_seen_at: datetime
    environments: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PrincipalChainPart:
    """
    One intermediate identity on the path from a principal to a resource.

    ``event`` names the event type of the hop that ENDS at this part.
    When absent the hop takes the enclosing event's type.
    """
    id: ResourceId
    event: Optional[str] = None


PrincipalChain = Tuple[PrincipalChainPart, ...]


@dataclass(frozen=True)
class ResourceEvent:
    """
    An observed action of a principal on a resource. Source of truth for an Edge.

    Roles are asymmetric: principal acts, resource is acted on.
    """
    principal: ResourceId
    type: str
    resource: ResourceId
    first_seen_at: datetime
    last_seen_at: datetime
    principal_chains: Tuple[PrincipalChain, ...]


@dataclass(frozen=True)
class GlobalContainer:
    """Declares that ``contains`` is drawn inside ``id`` in the graph."""
    id: ResourceId
    contains: ResourceId


@dataclass(frozen=True)
class QueryResponse:
    """Validated query result. Any section may be empty."""
    resources: Tuple[Resource, ...] = field(default_factory=tuple)
    events: Tuple[ResourceEvent, ...] = field(default_factory=tuple)
    global_containers: Tuple[GlobalContainer, ...] = field(default_factory=tuple)


# =============================================================================
# OBSERVABILITY LAYER CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    SNAPSHOT = "snapshot"
    ACTION = "action"
    ERROR = "error"


class ActionOutcomeKind(Enum):
    CHANGED = "changed"
    NO_OP = "no_op"
    FAILED = "failed"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: datetime
    action: str
    outcome: ActionOutcomeKind
    entity_id: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: datetime
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
