"""
Observability & Audit Layer

RESPONSIBILITY: Action audit log and metrics for the selection engine
ALLOWED INPUTS: Action names, outcomes and timings reported by the session
OUTPUTS: AuditLogEntry records, MetricPoint series, audit reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify snapshots or influence dispatch
- Hold references to snapshots (only ids and names are recorded)
- Raise on behalf of the engine

BOUNDARY ENFORCEMENT:
=====================
- Records are frozen contracts
- Read access returns copies
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple
import hashlib

# ONLY import from contracts
from ..contracts.base import Error
from ..contracts.events import (
    ActionOutcomeKind, AuditEventType, AuditLogEntry, MetricPoint
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ACTION AUDIT LOG
# =============================================================================

class ActionAuditLog:
    """
    Append-only log of dispatched actions.

    With a capacity, the oldest entries are evicted first; ``total_recorded``
    still counts every entry ever collected.
    """

    def __init__(self, capacity: Optional[int] = None):
        self._entries: Deque[AuditLogEntry] = deque(maxlen=capacity)
        self._sequence: int = 0

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)
        self._sequence += 1

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        outcome: Optional[ActionOutcomeKind] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = list(self._entries)

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        if outcome:
            entries = [e for e in entries if e.outcome == outcome]

        if action:
            entries = [e for e in entries if e.action == action]

        return entries

    def next_entry_id(self, action: str) -> str:
        digest = hashlib.sha256(f"{self._sequence}|{action}".encode()).hexdigest()[:16]
        return f"audit_{digest}"

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    @property
    def total_recorded(self) -> int:
        return self._sequence


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Collect and aggregate engine metrics.

    Metrics are append-only time series data points.
    """

    def __init__(self):
        self._metrics: Dict[str, List[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        """Register standard metrics."""
        defaults = [
            MetricDefinition(
                name="action_duration_ms",
                metric_type=MetricType.TIMING,
                description="Time spent reducing one action in milliseconds",
                labels=("action",)
            ),
            MetricDefinition(
                name="actions_total",
                metric_type=MetricType.COUNTER,
                description="Dispatched actions by outcome",
                labels=("action", "outcome")
            ),
            MetricDefinition(
                name="snapshot_nodes",
                metric_type=MetricType.GAUGE,
                description="Number of nodes in the current snapshot"
            ),
            MetricDefinition(
                name="snapshot_edges",
                metric_type=MetricType.GAUGE,
                description="Number of edges in the current snapshot"
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = []

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = []

        label_tuple = tuple(sorted(labels.items())) if labels else ()

        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=_now(),
            labels=label_tuple
        )
        self._metrics[metric_name].append(point)

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, []))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        points = self._metrics.get(metric_name, [])
        return points[-1] if points else None

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name)

        if not points:
            return {}

        values = [p.value for p in points]

        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    enable_audit: bool = True
    enable_metrics: bool = True
    audit_capacity: Optional[int] = 10_000


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._audit = ActionAuditLog(self._config.audit_capacity) if self._config.enable_audit else None
        self._metrics = MetricsCollector() if self._config.enable_metrics else None

    def record_action(
        self,
        action: str,
        outcome: ActionOutcomeKind,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        error: Optional[Error] = None
    ):
        """Record one dispatched action and its outcome."""
        if self._audit is not None:
            self._audit.collect(AuditLogEntry(
                entry_id=self._audit.next_entry_id(action),
                event_type=AuditEventType.ERROR if error else AuditEventType.ACTION,
                timestamp=_now(),
                action=action,
                outcome=outcome,
                entity_id=entity_id,
                error_code=error.code if error else None,
                metadata=(("message", error.message),) + error.context if error else ()
            ))

        if self._metrics is not None:
            self._metrics.record("actions_total", 1, {"action": action, "outcome": outcome.value})
            if duration_ms is not None:
                self._metrics.record("action_duration_ms", duration_ms, {"action": action})

    def record_snapshot(self, node_count: int, edge_count: int, reason: str):
        """Record that a new snapshot replaced the previous one."""
        if self._audit is not None:
            self._audit.collect(AuditLogEntry(
                entry_id=self._audit.next_entry_id(reason),
                event_type=AuditEventType.SNAPSHOT,
                timestamp=_now(),
                action=reason,
                outcome=ActionOutcomeKind.CHANGED,
                metadata=(("nodes", str(node_count)), ("edges", str(edge_count)))
            ))

        if self._metrics is not None:
            self._metrics.record("snapshot_nodes", node_count)
            self._metrics.record("snapshot_edges", edge_count)

    def get_audit_log(
        self,
        event_type: Optional[AuditEventType] = None,
        outcome: Optional[ActionOutcomeKind] = None
    ) -> List[AuditLogEntry]:
        if self._audit is None:
            return []
        return self._audit.get_entries(event_type=event_type, outcome=outcome)

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Get metrics collector (read-only access)."""
        return self._metrics

    def generate_audit_report(self) -> Dict:
        """Summarise recorded actions by outcome and by action name."""
        entries = self.get_audit_log(event_type=AuditEventType.ACTION)
        entries += self.get_audit_log(event_type=AuditEventType.ERROR)

        by_outcome: Dict[str, int] = {}
        by_action: Dict[str, int] = {}
        for entry in entries:
            by_outcome[entry.outcome.value] = by_outcome.get(entry.outcome.value, 0) + 1
            by_action[entry.action] = by_action.get(entry.action, 0) + 1

        return {
            'total_entries': len(entries),
            'retained_entries': self._audit.entry_count if self._audit else 0,
            'total_recorded': self._audit.total_recorded if self._audit else 0,
            'by_outcome': by_outcome,
            'by_action': by_action,
            'generated_at': _now().isoformat()
        }


__all__ = [
    'ActionAuditLog',
    'MetricType',
    'MetricDefinition',
    'MetricsCollector',
    'ObservabilityConfig',
    'ObservabilityEngine',
]
