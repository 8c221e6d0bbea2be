"""
Resource Graph Engine

Derives a graph of discovered infrastructure resources and the events
observed between them, and keeps the selection of resources, edges and
issues consistent across user actions.

LAYER STRUCTURE:
================

1. INGESTION LAYER (ingestion/)
   - Validates raw query results into QueryResponse contracts

2. TEMPORAL LAYER (temporal/)
   - Date window filtering, layout state machine

3. CORE (core/)
   - EventChainIndex, snapshot assembly, issues, environments, selection,
     collapse and expand

4. OBSERVABILITY (observability/)
   - Action audit log and metrics

5. ENGINE (engine.py)
   - Actions, reducer and the GraphSession that owns the snapshot
"""

from .contracts import (
    EntityKind, GraphStoreError, InvalidChainLink, InvalidDateRange,
    InvalidEnvironment, NotCollapsible, NotFound, QueryValidationError, ViewSection,
)
from .core import GraphStore, build_store
from .engine import ActionOutcome, EngineConfig, GraphSession, reduce
from .ingestion import parse_query_response

__version__ = "0.1.0"

__all__ = [
    'EntityKind', 'GraphStoreError', 'InvalidChainLink', 'InvalidDateRange',
    'InvalidEnvironment', 'NotCollapsible', 'NotFound', 'QueryValidationError',
    'ViewSection',
    'GraphStore', 'build_store',
    'ActionOutcome', 'EngineConfig', 'GraphSession', 'reduce',
    'parse_query_response',
]
