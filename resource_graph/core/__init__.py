"""
Core Selection Engine

RESPONSIBILITY: Snapshot derivation and selection consistency
ALLOWED INPUTS: Validated QueryResponse contracts, DateFilter, action arguments
OUTPUTS: GraphStore snapshots (immutable)

WHAT THIS LAYER MUST NOT DO:
============================
- Parse raw payloads (ingestion layer's job)
- Compute node positions (external layout collaborator)
- Record audit entries or metrics (observability layer's job)

BOUNDARY ENFORCEMENT:
=====================
- Every action returns the same snapshot or a new one; nothing is mutated
- Derived caches are rebuilt whole on a data change, never patched
"""

from .chain_index import EMPTY_CHAIN_INDEX, EventChainIndex, build_event_chain_index
from .environments import (
    ENVIRONMENT_COLOR_COUNT, build_resources_environments, collect_environments,
    environment_badges, inherited_environments,
)
from .issues import derive_issues, environment_issues, secrets_issues
from .store import GraphStore, build_store, set_date_filter
from .selection import (
    clear_selection, deselect_edge, deselect_issue, deselect_resource,
    select_edge, select_issue, select_resource,
)
from .tagging import tag_environment, untag_environment
from .visibility import collapse_all, expand_all, toggle_node_collapsed

__all__ = [
    'EMPTY_CHAIN_INDEX', 'EventChainIndex', 'build_event_chain_index',
    'ENVIRONMENT_COLOR_COUNT', 'build_resources_environments', 'collect_environments',
    'environment_badges', 'inherited_environments',
    'derive_issues', 'environment_issues', 'secrets_issues',
    'GraphStore', 'build_store', 'set_date_filter',
    'clear_selection', 'deselect_edge', 'deselect_issue', 'deselect_resource',
    'select_edge', 'select_issue', 'select_resource',
    'tag_environment', 'untag_environment',
    'collapse_all', 'expand_all', 'toggle_node_collapsed',
]
