"""
Identity Functions
==================

Deterministic, content-addressed keys for nodes and edges.

INVARIANTS:
- Same ResourceId → same node id, on every run and every machine
- Segment order is significant: reordering segments changes the key
- edge_id(a, b) != edge_id(b, a) for a != b (principal/resource roles differ)

The edge id is the ONLY correlation between a ResourceEvent, its Edge,
the EventChainIndex entries and Issue.edge_ids.
"""

from __future__ import annotations
import hashlib
import json

from .base import ResourceId


NODE_ID_PREFIX = "node_"
EDGE_ID_PREFIX = "edge_"

# 128 bits of SHA-256 output
_KEY_HEX_LENGTH = 32


def _canonical_resource_id(rid: ResourceId) -> str:
    # JSON keeps segment boundaries unambiguous whatever characters ids contain
    return json.dumps(
        [[part.type, part.id] for part in rid],
        ensure_ascii=False,
        separators=(",", ":")
    )


def node_id(rid: ResourceId) -> str:
    """Generate deterministic node id from a resource address."""
    digest = hashlib.sha256(_canonical_resource_id(rid).encode("utf-8")).hexdigest()
    return f"{NODE_ID_PREFIX}{digest[:_KEY_HEX_LENGTH]}"


def edge_id(principal: ResourceId, resource: ResourceId) -> str:
    """Generate deterministic, role-sensitive edge id for a (principal, resource) pair."""
    content = f"{node_id(principal)}->{node_id(resource)}"
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"{EDGE_ID_PREFIX}{digest[:_KEY_HEX_LENGTH]}"
