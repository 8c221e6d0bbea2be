"""
Event Chain Index
=================

Derived adjacency between edges that are chained through intermediate
principals.

A principal chain ``[p0, p1, ..., pn]`` on event E describes how p0
transitively reached E.resource. It is flattened into hops:

    p0 -> p1, p1 -> p2, ..., pn -> E.resource

Hop ``pi -> pi+1`` takes ``pi+1.event`` as its type (falling back to E.type);
the final hop always takes E.type. Within one chain, each hop FOLLOWS the hop
before it and PRECEDES the hop after it.

INVARIANTS:
- Built once per event snapshot, never mutated afterwards
- A malformed chain part fails the WHOLE build (InvalidChainLink);
  a partial index would link unrelated events silently
- An event without chains contributes the single hop principal -> resource;
  an empty chain is malformed
- Flattened events are de-duplicated on (source, target, type)
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple
import networkx as nx

from ..contracts.base import (
    EntityKind, InvalidChainLink, NotFound, ResourceId, ResourceIdPart
)
from ..contracts.events import PrincipalChainPart, ResourceEvent
from ..contracts.graph import EdgeId, EventChainLink
from ..contracts.identity import edge_id, node_id


@dataclass(frozen=True)
class EventChainIndex:
    """
    Immutable result of flattening an event snapshot.

    ``resource_events`` are the flattened single-hop events that edges are
    derived from. ``links`` maps every flattened edge id to its neighbours.
    """
    resource_events: Tuple[ResourceEvent, ...]
    links: Mapping[EdgeId, EventChainLink]
    _graph: nx.DiGraph = field(repr=False, compare=False)

    def link(self, eid: EdgeId) -> EventChainLink:
        try:
            return self.links[eid]
        except KeyError:
            raise NotFound(EntityKind.EDGE, eid, "look up event chain link") from None

    def chain_of(self, eid: EdgeId) -> FrozenSet[EdgeId]:
        """Every edge transitively preceding or following ``eid``."""
        if eid not in self._graph:
            raise NotFound(EntityKind.EDGE, eid, "look up event chain")
        return frozenset(nx.ancestors(self._graph, eid) | nx.descendants(self._graph, eid))

    def __len__(self) -> int:
        return len(self.links)


EMPTY_CHAIN_INDEX = EventChainIndex(
    resource_events=(),
    links=MappingProxyType({}),
    _graph=nx.freeze(nx.DiGraph())
)


def _validate_resource_id(rid: object, where: str) -> ResourceId:
    if not isinstance(rid, tuple) or not rid:
        raise InvalidChainLink(
            f"Invalid principal chain: {where} must be a non-empty resource id",
            context=(("where", where),)
        )
    for part in rid:
        if (
            not isinstance(part, ResourceIdPart)
            or not isinstance(part.type, str) or not part.type
            or not isinstance(part.id, str) or not part.id
        ):
            raise InvalidChainLink(
                f"Invalid principal chain: {where} has a malformed segment {part!r}",
                context=(("where", where),)
            )
    return rid


def _validate_part(part: object, where: str) -> PrincipalChainPart:
    if not isinstance(part, PrincipalChainPart):
        raise InvalidChainLink(
            f"Invalid principal chain: {where} is not a chain part",
            context=(("where", where),)
        )
    _validate_resource_id(part.id, where)
    if part.event is not None and (not isinstance(part.event, str) or not part.event):
        raise InvalidChainLink(
            f"Invalid principal chain: {where} has an empty event annotation",
            context=(("where", where),)
        )
    return part


def build_event_chain_index(events: Tuple[ResourceEvent, ...]) -> EventChainIndex:
    """
    Flatten principal chains and link consecutive hops.

    Pure function: same events in same order → identical index.
    """
    resource_events: List[ResourceEvent] = []
    seen_events: Set[Tuple[str, str, str]] = set()
    graph = nx.DiGraph()

    for event_index, event in enumerate(events):
        _validate_resource_id(event.resource, f"events[{event_index}].resource")

        chains = event.principal_chains
        if not chains:
            _validate_resource_id(event.principal, f"events[{event_index}].principal")
            chains = ((PrincipalChainPart(id=event.principal),),)

        for chain_index, chain in enumerate(chains):
            if not chain:
                where = f"events[{event_index}].principal_chains[{chain_index}]"
                raise InvalidChainLink(
                    f"Invalid principal chain: {where} is empty",
                    context=(("where", where),)
                )

            preceding_edge_id: Optional[EdgeId] = None

            for part_index, part in enumerate(chain):
                where = f"events[{event_index}].principal_chains[{chain_index}][{part_index}]"
                source = _validate_part(part, where)

                if part_index < len(chain) - 1:
                    next_part = _validate_part(
                        chain[part_index + 1],
                        f"events[{event_index}].principal_chains[{chain_index}][{part_index + 1}]"
                    )
                    target_id = next_part.id
                    hop_type = next_part.event or event.type
                else:
                    target_id = event.resource
                    hop_type = event.type

                # The same hop may appear in several chains or events
                event_key = (node_id(source.id), node_id(target_id), hop_type)
                if event_key not in seen_events:
                    resource_events.append(
                        replace(event, principal=source.id, type=hop_type, resource=target_id)
                    )
                    seen_events.add(event_key)

                current_edge_id = edge_id(source.id, target_id)
                graph.add_node(current_edge_id)

                if preceding_edge_id is not None and preceding_edge_id != current_edge_id:
                    graph.add_edge(preceding_edge_id, current_edge_id)

                preceding_edge_id = current_edge_id

    links: Dict[EdgeId, EventChainLink] = {
        eid: EventChainLink(
            preceding=frozenset(graph.predecessors(eid)),
            following=frozenset(graph.successors(eid))
        )
        for eid in graph.nodes
    }

    return EventChainIndex(
        resource_events=tuple(resource_events),
        links=MappingProxyType(links),
        _graph=nx.freeze(graph)
    )
