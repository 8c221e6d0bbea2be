"""
Environment Inheritance
=======================

A resource belongs to its own tagged environments plus every environment
tagged on an ancestor address. The nearest tagging ancestor wins.

Environments are always computed from the UNFILTERED resources so that each
environment keeps a stable colour index across date filters.
"""

from __future__ import annotations
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from ..contracts.base import ResourceId
from ..contracts.events import Resource
from ..contracts.graph import EnvironmentBadge, NodeId
from ..contracts.identity import node_id


# Number of distinct environment colours in the palette
ENVIRONMENT_COLOR_COUNT = 16

# environment name -> address it was inherited from (None for own tags)
ResourceEnvironments = Mapping[str, Optional[ResourceId]]


def collect_environments(resources: Tuple[Resource, ...]) -> Tuple[str, ...]:
    """All environment names in order of first appearance."""
    environments: List[str] = []
    for resource in resources:
        for env in resource.environments:
            if env not in environments:
                environments.append(env)
    return tuple(environments)


def inherited_environments(
    rid: ResourceId,
    resources_by_node: Mapping[NodeId, Resource]
) -> ResourceEnvironments:
    """
    Environments of ``rid`` including those inherited from ancestors.

    ``rid`` itself need not be a known resource: intermediate addresses
    implied by events still inherit from tagged ancestors.
    """
    environments: Dict[str, Optional[ResourceId]] = {}

    # Outermost first so nearer ancestors overwrite further ones
    for depth in range(1, len(rid) + 1):
        prefix = rid[:depth]
        resource = resources_by_node.get(node_id(prefix))
        if resource is None:
            continue
        for env in resource.environments:
            environments[env] = None if depth == len(rid) else prefix

    return MappingProxyType(environments)


def build_resources_environments(
    resources: Tuple[Resource, ...]
) -> Mapping[NodeId, ResourceEnvironments]:
    resources_by_node = {node_id(resource.id): resource for resource in resources}
    return MappingProxyType({
        nid: inherited_environments(resource.id, resources_by_node)
        for nid, resource in resources_by_node.items()
    })


def environment_badges(
    environments: ResourceEnvironments,
    all_environments: Tuple[str, ...]
) -> Tuple[EnvironmentBadge, ...]:
    """Badges for one node, ordered by colour index."""
    badges = [
        EnvironmentBadge(
            name=env,
            color_index=all_environments.index(env) % ENVIRONMENT_COLOR_COUNT,
            inherited_from=inherited_from
        )
        for env, inherited_from in environments.items()
        if env in all_environments
    ]
    return tuple(sorted(badges, key=lambda badge: all_environments.index(badge.name)))
