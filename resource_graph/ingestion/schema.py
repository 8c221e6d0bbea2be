"""
Query Result Schema
===================

pydantic models for the raw query payload, and its conversion into the
frozen contracts the engine consumes.

BOUNDARY ENFORCEMENT:
=====================
- Raw dicts never cross into core; only QueryResponse contracts do
- Timestamps must carry an offset and are normalised to UTC
- Any rejection surfaces as QueryValidationError carrying pydantic's locations
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Annotated, Any, List, Mapping, Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, ValidationError

from ..contracts.base import QueryValidationError, ResourceId, ResourceIdPart
from ..contracts.events import (
    GlobalContainer, PrincipalChainPart, QueryResponse, Resource, ResourceEvent
)


# =============================================================================
# RAW PAYLOAD MODELS
# =============================================================================

class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ResourceIdPartModel(_Model):
    type: str = Field(min_length=1)
    id: str = Field(min_length=1)


class ResourceModel(_Model):
    id: List[ResourceIdPartModel] = Field(min_length=1)
    environments: List[str] = Field(default_factory=list)
    first_seen_at: AwareDatetime
    last_seen_at: AwareDatetime


class PrincipalChainPartModel(_Model):
    id: List[ResourceIdPartModel] = Field(min_length=1)
    event: Optional[str] = Field(default=None, min_length=1)


# An empty chain would name no principal for the first hop
PrincipalChainModel = Annotated[List[PrincipalChainPartModel], Field(min_length=1)]


class ResourceEventModel(_Model):
    principal: List[ResourceIdPartModel] = Field(min_length=1)
    type: str = Field(min_length=1)
    resource: List[ResourceIdPartModel] = Field(min_length=1)
    principal_chains: List[PrincipalChainModel]
    first_seen_at: AwareDatetime
    last_seen_at: AwareDatetime


class GlobalContainerModel(_Model):
    id: List[ResourceIdPartModel] = Field(min_length=1)
    contains: List[ResourceIdPartModel] = Field(min_length=1)


class QueryResponseModel(_Model):
    resources: List[ResourceModel] = Field(default_factory=list)
    events: List[ResourceEventModel] = Field(default_factory=list)
    global_containers: List[GlobalContainerModel] = Field(default_factory=list)


# =============================================================================
# CONVERSION
# =============================================================================

def _to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc)


def _to_resource_id(parts: List[ResourceIdPartModel]) -> ResourceId:
    return tuple(ResourceIdPart(type=part.type, id=part.id) for part in parts)


def to_query_response(model: QueryResponseModel) -> QueryResponse:
    """Convert a validated payload model into the frozen contract."""
    return QueryResponse(
        resources=tuple(
            Resource(
                id=_to_resource_id(resource.id),
                first_seen_at=_to_utc(resource.first_seen_at),
                last_seen_at=_to_utc(resource.last_seen_at),
                environments=tuple(dict.fromkeys(resource.environments))
            )
            for resource in model.resources
        ),
        events=tuple(
            ResourceEvent(
                principal=_to_resource_id(event.principal),
                type=event.type,
                resource=_to_resource_id(event.resource),
                first_seen_at=_to_utc(event.first_seen_at),
                last_seen_at=_to_utc(event.last_seen_at),
                principal_chains=tuple(
                    tuple(
                        PrincipalChainPart(id=_to_resource_id(part.id), event=part.event)
                        for part in chain
                    )
                    for chain in event.principal_chains
                )
            )
            for event in model.events
        ),
        global_containers=tuple(
            GlobalContainer(
                id=_to_resource_id(container.id),
                contains=_to_resource_id(container.contains)
            )
            for container in model.global_containers
        )
    )


def parse_query_response(raw: Mapping[str, Any]) -> QueryResponse:
    """
    Validate a raw query payload and convert it.

    Raises QueryValidationError; the first few pydantic error locations are
    kept in the error context.
    """
    try:
        model = QueryResponseModel.model_validate(raw)
    except ValidationError as e:
        context = tuple(
            (".".join(str(loc) for loc in err["loc"]), err["msg"])
            for err in e.errors()[:5]
        )
        raise QueryValidationError(
            f"Query response rejected: {e.error_count()} validation error(s)",
            context=context
        ) from e

    return to_query_response(model)


def parse_query_response_json(payload: str) -> QueryResponse:
    """Same as parse_query_response for a JSON document."""
    try:
        model = QueryResponseModel.model_validate_json(payload)
    except ValidationError as e:
        raise QueryValidationError(
            f"Query response rejected: {e.error_count()} validation error(s)"
        ) from e

    return to_query_response(model)
