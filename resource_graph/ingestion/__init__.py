"""
Ingestion Layer

RESPONSIBILITY: Validate raw query results and convert them to contracts
ALLOWED INPUTS: Raw payloads (dicts or JSON) produced by the query API
OUTPUTS: QueryResponse

WHAT THIS LAYER MUST NOT DO:
============================
- Derive nodes, edges or issues
- Filter by date
- Touch selection state
"""

from .schema import (
    QueryResponseModel,
    parse_query_response,
    parse_query_response_json,
    to_query_response,
)

__all__ = [
    'QueryResponseModel',
    'parse_query_response',
    'parse_query_response_json',
    'to_query_response',
]
