"""
API module for Natours.

This module provides the list query pipeline, the generic resource handlers
and the router that exposes them over HTTP.
"""

from natours.api.features import (
    COMPARISON_OPERATORS,
    RESERVED_PARAMS,
    STAGES,
    QueryFeatures,
    StageOrderError,
    rewrite_operators,
)
from natours.api.handlers import (
    ResourceHandlers,
    create_one,
    delete_one,
    get_all,
    get_one,
    update_one,
)
from natours.api.params import as_csv, parse_query_params, to_positive_int
from natours.api.router import create_resource_router, handlers_from_settings

__all__ = [
    # Parameters
    "parse_query_params",
    "to_positive_int",
    "as_csv",
    # Query pipeline
    "QueryFeatures",
    "StageOrderError",
    "STAGES",
    "RESERVED_PARAMS",
    "COMPARISON_OPERATORS",
    "rewrite_operators",
    # Handlers
    "ResourceHandlers",
    "get_all",
    "get_one",
    "create_one",
    "update_one",
    "delete_one",
    # Routing
    "create_resource_router",
    "handlers_from_settings",
]
