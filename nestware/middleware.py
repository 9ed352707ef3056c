from __future__ import annotations

import logging
from typing import Any, Optional

from .config import NestingConfig
from .dispatch.coordinator import NestedDispatcher
from .dispatch.models import Middleware
from .errors import ConfigurationError
from .schema.catalog import RelationCatalog, load_dmmf_file

logger = logging.getLogger(__name__)

_default_catalog = RelationCatalog()


def default_catalog() -> RelationCatalog:
    """The process-wide catalog used when no catalog is passed explicitly."""
    return _default_catalog


def init(
    client: Any = None,
    *,
    catalog: Optional[RelationCatalog] = None,
    config: Optional[NestingConfig] = None,
) -> RelationCatalog:
    """
    Populate a relation catalog from schema metadata.

    Args:
        client: A client handle exposing ``.dmmf``, a DMMF document, or a
                SQLAlchemy registry / declarative base. If None, the JSON
                DMMF file named by NESTWARE_SCHEMA_PATH is loaded.
        catalog: Catalog to populate (defaults to the process-wide one)
        config: Overrides the environment-derived config

    Returns:
        The populated catalog

    Raises:
        ConfigurationError: If no schema metadata can be found
    """
    target = catalog if catalog is not None else _default_catalog
    if client is None:
        cfg = config or NestingConfig.from_env()
        if cfg.schema_path is None:
            raise ConfigurationError(
                "Schema metadata not found; pass a client to init() or set NESTWARE_SCHEMA_PATH"
            )
        logger.info("Loading schema metadata from %s", cfg.schema_path)
        client = load_dmmf_file(cfg.schema_path)
    target.initialize(client)
    return target


def create_nested_middleware(
    middleware: Middleware,
    *,
    catalog: Optional[RelationCatalog] = None,
    config: Optional[NestingConfig] = None,
) -> NestedDispatcher:
    """
    Wrap middleware so it also runs for nested writes and include/select
    clauses.

    The returned dispatcher has the same ``(operation, call_next)`` shape as
    the wrapped middleware and can be registered in its place.

    Raises:
        ConfigurationError: If the default catalog is empty and cannot be
                            initialized
    """
    if catalog is None:
        catalog = _default_catalog
        if not catalog.initialized:
            init(catalog=catalog, config=config)
    return NestedDispatcher(middleware, catalog, config)
