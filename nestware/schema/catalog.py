from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from sqlalchemy.orm import registry as OrmRegistry

from ..errors import ConfigurationError
from .models import RelationDescriptor

logger = logging.getLogger(__name__)

RelationMap = dict[str, tuple[RelationDescriptor, ...]]


def _attr(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def load_dmmf_file(path: str | Path) -> dict[str, Any]:
    """
    Read a JSON DMMF document from disk.

    Raises:
        ConfigurationError: If the file is missing or is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read schema metadata from {str(path)!r}: {exc}") from exc


def _relations_from_dmmf_models(models: Iterable[Any]) -> RelationMap:
    relations: RelationMap = {}
    for model in models:
        name = _attr(model, "name")
        if not name:
            raise ConfigurationError("Schema metadata contains a model without a name")
        fields = _attr(model, "fields") or []
        relations[name] = tuple(
            RelationDescriptor(name=_attr(field, "name"), target=_attr(field, "type"))
            for field in fields
            if _attr(field, "kind") == "object" and _attr(field, "relationName")
        )
    return relations


def _relations_from_orm_registry(reg: OrmRegistry) -> RelationMap:
    relations: RelationMap = {}
    # Sorted so the catalog does not depend on registry set ordering
    for mapper in sorted(reg.mappers, key=lambda m: m.class_.__name__):
        relations[mapper.class_.__name__] = tuple(
            RelationDescriptor(name=rel.key, target=rel.mapper.class_.__name__)
            for rel in mapper.relationships
        )
    return relations


def _datamodel_of(metadata: Any) -> Any:
    """
    Locate the datamodel section in a client handle or DMMF document.
    """
    dmmf = _attr(metadata, "dmmf")
    if dmmf is not None:
        metadata = dmmf
    datamodel = _attr(metadata, "datamodel")
    if datamodel is not None:
        return datamodel
    if _attr(metadata, "models") is not None:
        return metadata
    return None


def extract_relations(metadata: Any) -> RelationMap:
    """
    Build the model -> relations mapping from any supported metadata source.

    Supported sources:
    - a DMMF document ({"datamodel": {"models": [...]}}) or its datamodel
    - a client handle exposing ``.dmmf``
    - a SQLAlchemy ``registry``, or a declarative base exposing ``.registry``

    Raises:
        ConfigurationError: If metadata is None or has no recognizable schema
    """
    if metadata is None:
        raise ConfigurationError(
            "Schema metadata not found; pass a client or DMMF document to init()"
        )

    if isinstance(metadata, OrmRegistry):
        return _relations_from_orm_registry(metadata)
    orm_registry = getattr(metadata, "registry", None)
    if isinstance(orm_registry, OrmRegistry):
        return _relations_from_orm_registry(orm_registry)

    datamodel = _datamodel_of(metadata)
    if datamodel is None:
        raise ConfigurationError(
            f"Schema metadata not found on {type(metadata).__name__}; "
            "expected a DMMF datamodel or a SQLAlchemy registry"
        )
    return _relations_from_dmmf_models(_attr(datamodel, "models") or [])


class RelationCatalog:
    """
    Model name -> relation fields, built once from schema metadata.

    Usage:
        catalog = RelationCatalog.from_metadata(Base)
        for relation in catalog.relations_for("User"):
            ...
    """

    def __init__(self) -> None:
        self._relations: RelationMap = {}
        self._initialized = False

    @classmethod
    def from_metadata(cls, metadata: Any) -> "RelationCatalog":
        catalog = cls()
        catalog.initialize(metadata)
        return catalog

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, metadata: Any) -> None:
        """
        Replace the catalog contents with relations read from metadata.

        Safe to call repeatedly; the last call wins.

        Raises:
            ConfigurationError: If metadata is missing or unusable
        """
        relations = extract_relations(metadata)
        self._relations = relations
        self._initialized = True
        logger.info(
            "Relation catalog initialized with %d models (%d relations)",
            len(relations),
            sum(len(r) for r in relations.values()),
        )

    def relations_for(self, model: str | None) -> tuple[RelationDescriptor, ...]:
        return self._relations.get(model or "", ())

    def models(self) -> list[str]:
        return list(self._relations)
