from __future__ import annotations

import copy
from typing import Any

import pytest

from nestware.schema.catalog import RelationCatalog

from ._support import DMMF_DOCUMENT, Base


@pytest.fixture
def catalog() -> RelationCatalog:
    return RelationCatalog.from_metadata(Base)


@pytest.fixture
def dmmf_document() -> dict[str, Any]:
    return copy.deepcopy(DMMF_DOCUMENT)
