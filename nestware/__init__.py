from .config import NestingConfig
from .dispatch import NestedDispatcher, Operation
from .errors import ConfigurationError, ContinuationError, NestwareError
from .middleware import create_nested_middleware, default_catalog, init
from .schema import RelationCatalog, RelationDescriptor

__all__ = [
    "init",
    "create_nested_middleware",
    "default_catalog",
    "NestedDispatcher",
    "Operation",
    "RelationCatalog",
    "RelationDescriptor",
    "NestingConfig",
    "NestwareError",
    "ConfigurationError",
    "ContinuationError",
]
