from .coordinator import NestedDispatcher, merge_nested_updates
from .extract import extract_nested_write_sites, extract_shaping_sites, extract_write_sites
from .models import (
    NESTED_WRITE_ACTIONS,
    SHAPING_ACTIONS,
    WRITE_ACTIONS,
    ActionKind,
    Middleware,
    Next,
    Operation,
    ShapingSite,
    WriteSite,
    classify_action,
)
from .pending import PendingNestedInvocation

__all__ = [
    "NestedDispatcher",
    "PendingNestedInvocation",
    "Operation",
    "WriteSite",
    "ShapingSite",
    "ActionKind",
    "Middleware",
    "Next",
    "NESTED_WRITE_ACTIONS",
    "WRITE_ACTIONS",
    "SHAPING_ACTIONS",
    "classify_action",
    "extract_write_sites",
    "extract_nested_write_sites",
    "extract_shaping_sites",
    "merge_nested_updates",
]
