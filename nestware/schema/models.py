from dataclasses import dataclass


@dataclass(frozen=True)
class RelationDescriptor:
    """
    A relation field on a model.
    """
    name: str
    target: str  # model name the relation points at
