from .catalog import RelationCatalog, load_dmmf_file
from .models import RelationDescriptor

__all__ = ["RelationCatalog", "RelationDescriptor", "load_dmmf_file"]
