from .schema import ObjectDescriptor, ResourceDescriptor, ResourcePath, ResourceSchema, ResourceType
from .loader import SchemaLoader, load_schema, DEFAULT_SCHEMA_PATH

__all__ = [
    "ObjectDescriptor", "ResourceDescriptor", "ResourcePath", "ResourceSchema", "ResourceType",
    "SchemaLoader", "load_schema", "DEFAULT_SCHEMA_PATH",
]
