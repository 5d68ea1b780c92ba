"""Shared camelCase config for API models."""

from pydantic import ConfigDict


def to_camel(name: str) -> str:
    """Convert snake_case to camelCase for JSON serialization."""
    parts = name.split("_")
    return parts[0] + "".join(w.title() for w in parts[1:])


CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)
CAMEL_ORM_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
