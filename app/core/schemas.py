"""Base model for the JSON API.

Python attributes stay snake_case; the wire format is camelCase. Requests
accept either spelling so callers built against the snake_case names keep
working.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """API model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
