"""Base pydantic schema shared by the API request models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase JSON keys and snake_case keyword arguments alike."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
