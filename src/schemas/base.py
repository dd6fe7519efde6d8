"""Shared base model for artifact schemas."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Model that reads snake_case or camelCase and dumps camelCase.

    Artifacts travel over HTTP with camelCase keys and are handed to the
    model as JSON schemas with the same keys.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump to a JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
