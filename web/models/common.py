"""Common shared models for the MedPortal API."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request body accepting the camelCase names the browser client sends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
