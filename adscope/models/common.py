from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys on the wire and on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ErrorResponse(BaseModel):
    error: str


class ProviderStatus(BaseModel):
    configured: bool
    model: str


class StatusResponse(BaseModel):
    providers: dict[str, ProviderStatus]
    staging_root: str
    staging_root_fixed: bool
