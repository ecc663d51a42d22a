"""Pydantic base models shared across packages.

Wire payloads from the THub API use camelCase keys (the server is an Express
app serializing Drizzle rows). ApiModel maps them onto snake_case attributes so
the rest of the codebase stays Pythonic, and serializes back to camelCase with
`model_dump(by_alias=True)`.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every model that crosses the HTTP boundary."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MutationResult(BaseModel):
    """Standard result envelope returned by mutations.

    Every mutation returns this instead of raising, so callers have a single
    success/failure check and the user-facing message that was shown.
    """

    success: bool
    message: str
    data: dict[str, str | int | float | bool | None] | None = None
