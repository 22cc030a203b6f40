# =============================================================================
# core/models/base.py - Shared Model Configuration
# =============================================================================
# The web client sends camelCase JSON; the database uses snake_case.
# Request models inherit CamelModel so both spellings are accepted.
# =============================================================================

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
