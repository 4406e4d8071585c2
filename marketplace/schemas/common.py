# marketplace/schemas/common.py
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """
    Base for wire models.

    JSON keys are camelCase (what the SPA sends and expects);
    snake_case field names are accepted on input as well.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel, Generic[T]):
    """
    Success envelope: {"success": true, "data": ..., "message": ...}

    Failures use {"success": false, "message": ...} and are produced
    by the exception handlers in marketplace.core.errors.
    """

    success: bool = True
    data: T
    message: str | None = None
