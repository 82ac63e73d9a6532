"""Validation of API payloads into models."""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic

from promo.common.errors import ApiError

M = TypeVar("M", bound=pydantic.BaseModel)


def parse(model: type[M], data: Any) -> M:
    """Validate ``data`` into ``model``; a bad payload is an ApiError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ApiError(f"Unexpected {model.__name__} payload from server.") from e


def parse_list(model: type[M], data: Any) -> list[M]:
    if not isinstance(data, list):
        if data is None:
            return []
        raise ApiError(f"Expected a list of {model.__name__} from server.")
    return [parse(model, item) for item in data]
