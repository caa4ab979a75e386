from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, PlainSerializer
from pydantic.alias_generators import to_camel

# В JSON деньги уходят числом, внутри остаются Decimal
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """
    Базовая схема: поля в python в snake_case, наружу в camelCase
    (restaurantId, tableNumber, ...). Принимает оба варианта.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def ok(data: Any = None, message: Optional[str] = None, **extra) -> dict:
    """Стандартный конверт успешного ответа."""
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
