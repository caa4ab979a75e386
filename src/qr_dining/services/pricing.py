"""
Расчёт цены позиции заказа.

Цена за единицу = цена блюда со скидкой (если 0 < discount <= 100)
плюс фиксированные цены выбранных опций extras. Опции ищутся только
в собственной схеме extras блюда; неизвестные id молча пропускаются.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PricedLine:
    unit_price: Decimal
    quantity: int
    discount: Optional[int] = None
    extras_names: List[str] = field(default_factory=list)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def apply_discount(price: Any, discount: Optional[int]) -> Decimal:
    base = to_decimal(price)
    if discount and 0 < discount <= 100:
        base = base * (Decimal(100) - Decimal(discount)) / Decimal(100)
    return base


def resolve_extras(schema: Optional[Dict[str, Any]], selection: Optional[Dict[str, List[str]]]):
    """
    Возвращает (сумма опций, названия опций) для выбора клиента.
    Порядок групп и опций в выборе на сумму не влияет.
    """
    total = Decimal("0")
    names: List[str] = []
    if not schema or not selection or not isinstance(schema, dict):
        return total, names

    for group_key, option_ids in selection.items():
        group = schema.get(group_key)
        if not isinstance(group, dict):
            continue
        options = {str(opt.get("id")): opt for opt in group.get("options") or [] if isinstance(opt, dict)}
        for option_id in option_ids or []:
            option = options.get(str(option_id))
            if option is None:
                continue
            total += to_decimal(option.get("price"))
            if option.get("name"):
                names.append(option["name"])
    return total, names


def price_line(menu_item, quantity: int, selection: Optional[Dict[str, List[str]]] = None) -> PricedLine:
    extras_total, extras_names = resolve_extras(menu_item.extras, selection)
    unit = money(apply_discount(menu_item.price, menu_item.discount) + extras_total)
    return PricedLine(
        unit_price=unit,
        quantity=quantity,
        discount=menu_item.discount if menu_item.discount and menu_item.discount > 0 else None,
        extras_names=extras_names,
    )


def compose_notes(notes: Optional[str], extras_names: List[str]) -> Optional[str]:
    """'без лука' + ['Large'] -> 'без лука; Extras: Large'"""
    parts = []
    if notes and notes.strip():
        parts.append(notes.strip())
    if extras_names:
        parts.append(f"Extras: {', '.join(extras_names)}")
    return "; ".join(parts) or None
