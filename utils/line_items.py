"""
Typed material line items
Dispatch, receipt, allocation and return payloads are parsed into MaterialLine
records before any write, then stored as JSON.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .enums import UnitChoices
from .exceptions import PayloadValidationError
from .transitions import require_list, to_decimal


@dataclass(frozen=True)
class MaterialLine:
    material_name: str
    quantity: Decimal
    inventory_id: Optional[int] = None
    unit: str = UnitChoices.PIECES.value
    reason: str = ''
    allocation_id: Optional[int] = None

    def as_dict(self, quantity_key='quantity'):
        data = {
            'inventory_id': self.inventory_id,
            'material_name': self.material_name,
            quantity_key: float(self.quantity),
            'unit': self.unit,
        }
        if self.allocation_id is not None:
            data['allocation_id'] = self.allocation_id
        if self.reason:
            data['reason'] = self.reason
        return data

    def as_stock_line(self):
        return {'inventory_id': self.inventory_id, 'quantity': self.quantity}


def _parse_id(value, label, field):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise PayloadValidationError(f"{label}.{field} must be an integer id")


def parse_material_lines(raw, field, quantity_keys=('quantity',), allow_empty=False):
    """
    Validate a list of material dicts. The quantity is read from the first
    present key in quantity_keys, so legacy names like quantity_dispatched work.
    """
    items = require_list(raw, field, allow_empty=allow_empty)
    lines = []
    for index, item in enumerate(items, start=1):
        label = f"{field} line {index}"
        if not isinstance(item, dict):
            raise PayloadValidationError(f"{label} must be an object")

        raw_quantity = next(
            (item[key] for key in quantity_keys if item.get(key) not in (None, '')),
            None
        )
        quantity = to_decimal(raw_quantity, f"{label}.quantity", allow_zero=False)
        inventory_id = _parse_id(item.get('inventory_id'), label, 'inventory_id')
        allocation_id = _parse_id(item.get('allocation_id'), label, 'allocation_id')

        material_name = str(item.get('material_name') or item.get('name') or '').strip()
        if not material_name and inventory_id is None and allocation_id is None:
            raise PayloadValidationError(f"{label} needs a material_name or an inventory_id")

        unit = item.get('unit') or UnitChoices.PIECES.value
        if unit not in UnitChoices.values:
            raise PayloadValidationError(f"{label}.unit '{unit}' is not a known unit")

        lines.append(MaterialLine(
            material_name=material_name,
            quantity=quantity,
            inventory_id=inventory_id,
            unit=unit,
            reason=str(item.get('reason') or '').strip(),
            allocation_id=allocation_id,
        ))
    return lines


def lines_to_json(lines, quantity_key='quantity'):
    return [line.as_dict(quantity_key) for line in lines]
