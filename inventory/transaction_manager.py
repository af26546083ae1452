"""
Inventory Transaction Manager
Every stock change goes through adjust_stock so the balance and the movement
ledger can never disagree
"""
import logging
from decimal import Decimal

from django.db import transaction

from utils.exceptions import InvalidStateError, NotFoundError
from utils.transitions import to_decimal
from .models import InventoryItem, InventoryMovement

logger = logging.getLogger(__name__)


class InventoryTransactionManager:
    """
    Centralized manager for stock adjustments
    """

    @staticmethod
    @transaction.atomic
    def adjust_stock(inventory_id, delta, movement_type, user=None, reference=None, notes=''):
        """
        Apply a signed quantity change to one inventory item and record the movement.
        Raises NotFoundError for an unknown item and InvalidStateError when the
        balance would go negative.
        """
        delta = to_decimal(delta, 'quantity', allow_negative=True)
        try:
            item = InventoryItem.objects.select_for_update().get(pk=inventory_id)
        except (InventoryItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Inventory item {inventory_id} not found")

        new_balance = item.quantity_in_stock + delta
        if new_balance < 0:
            raise InvalidStateError(
                f"Insufficient stock for {item.item_code} ({item.name}): "
                f"available {item.quantity_in_stock}, requested {-delta}",
                current_state=str(item.quantity_in_stock),
            )

        item.quantity_in_stock = new_balance
        item.save(update_fields=['quantity_in_stock', 'updated_at'])

        movement = InventoryMovement.objects.create(
            inventory=item,
            movement_type=movement_type,
            quantity=delta,
            balance_after=new_balance,
            reference_type=reference._meta.model_name if reference is not None else '',
            reference_id=reference.pk if reference is not None else None,
            reference_number=InventoryTransactionManager._reference_number(reference),
            notes=notes,
            performed_by=user,
        )

        logger.info(f"Stock {item.item_code} {delta:+} -> {new_balance} ({movement_type})")
        return movement

    @staticmethod
    def issue_materials(lines, movement_type, user=None, reference=None, notes=''):
        """Decrement stock for every inventory-linked line; lines carry inventory_id and quantity"""
        movements = []
        for line in lines:
            if line.get('inventory_id') is None:
                continue
            movements.append(InventoryTransactionManager.adjust_stock(
                line['inventory_id'], -Decimal(str(line['quantity'])), movement_type,
                user=user, reference=reference, notes=notes
            ))
        return movements

    @staticmethod
    def receive_materials(lines, movement_type, user=None, reference=None, notes=''):
        """Increment stock for every inventory-linked line"""
        movements = []
        for line in lines:
            if line.get('inventory_id') is None:
                continue
            movements.append(InventoryTransactionManager.adjust_stock(
                line['inventory_id'], Decimal(str(line['quantity'])), movement_type,
                user=user, reference=reference, notes=notes
            ))
        return movements

    @staticmethod
    def _reference_number(reference):
        if reference is None:
            return ''
        field = getattr(reference, 'sequence_field', None)
        return getattr(reference, field, '') if field else ''
