"""
Transition validation helpers shared by the workflow services
Predecessor lookups, state gates and payload checks that run before any write
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import NotFoundError, InvalidStateError, PayloadValidationError


def fetch_for_update(model, pk, label):
    """
    Load a predecessor row and lock it for the rest of the transaction.
    Must be called inside transaction.atomic().
    """
    if pk in (None, ''):
        raise PayloadValidationError(f"{label} id is required")
    try:
        return model.objects.select_for_update().get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{label} not found")


def require_state(obj, allowed, action, label, field='status'):
    """Reject unless obj.<field> is one of the allowed values"""
    allowed = list(allowed)
    current = getattr(obj, field)
    if current not in allowed:
        required = ' or '.join(f"'{value}'" for value in allowed)
        raise InvalidStateError(
            f"Cannot {action} {label} in status '{current}'; required {required}",
            current_state=current,
            required_states=allowed,
        )
    return current


def require_list(value, field, allow_empty=False):
    if not isinstance(value, (list, tuple)):
        raise PayloadValidationError(f"{field} must be a list")
    if not value and not allow_empty:
        raise PayloadValidationError(f"{field} array is required and cannot be empty")
    return list(value)


def to_decimal(value, field, allow_zero=True, allow_negative=False):
    """Coerce a numeric payload value to Decimal and bound-check it"""
    if value is None or value == '':
        raise PayloadValidationError(f"{field} is required")
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise PayloadValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise PayloadValidationError(f"{field} must be a number")
    if number < 0 and not allow_negative:
        raise PayloadValidationError(f"{field} cannot be negative")
    if number == 0 and not allow_zero:
        raise PayloadValidationError(f"{field} must be greater than zero")
    return number


def to_quantity(value, field, allow_zero=True):
    """Coerce a whole-unit quantity (pieces) to int"""
    number = to_decimal(value, field, allow_zero=allow_zero)
    if number != number.to_integral_value():
        raise PayloadValidationError(f"{field} must be a whole number")
    return int(number)


def to_datetime(value, field):
    """Accept a datetime or an ISO-8601 string; naive values are made aware"""
    if value is None or value == '':
        raise PayloadValidationError(f"{field} is required")
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            raise PayloadValidationError(f"{field} must be an ISO-8601 datetime")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed
