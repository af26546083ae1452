"""
Department capability model
One declarative table of which departments may run each workflow operation.
"""
from utils.enums import Department
from utils.exceptions import CapabilityDenied


OPERATION_CAPABILITIES = {
    # Sales / production requests
    'sales_order.manage': {Department.SALES},
    'production_request.create': {Department.SALES, Department.PROCUREMENT},
    'production_request.review': {Department.MANUFACTURING},

    # Procurement
    'purchase_order.create': {Department.PROCUREMENT},
    'purchase_order.approve': {Department.PROCUREMENT, Department.FINANCE},
    'grn.create': {Department.INVENTORY, Department.PROCUREMENT},
    'credit_note.create': {Department.PROCUREMENT, Department.INVENTORY},
    'credit_note.approve': {Department.FINANCE},

    # Inventory
    'inventory_item.manage': {Department.INVENTORY},

    # Material chain
    'material_request.create': {Department.MANUFACTURING},
    'dispatch.create': {Department.INVENTORY},
    'receipt.create': {Department.MANUFACTURING},
    'verification.create': {Department.MANUFACTURING, Department.QA},
    'approval.create': {Department.MANUFACTURING},
    'production.start': {Department.MANUFACTURING},

    # Shop floor
    'production_order.create': {Department.MANUFACTURING},
    'stage.transition': {Department.MANUFACTURING},
    'stage.quality': {Department.MANUFACTURING, Department.QA},
    'stage.unfreeze': {Department.MANUFACTURING},

    # Material return
    'material_return.request': {Department.MANUFACTURING},
    'material_return.review': {Department.INVENTORY},
}

# Departments that pass every capability check
UNRESTRICTED_DEPARTMENTS = {Department.ADMIN.value}


def has_department(user, departments):
    """True when the user belongs to one of the given departments"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser or user.department in UNRESTRICTED_DEPARTMENTS:
        return True
    return user.department in {getattr(d, 'value', d) for d in departments}


def can_perform(user, operation):
    try:
        departments = OPERATION_CAPABILITIES[operation]
    except KeyError:
        raise KeyError(f"Unknown workflow operation '{operation}'")
    return has_department(user, departments)


def require_capability(user, operation):
    if not can_perform(user, operation):
        allowed = ', '.join(sorted(getattr(d, 'value', d) for d in OPERATION_CAPABILITIES[operation]))
        department = getattr(user, 'department', None) or 'none'
        raise CapabilityDenied(
            f"Department '{department}' cannot perform {operation}; allowed: {allowed}"
        )
