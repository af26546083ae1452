from django.db import models
from django.utils.translation import gettext_lazy as _


# ============================================================================
# AUTHENTICATION & USER CHOICES
# ============================================================================

class Department(models.TextChoices):
    SALES = 'sales', _('Sales')
    PROCUREMENT = 'procurement', _('Procurement')
    INVENTORY = 'inventory', _('Inventory')
    MANUFACTURING = 'manufacturing', _('Manufacturing')
    QA = 'qa', _('Quality Assurance')
    FINANCE = 'finance', _('Finance')
    SHIPMENT = 'shipment', _('Shipment')
    ADMIN = 'admin', _('Administration')


# ============================================================================
# COMMON CHOICES
# ============================================================================

class PriorityChoices(models.TextChoices):
    LOW = 'low', _('Low')
    MEDIUM = 'medium', _('Medium')
    HIGH = 'high', _('High')
    URGENT = 'urgent', _('Urgent')


class UnitChoices(models.TextChoices):
    PIECES = 'pieces', _('Pieces')
    METERS = 'meters', _('Meters')
    KG = 'kg', _('Kilograms')
    ROLLS = 'rolls', _('Rolls')
    SETS = 'sets', _('Sets')
    BOXES = 'boxes', _('Boxes')


# ============================================================================
# SALES CHOICES
# ============================================================================

class SalesOrderStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    CONFIRMED = 'confirmed', _('Confirmed')
    PRODUCTION_REQUESTED = 'production_requested', _('Production Requested')
    MATERIALS_RECEIVED = 'materials_received', _('Materials Received')
    IN_PRODUCTION = 'in_production', _('In Production')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


# ============================================================================
# PROCUREMENT CHOICES
# ============================================================================

class PurchaseOrderStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    APPROVED = 'approved', _('Approved')
    PARTIALLY_RECEIVED = 'partially_received', _('Partially Received')
    RECEIVED = 'received', _('Received')
    CANCELLED = 'cancelled', _('Cancelled')


class GRNStatusChoices(models.TextChoices):
    RECEIVED = 'received', _('Received')
    CREDIT_NOTE_RAISED = 'credit_note_raised', _('Credit Note Raised')


class CreditNoteStatusChoices(models.TextChoices):
    DRAFT = 'draft', _('Draft')
    APPROVED = 'approved', _('Approved')
    CANCELLED = 'cancelled', _('Cancelled')


class SettlementStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    SETTLED = 'settled', _('Settled')


# ============================================================================
# INVENTORY & MATERIAL FLOW CHOICES
# ============================================================================

class InventoryMovementTypeChoices(models.TextChoices):
    GRN_RECEIPT = 'grn_receipt', _('GRN Receipt')
    DISPATCH_TO_MANUFACTURING = 'dispatch_to_manufacturing', _('Dispatch to Manufacturing')
    PRODUCTION_RETURN = 'production_return', _('Production Return')
    PRODUCTION_CONSUMPTION = 'production_consumption', _('Production Consumption')
    ADJUSTMENT = 'adjustment', _('Adjustment')


class MaterialRequestStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    MATERIALS_ISSUED = 'materials_issued', _('Materials Issued')
    PARTIALLY_ISSUED = 'partially_issued', _('Partially Issued')
    ISSUED = 'issued', _('Issued')
    MATERIALS_READY = 'materials_ready', _('Materials Ready')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class DispatchReceivedStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    RECEIVED = 'received', _('Received')
    DISCREPANCY = 'discrepancy', _('Discrepancy')


class ReceiptVerificationStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    VERIFIED = 'verified', _('Verified')
    FAILED = 'failed', _('Failed')


class VerificationResultChoices(models.TextChoices):
    PASSED = 'passed', _('Passed')
    FAILED = 'failed', _('Failed')


class VerificationApprovalStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class ApprovalDecisionChoices(models.TextChoices):
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


# ============================================================================
# MANUFACTURING CHOICES
# ============================================================================

class ProductionRequestStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    REVIEWED = 'reviewed', _('Reviewed')
    IN_PRODUCTION = 'in_production', _('In Production')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class ProductionOrderStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    IN_PROGRESS = 'in_progress', _('In Progress')
    ON_HOLD = 'on_hold', _('On Hold')
    COMPLETED = 'completed', _('Completed')
    CANCELLED = 'cancelled', _('Cancelled')


class StageStatusChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    IN_PROGRESS = 'in_progress', _('In Progress')
    ON_HOLD = 'on_hold', _('On Hold')
    PAUSED = 'paused', _('Paused')
    COMPLETED = 'completed', _('Completed')
    SKIPPED = 'skipped', _('Skipped')


class CheckpointResultChoices(models.TextChoices):
    PENDING = 'pending', _('Pending')
    PASSED = 'passed', _('Passed')
    FAILED = 'failed', _('Failed')


class RejectionSeverityChoices(models.TextChoices):
    MINOR = 'minor', _('Minor')
    MAJOR = 'major', _('Major')
    CRITICAL = 'critical', _('Critical')


class MaterialSourceChoices(models.TextChoices):
    ALLOCATED = 'allocated', _('Allocated')
    INVENTORY = 'inventory', _('Direct from Inventory')


class MaterialReturnStatusChoices(models.TextChoices):
    PENDING_APPROVAL = 'pending_approval', _('Pending Approval')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')
    RETURNED = 'returned', _('Returned')


# ============================================================================
# NOTIFICATION CHOICES
# ============================================================================

class NotificationPriorityChoices(models.TextChoices):
    LOW = 'low', _('Low')
    NORMAL = 'normal', _('Normal')
    MEDIUM = 'medium', _('Medium')
    HIGH = 'high', _('High')
    URGENT = 'urgent', _('Urgent')


class NotificationTypeChoices(models.TextChoices):
    # Production requests
    PRODUCTION_REQUEST_CREATED = 'production_request_created', _('Production Request Created')
    PRODUCTION_REQUEST_UPDATED = 'production_request_updated', _('Production Request Updated')

    # Procurement
    PO_APPROVED = 'po_approved', _('Purchase Order Approved')
    GRN_RECEIVED = 'grn_received', _('GRN Received')
    GRN_OVERAGE = 'grn_overage', _('GRN Overage Detected')
    CREDIT_NOTE_CREATED = 'credit_note_created', _('Credit Note Created')
    CREDIT_NOTE_APPROVED = 'credit_note_approved', _('Credit Note Approved')

    # Material chain
    MATERIAL_REQUEST_CREATED = 'material_request_created', _('Material Request Created')
    MATERIAL_DISPATCHED = 'material_dispatched', _('Material Dispatched')
    MATERIAL_RECEIVED = 'material_received', _('Material Received')
    MATERIAL_DISCREPANCY = 'material_discrepancy', _('Material Discrepancy')
    PRODUCTION_READY = 'production_ready', _('Production Ready')
    VERIFICATION_PASSED = 'verification_passed', _('Verification Passed')
    VERIFICATION_FAILED = 'verification_failed', _('Verification Failed')
    PRODUCTION_APPROVED = 'production_approved', _('Production Approved')
    PRODUCTION_REJECTED = 'production_rejected', _('Production Rejected')
    PRODUCTION_STARTED = 'production_started', _('Production Started')

    # Shop floor
    PRODUCTION_ORDER_CREATED = 'production_order_created', _('Production Order Created')
    STAGE_STARTED = 'stage_started', _('Stage Started')
    STAGE_COMPLETED = 'stage_completed', _('Stage Completed')
    STAGE_LATE = 'stage_late', _('Stage Late')
    STAGE_REWORK = 'stage_rework', _('Stage Rework')
    PRODUCTION_COMPLETED = 'production_completed', _('Production Completed')

    # Material return
    MATERIAL_RETURN_REQUESTED = 'material_return_requested', _('Material Return Requested')
    MATERIAL_RETURN_APPROVED = 'material_return_approved', _('Material Return Approved')
    MATERIAL_RETURN_REJECTED = 'material_return_rejected', _('Material Return Rejected')
    MATERIAL_RETURN_PROCESSED = 'material_return_processed', _('Material Return Processed')
