"""
Workflow error taxonomy
Every rejection carries a specific, human-readable reason that names the
violated rule, so operators know which upstream step to fix.
"""


class WorkflowError(Exception):
    """Base class for errors raised by the workflow services"""
    status_code = 400
    code = 'workflow_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class NotFoundError(WorkflowError):
    """Referenced entity does not exist"""
    status_code = 404
    code = 'not_found'


class InvalidStateError(WorkflowError):
    """Entity exists but its state does not permit the requested transition"""
    code = 'invalid_state'

    def __init__(self, message, current_state=None, required_states=None):
        super().__init__(message)
        self.current_state = current_state
        self.required_states = list(required_states or [])


class PayloadValidationError(WorkflowError):
    """Structurally invalid payload, rejected before any database write"""
    code = 'validation_error'


class ConcurrencyConflictError(WorkflowError):
    """Sequence collision or a competing write against the same predecessor"""
    status_code = 409
    code = 'conflict'


class DuplicateEntityError(ConcurrencyConflictError):
    code = 'duplicate'


class CapabilityDenied(WorkflowError):
    status_code = 403
    code = 'permission_denied'


class NotificationFailure(WorkflowError):
    """Raised inside the notification dispatcher only; never reaches callers"""
    code = 'notification_failure'
