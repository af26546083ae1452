"""
Access to the GARMENT_ERP_SETTINGS dict with defaults
"""
from django.conf import settings


DEFAULT_WORKFLOW_SETTINGS = {
    'ALLOW_MULTIPLE_DISPATCHES_PER_REQUEST': False,
    'DEFAULT_PRODUCTION_STAGES': [
        'cutting',
        'embroidery_printing',
        'stitching',
        'finishing',
        'quality_check',
        'packaging',
    ],
    'SEQUENCE_PADDING': {
        'PRD': 4,
    },
    'DEFAULT_SEQUENCE_PADDING': 5,
    'SEQUENCE_MAX_RETRIES': 1,
}


def get_workflow_setting(name):
    """Read one workflow policy value, falling back to the built-in default"""
    configured = getattr(settings, 'GARMENT_ERP_SETTINGS', {}) or {}
    if name in configured:
        return configured[name]
    return DEFAULT_WORKFLOW_SETTINGS[name]
