"""
DRF exception handler
Renders workflow errors as {'error': ..., 'code': ...} with the matching status
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import WorkflowError

logger = logging.getLogger(__name__)


def workflow_exception_handler(exc, context):
    if isinstance(exc, WorkflowError):
        return Response(
            {'error': exc.message, 'code': exc.code},
            status=exc.status_code
        )

    if isinstance(exc, DjangoValidationError):
        messages = exc.messages if hasattr(exc, 'messages') else [str(exc)]
        return Response(
            {'error': '; '.join(messages), 'code': 'validation_error'},
            status=status.HTTP_400_BAD_REQUEST
        )

    if isinstance(exc, IntegrityError):
        view = context.get('view')
        logger.warning(f"Integrity error in {view.__class__.__name__ if view else 'unknown view'}: {exc}")
        return Response(
            {'error': 'The record conflicts with an existing entry. Please retry.', 'code': 'conflict'},
            status=status.HTTP_409_CONFLICT
        )

    return exception_handler(exc, context)
