"""
Mixins for MedCore API views.

Provides common functionality for:
- Domain error rendering
- Workspace access
"""

import logging

from common.exceptions import ClinicError
from common.responses import error_response

logger = logging.getLogger(__name__)


class ClinicErrorMixin:
    """
    View mixin that renders ClinicError as the standard failure envelope.

    Anything else falls through to DRF's own exception handling.
    """

    def handle_exception(self, exc):
        if isinstance(exc, ClinicError):
            logger.info(f"{self.__class__.__name__}: {exc.code}: {exc.message}")
            return error_response(exc)
        return super().handle_exception(exc)


class WorkspaceMixin:
    """Gives a view the process-wide storage workspace."""

    @property
    def workspace(self):
        from apps.storage.workspace import get_workspace
        return get_workspace()
