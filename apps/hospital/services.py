"""
Hospital configuration service.

The configuration is stored in the local cache (``medcore_hospital_config``)
and merged over ``settings.HOSPITAL_DEFAULTS`` on read, so keys added to
the defaults later are always present.
"""

import logging

from django.conf import settings

from apps.billing.invoice_numbers import InvoiceNumberConfig
from apps.storage.cache_store import KEYS

logger = logging.getLogger(__name__)


def get_hospital_config(workspace) -> dict:
    stored = workspace.store.get_value(KEYS['hospital_config'], default={}) or {}
    config = dict(getattr(settings, 'HOSPITAL_DEFAULTS', {}))
    config.update(stored)
    return config


def save_hospital_config(workspace, changes: dict) -> dict:
    """Merge ``changes`` into the stored configuration; returns the effective config"""
    stored = workspace.store.get_value(KEYS['hospital_config'], default={}) or {}
    stored.update(changes)
    workspace.store.set_value(KEYS['hospital_config'], stored)
    logger.info(f"Hospital configuration updated: {', '.join(sorted(changes))}")
    return get_hospital_config(workspace)


def get_invoice_number_config(workspace) -> InvoiceNumberConfig:
    return InvoiceNumberConfig.from_hospital_config(get_hospital_config(workspace))
