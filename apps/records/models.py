from decimal import Decimal, InvalidOperation

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.dateparse import parse_date


class StoredRecord(models.Model):
    """
    One keyed record of the remote record store.

    The full record lives in ``payload``; bills additionally copy a few
    lookup fields into columns so they can be filtered server side
    without deserializing every payload.
    """
    entity_type = models.CharField(max_length=32, db_index=True)
    record_id = models.CharField(max_length=100)
    payload = models.JSONField(encoder=DjangoJSONEncoder)

    # Bill lookup columns
    date = models.DateField(null=True, blank=True, db_index=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    due_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    patient_reference = models.CharField(max_length=100, blank=True, default='', db_index=True)
    referring_professional_id = models.CharField(max_length=100, blank=True, default='')
    consulting_professional_id = models.CharField(max_length=100, blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stored_records'
        verbose_name = 'Stored Record'
        verbose_name_plural = 'Stored Records'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['entity_type', 'record_id'], name='unique_record_per_type'),
        ]

    def __str__(self):
        return f"{self.entity_type}/{self.record_id}"

    @staticmethod
    def _amount(value):
        if value in (None, ''):
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None

    @staticmethod
    def _day(value):
        raw_date = str(value or '')[:10]
        try:
            return parse_date(raw_date) if raw_date else None
        except ValueError:
            # Well formed but not a real day, e.g. 2024-13-45
            return None

    @classmethod
    def lookup_fields(cls, entity_type: str, payload: dict) -> dict:
        """Column values derived from a payload (bills only)"""
        if entity_type != 'bills':
            return {}
        return {
            'date': cls._day(payload.get('date')),
            'total_amount': cls._amount(payload.get('total_amount')),
            'paid_amount': cls._amount(payload.get('paid_amount')),
            'due_amount': cls._amount(payload.get('due_amount')),
            'patient_reference': payload.get('patient_id') or '',
            'referring_professional_id': payload.get('referring_professional_id') or '',
            'consulting_professional_id': payload.get('consulting_professional_id') or '',
        }
