from django.contrib import admin
from .models import StoredRecord


@admin.register(StoredRecord)
class StoredRecordAdmin(admin.ModelAdmin):
    """Read-mostly view of the remote record store"""
    list_display = [
        'entity_type',
        'record_id',
        'date',
        'total_amount',
        'due_amount',
        'updated_at'
    ]

    list_filter = ['entity_type', 'date']
    search_fields = ['record_id', 'patient_reference']
    readonly_fields = ['created_at', 'updated_at']
