import django_filters

from .models import StoredRecord


class StoredRecordFilter(django_filters.FilterSet):
    """Server-side filters over the bill lookup columns"""
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='lte')
    patient_reference = django_filters.CharFilter(field_name='patient_reference')
    referring_professional_id = django_filters.CharFilter(field_name='referring_professional_id')
    consulting_professional_id = django_filters.CharFilter(field_name='consulting_professional_id')
    min_due = django_filters.NumberFilter(field_name='due_amount', lookup_expr='gte')

    class Meta:
        model = StoredRecord
        fields = []
