from rest_framework import serializers

from .ledger import INVOICE_TYPES, STATUS_PAID, STATUS_PARTIAL, STATUS_DUE


class WalkInSerializer(serializers.Serializer):
    """Demographic snapshot for patients billed without registration"""
    name = serializers.CharField(max_length=200)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    sex = serializers.ChoiceField(choices=['Male', 'Female', 'Other'], required=False)
    mobile = serializers.CharField(max_length=20, required=False, allow_blank=True)


class BillItemSerializer(serializers.Serializer):
    """One service line; price, name and rate default to the service's"""
    id = serializers.CharField(required=False)
    service_id = serializers.CharField(required=False, allow_null=True)
    name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, default=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100,
        required=False, allow_null=True
    )

    def validate(self, attrs):
        if not attrs.get('service_id') and 'unit_price' not in attrs:
            raise serializers.ValidationError("Custom lines need a unit_price")
        return attrs


class BillWriteSerializer(serializers.Serializer):
    """Bill create/update payload"""
    invoice_type = serializers.ChoiceField(choices=INVOICE_TYPES, default='General')
    patient_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    walk_in = WalkInSerializer(required=False, allow_null=True)
    referring_professional_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    consulting_professional_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    # Emptiness is checked by the ledger so the caller gets EmptyBasketError
    items = BillItemSerializer(many=True, allow_empty=True)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    payment_method = serializers.CharField(max_length=30, default='Cash')

    def validate(self, attrs):
        has_patient = bool(attrs.get('patient_id'))
        has_walk_in = bool(attrs.get('walk_in'))
        if not self.partial and has_patient == has_walk_in:
            raise serializers.ValidationError(
                "Provide either patient_id or walk_in details, not both"
            )
        if self.partial and has_patient and has_walk_in:
            raise serializers.ValidationError("patient_id and walk_in are mutually exclusive")
        if self.partial and ('patient_id' in attrs or 'walk_in' in attrs) \
                and not has_patient and not has_walk_in:
            raise serializers.ValidationError("Clearing patient_id needs walk_in details in its place")
        return attrs


class PaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    waiver = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    method = serializers.CharField(max_length=30, required=False)
    note = serializers.CharField(max_length=200, required=False)


class BillFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[STATUS_PAID, STATUS_PARTIAL, STATUS_DUE], required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)


class SummaryQuerySerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
