from rest_framework import serializers

from apps.billing.invoice_numbers import DATE_FORMAT_CHOICES


class HospitalConfigSerializer(serializers.Serializer):
    """Hospital configuration serializer"""
    name = serializers.CharField(max_length=200)
    address = serializers.CharField(allow_blank=True, required=False)
    phone = serializers.CharField(max_length=30, allow_blank=True, required=False)
    email = serializers.EmailField(allow_blank=True, required=False)
    website = serializers.CharField(max_length=200, allow_blank=True, required=False)
    social_media = serializers.CharField(max_length=200, allow_blank=True, required=False)
    tagline = serializers.CharField(max_length=300, allow_blank=True, required=False)
    currency_symbol = serializers.CharField(max_length=8, required=False)
    date_format = serializers.CharField(max_length=20, required=False)

    # Invoice numbering
    invoice_id_prefix = serializers.CharField(max_length=10, allow_blank=True, required=False)
    invoice_id_date_format = serializers.ChoiceField(choices=DATE_FORMAT_CHOICES, required=False)
    invoice_id_padding = serializers.IntegerField(min_value=1, max_value=10, required=False)
    invoice_id_separator = serializers.CharField(max_length=3, allow_blank=True, required=False, trim_whitespace=False)

    def validate_invoice_id_prefix(self, value):
        return value.strip().upper()
