from decimal import Decimal

from rest_framework import serializers


SEX_CHOICES = ['Male', 'Female', 'Other']

USER_ROLE_CHOICES = [
    ('SUPER_ADMIN', 'Super Admin'),
    ('ADMIN', 'Admin'),
    ('MANAGER', 'Manager'),
    ('RECEPTIONIST', 'Receptionist'),
    ('NURSE', 'Nurse'),
    ('PATHOLOGIST', 'Pathologist'),
]

ROOM_TYPE_CHOICES = ['General', 'Cabin', 'AC Cabin', 'ICU', 'NICU', 'Emergency']
ROOM_STATUS_CHOICES = ['Available', 'Occupied', 'Maintenance']


# ============================================================================
# PATIENTS
# ============================================================================

class PatientSerializer(serializers.Serializer):
    """Patient registration record"""
    name = serializers.CharField(max_length=200)
    age = serializers.IntegerField(min_value=0, max_value=150, required=False, allow_null=True)
    sex = serializers.ChoiceField(choices=SEX_CHOICES, required=False)
    mobile = serializers.CharField(max_length=20, allow_blank=True, required=False)
    address = serializers.CharField(allow_blank=True, required=False)
    reg_date = serializers.DateTimeField(required=False)
    history = serializers.ListField(child=serializers.CharField(), required=False)
    follow_up_date = serializers.DateField(required=False, allow_null=True)
    follow_up_reason = serializers.CharField(allow_blank=True, required=False)


# ============================================================================
# PROFESSIONALS
# ============================================================================

class ProfessionalSerializer(serializers.Serializer):
    """Doctor, pharmacist or field referrer who can earn referral commission"""
    name = serializers.CharField(max_length=200)
    degree = serializers.CharField(max_length=200, allow_blank=True, required=False)
    category = serializers.ChoiceField(choices=['Hospital', 'Out'], default='Hospital')
    out_type = serializers.ChoiceField(
        choices=['Doctor', 'Pharmacist', 'Field Refer'], required=False, allow_null=True
    )
    phone = serializers.CharField(max_length=20, allow_blank=True, required=False)
    commission_enabled = serializers.BooleanField(default=True)
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, default=Decimal('0')
    )

    def validate(self, data):
        if data.get('category') == 'Hospital':
            data['out_type'] = None
        return data


# ============================================================================
# SERVICE CATALOG
# ============================================================================

class CategorySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)


class ServiceSerializer(serializers.Serializer):
    category = serializers.CharField(max_length=100)
    name = serializers.CharField(max_length=200)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    commission_rate = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, max_value=100, required=False
    )


# ============================================================================
# USERS
# ============================================================================

class StaffUserSerializer(serializers.Serializer):
    """
    Staff directory entry.

    Credentials are never part of the record; sign-in goes through Django's
    own user accounts.
    """
    name = serializers.CharField(max_length=200)
    username = serializers.CharField(max_length=150)
    role = serializers.ChoiceField(choices=USER_ROLE_CHOICES, default='RECEPTIONIST')
    email = serializers.EmailField(allow_blank=True, required=False)
    phone = serializers.CharField(max_length=20, allow_blank=True, required=False)
    status = serializers.ChoiceField(choices=['active', 'inactive'], default='active')

    def validate_username(self, value):
        return value.strip().lower()


# ============================================================================
# INPATIENT
# ============================================================================

class AdmissionSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=50)
    admission_date = serializers.DateTimeField(required=False)
    discharge_date = serializers.DateTimeField(required=False, allow_null=True)
    room_number = serializers.CharField(max_length=20)
    bed_number = serializers.CharField(max_length=20, allow_blank=True, required=False)
    doctor_in_charge_id = serializers.CharField(max_length=50, allow_blank=True, required=False)
    status = serializers.ChoiceField(choices=['admitted', 'discharged'], default='admitted')
    notes = serializers.CharField(allow_blank=True, required=False)
    guardian_name = serializers.CharField(max_length=200, allow_blank=True, required=False)
    guardian_phone = serializers.CharField(max_length=20, allow_blank=True, required=False)
    guardian_relation = serializers.CharField(max_length=50, allow_blank=True, required=False)
    blood_group = serializers.CharField(max_length=5, allow_blank=True, required=False)
    admission_diagnosis = serializers.CharField(allow_blank=True, required=False)
    allergies = serializers.CharField(allow_blank=True, required=False)

    def validate(self, data):
        if data.get('status') == 'discharged' and 'discharge_date' not in data and not self.partial:
            raise serializers.ValidationError({'discharge_date': 'Required when status is discharged'})
        return data


class RoomSerializer(serializers.Serializer):
    number = serializers.CharField(max_length=20)
    type = serializers.ChoiceField(choices=ROOM_TYPE_CHOICES, default='General')
    price_per_day = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    floor = serializers.CharField(max_length=50, allow_blank=True, required=False)
    status = serializers.ChoiceField(choices=ROOM_STATUS_CHOICES, default='Available')


# ============================================================================
# EXPENSES
# ============================================================================

class ExpenseSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=300)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    category = serializers.CharField(max_length=100, allow_blank=True, required=False)
    date = serializers.DateTimeField(required=False)
    recorded_by = serializers.CharField(max_length=150, allow_blank=True, required=False)
