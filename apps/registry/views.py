# registry/views.py
from rest_framework import viewsets, status
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import require_confirmation
from common.responses import success_response
from .services import RegistryService
from .serializers import (
    PatientSerializer,
    ProfessionalSerializer,
    ServiceSerializer,
    CategorySerializer,
    StaffUserSerializer,
    AdmissionSerializer,
    RoomSerializer,
    ExpenseSerializer,
)


def registry_schema(tag, label):
    """OpenAPI docs shared by every registry collection"""
    return extend_schema_view(
        list=extend_schema(
            summary=f"List {label}",
            parameters=[OpenApiParameter(name='search', type=str, description='Free-text search')],
            tags=[tag],
        ),
        retrieve=extend_schema(summary=f"Get {label} record", tags=[tag]),
        create=extend_schema(summary=f"Create {label} record", tags=[tag]),
        update=extend_schema(summary=f"Update {label} record", tags=[tag]),
        partial_update=extend_schema(summary=f"Partially update {label} record", tags=[tag]),
        destroy=extend_schema(
            summary=f"Delete {label} record",
            description="Moves the record to the recycle bin; requires confirm=true.",
            parameters=[OpenApiParameter(name='confirm', type=bool)],
            tags=[tag],
        ),
    )


class RegistryViewSet(ClinicErrorMixin, WorkspaceMixin, viewsets.ViewSet):
    """
    Base ViewSet for a registry collection.

    Subclasses set ``entity_type`` and ``serializer_class``.
    """
    entity_type = None
    serializer_class = None
    permission_classes = [IsAuthenticated]
    lookup_field = 'record_id'
    lookup_value_regex = '[^/]+'

    def get_service(self):
        return RegistryService(self.workspace, self.entity_type)

    def get_serializer(self, *args, **kwargs):
        return self.serializer_class(*args, **kwargs)

    def prepare(self, data):
        """Hook for collection specific defaults"""
        return data

    def list(self, request):
        records = self.get_service().list_records(search=request.query_params.get('search'))
        return success_response(records)

    def retrieve(self, request, record_id=None):
        return success_response(self.get_service().get_record(record_id))

    def create(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = self.get_service().create_record(self.prepare(dict(serializer.validated_data)))
        return success_response(
            record,
            message=f'{self.entity_type.capitalize()} record created successfully',
            status_code=status.HTTP_201_CREATED,
        )

    def update(self, request, record_id=None, partial=False):
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        record = self.get_service().update_record(record_id, dict(serializer.validated_data))
        return success_response(record, message=f'{self.entity_type.capitalize()} record updated successfully')

    def partial_update(self, request, record_id=None):
        return self.update(request, record_id=record_id, partial=True)

    def destroy(self, request, record_id=None):
        require_confirmation(request)
        item = self.get_service().delete_record(record_id)
        return success_response(item, message='Record moved to recycle bin')


@registry_schema('Patients', 'patient')
class PatientViewSet(RegistryViewSet):
    entity_type = 'patients'
    serializer_class = PatientSerializer


@registry_schema('Professionals', 'professional')
class ProfessionalViewSet(RegistryViewSet):
    entity_type = 'professionals'
    serializer_class = ProfessionalSerializer


@registry_schema('Services', 'service')
class ServiceViewSet(RegistryViewSet):
    entity_type = 'services'
    serializer_class = ServiceSerializer


@registry_schema('Services', 'service category')
class CategoryViewSet(RegistryViewSet):
    entity_type = 'categories'
    serializer_class = CategorySerializer


@registry_schema('Users', 'staff user')
class StaffUserViewSet(RegistryViewSet):
    entity_type = 'users'
    serializer_class = StaffUserSerializer


@registry_schema('Inpatient', 'admission')
class AdmissionViewSet(RegistryViewSet):
    entity_type = 'admissions'
    serializer_class = AdmissionSerializer


@registry_schema('Inpatient', 'room')
class RoomViewSet(RegistryViewSet):
    entity_type = 'rooms'
    serializer_class = RoomSerializer


@registry_schema('Expenses', 'expense')
class ExpenseViewSet(RegistryViewSet):
    entity_type = 'expenses'
    serializer_class = ExpenseSerializer

    def prepare(self, data):
        if not data.get('recorded_by'):
            data['recorded_by'] = self.request.user.get_username()
        return data
