from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import IsAdministrator
from common.responses import success_response
from apps.billing.invoice_numbers import generate_invoice_id
from .serializers import HospitalConfigSerializer
from .services import get_hospital_config, save_hospital_config, get_invoice_number_config


class HospitalConfigView(ClinicErrorMixin, WorkspaceMixin, APIView):
    """
    Hospital Configuration View

    GET: Retrieve hospital configuration (any signed-in user)
    PUT/PATCH: Update hospital configuration (admin only)
    """

    def get_permissions(self):
        """Anyone signed in can view, only admins can update"""
        if self.request.method == 'GET':
            return [IsAuthenticated()]
        return [IsAdministrator()]

    @extend_schema(
        summary="Get hospital configuration",
        description="Stored configuration merged over the defaults, with a preview of the invoice id format",
        responses={200: HospitalConfigSerializer},
        tags=['Hospital'],
    )
    def get(self, request):
        data = get_hospital_config(self.workspace)
        data['invoice_id_preview'] = generate_invoice_id([], get_invoice_number_config(self.workspace))
        return success_response(data)

    @extend_schema(
        summary="Replace hospital configuration",
        request=HospitalConfigSerializer,
        tags=['Hospital'],
    )
    def put(self, request):
        return self._update(request, partial=False)

    @extend_schema(
        summary="Update hospital configuration",
        request=HospitalConfigSerializer,
        tags=['Hospital'],
    )
    def patch(self, request):
        return self._update(request, partial=True)

    def _update(self, request, partial):
        serializer = HospitalConfigSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        config = save_hospital_config(self.workspace, serializer.validated_data)
        return success_response(config, message='Hospital configuration updated successfully')
