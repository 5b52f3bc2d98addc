from rest_framework import serializers
from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema, OpenApiParameter

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import IsAdministrator
from common.responses import success_response
from apps.billing.services import build_commission_engine
from .reports import commission_report, STATUS_ALL, STATUS_PAID, STATUS_DUE


class CommissionQuerySerializer(serializers.Serializer):
    professional_id = serializers.CharField(required=False)
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)
    status = serializers.ChoiceField(choices=[STATUS_ALL, STATUS_PAID, STATUS_DUE], default=STATUS_ALL)
    search = serializers.CharField(required=False, allow_blank=True)


COMMISSION_PARAMETERS = [
    OpenApiParameter(name='professional_id', type=str, description='Only this professional'),
    OpenApiParameter(name='start', type=str, description='Dated on/after (YYYY-MM-DD)'),
    OpenApiParameter(name='end', type=str, description='Dated on/before (YYYY-MM-DD)'),
    OpenApiParameter(name='status', type=str, description='all, paid or due (bill settlement)'),
    OpenApiParameter(name='search', type=str, description='Patient, professional or invoice id'),
]


class CommissionBaseView(ClinicErrorMixin, WorkspaceMixin, APIView):
    permission_classes = [IsAuthenticated]

    def build_report(self, request):
        query = CommissionQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        workspace = self.workspace
        return commission_report(
            workspace.commissions.all(),
            workspace.professionals.all(),
            workspace.bills.all(),
            workspace.repo('patients').all(),
            **query.validated_data,
        )


class CommissionListView(CommissionBaseView):

    @extend_schema(
        summary="List Commissions",
        description="Commission rows joined with professional, patient and bill details",
        parameters=COMMISSION_PARAMETERS,
        tags=['Commissions'],
    )
    def get(self, request):
        report = self.build_report(request)
        return success_response(report['rows'])


class CommissionReportView(CommissionBaseView):

    @extend_schema(
        summary="Commission Report",
        description="Filtered commission ledger with per-professional totals",
        parameters=COMMISSION_PARAMETERS,
        tags=['Commissions'],
    )
    def get(self, request):
        return success_response(self.build_report(request))


class CommissionRecomputeView(ClinicErrorMixin, WorkspaceMixin, APIView):
    permission_classes = [IsAdministrator]

    @extend_schema(
        summary="Recompute Commissions",
        description="Re-evaluate the commission of every live bill and drop rows of bills no longer live",
        request=None,
        tags=['Commissions'],
    )
    def post(self, request):
        engine = build_commission_engine(self.workspace)
        produced = engine.recompute_all(self.workspace.bills.all())
        return success_response({'commissions': produced}, message='Commissions recomputed')
