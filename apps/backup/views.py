from django.http import HttpResponse

from rest_framework import serializers
from rest_framework.parsers import JSONParser, MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiResponse

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import IsAdministrator, require_confirmation
from common.responses import success_response
from .exceptions import ImportFormatError
from .services import (
    EXPORT_MODES,
    MODE_FULL,
    build_export,
    export_filename,
    import_bundle,
    load_bundle,
    normalize_payload,
    render_bundle,
)


class ExportQuerySerializer(serializers.Serializer):
    mode = serializers.ChoiceField(choices=EXPORT_MODES, default=MODE_FULL)
    date = serializers.DateField(required=False)
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)


class ExportView(ClinicErrorMixin, WorkspaceMixin, APIView):
    """Download a backup bundle as a JSON file"""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Export Backup",
        description="Bundle of patients, bills, services, users, commissions, expenses and configuration. "
                    "daily and range modes filter dated records by day.",
        parameters=[
            OpenApiParameter(name='mode', type=str, description='full, daily or range'),
            OpenApiParameter(name='date', type=str, description='Day for daily mode (YYYY-MM-DD, default today)'),
            OpenApiParameter(name='start', type=str, description='Range start (YYYY-MM-DD)'),
            OpenApiParameter(name='end', type=str, description='Range end (YYYY-MM-DD)'),
        ],
        responses={200: OpenApiTypes.OBJECT},
        tags=['Backup'],
    )
    def get(self, request):
        query = ExportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        bundle = build_export(
            self.workspace,
            mode=params['mode'],
            day=params.get('date'),
            start=params.get('start'),
            end=params.get('end'),
        )

        response = HttpResponse(render_bundle(bundle), content_type='application/json')
        response['Content-Disposition'] = f'attachment; filename="{export_filename(params["mode"])}"'
        return response


class ImportView(ClinicErrorMixin, WorkspaceMixin, APIView):
    """
    Restore from a backup bundle.

    Accepts the bundle as the JSON body or as an uploaded ``file``. Records
    whose id already exists are kept as they are.
    """
    permission_classes = [IsAdministrator]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    @extend_schema(
        summary="Import Backup",
        description="Set-union merge by record id; configuration is never imported. "
                    "Administrators only; requires confirm=true.",
        request=OpenApiTypes.OBJECT,
        parameters=[OpenApiParameter(name='confirm', type=bool)],
        responses={
            200: OpenApiResponse(description="Records added per collection"),
            400: OpenApiResponse(description="Not a backup bundle; nothing merged"),
        },
        tags=['Backup'],
    )
    def post(self, request):
        require_confirmation(request)

        upload = request.FILES.get('file')
        if upload is not None:
            bundle = load_bundle(upload.read())
        elif isinstance(request.data, dict) and request.data:
            bundle = normalize_payload(request.data)
        else:
            raise ImportFormatError("Send the bundle as the JSON body or as a 'file' upload")

        added = import_bundle(self.workspace, bundle)
        return success_response(added, message='Backup imported')
