"""
Remote record store endpoint.

Generic keyed-record semantics per entity type; this is the server the
sync adapter's RecordStoreClient talks to. Responses are the bare
records (no envelope) so any client of the keyed-record contract can use
them.
"""

import logging
import uuid

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.storage.cache_store import ENTITY_TYPES
from .filters import StoredRecordFilter
from .models import StoredRecord

logger = logging.getLogger(__name__)


def invalid_route():
    return Response({'error': 'Invalid Route'}, status=status.HTTP_404_NOT_FOUND)


class RecordStoreView(APIView):
    permission_classes = [IsAuthenticated]


class RecordCollectionView(RecordStoreView):

    @extend_schema(
        summary="List records",
        description="Every stored record of a collection; bills can be filtered on their lookup columns",
        parameters=[
            OpenApiParameter(name='date_from', type=str, description='Bills dated on/after (YYYY-MM-DD)'),
            OpenApiParameter(name='date_to', type=str, description='Bills dated on/before (YYYY-MM-DD)'),
            OpenApiParameter(name='patient_reference', type=str, description='Bills of one patient'),
            OpenApiParameter(name='referring_professional_id', type=str),
            OpenApiParameter(name='consulting_professional_id', type=str),
            OpenApiParameter(name='min_due', type=float, description='Bills with at least this much due'),
        ],
        tags=['Record Store'],
    )
    def get(self, request, entity_type):
        if entity_type not in ENTITY_TYPES:
            return invalid_route()
        queryset = StoredRecord.objects.filter(entity_type=entity_type)
        if entity_type == 'bills':
            queryset = StoredRecordFilter(request.query_params, queryset=queryset).qs
        return Response([record.payload for record in queryset])

    @extend_schema(
        summary="Upsert record",
        description="Create the record, or fully replace the stored one with the same id",
        request=OpenApiTypes.OBJECT,
        tags=['Record Store'],
    )
    def post(self, request, entity_type):
        if entity_type not in ENTITY_TYPES:
            return invalid_route()
        payload = request.data
        if not isinstance(payload, dict):
            return Response({'error': 'Record must be a JSON object'}, status=status.HTTP_400_BAD_REQUEST)

        payload = dict(payload)
        record_id = str(payload.get('id') or uuid.uuid4().hex)
        payload['id'] = record_id

        _, created = StoredRecord.objects.update_or_create(
            entity_type=entity_type,
            record_id=record_id,
            defaults={'payload': payload, **StoredRecord.lookup_fields(entity_type, payload)},
        )
        logger.debug(f"{'Created' if created else 'Replaced'} {entity_type}/{record_id}")
        return Response({'status': 'success', 'id': record_id})


class RecordDetailView(RecordStoreView):

    @extend_schema(
        summary="Get record",
        description="A single record, or null when the store has none with this id",
        tags=['Record Store'],
    )
    def get(self, request, entity_type, record_id):
        if entity_type not in ENTITY_TYPES:
            return invalid_route()
        record = StoredRecord.objects.filter(entity_type=entity_type, record_id=record_id).first()
        return Response(record.payload if record else None)

    @extend_schema(
        summary="Delete record",
        tags=['Record Store'],
    )
    def delete(self, request, entity_type, record_id):
        if entity_type not in ENTITY_TYPES:
            return invalid_route()
        StoredRecord.objects.filter(entity_type=entity_type, record_id=record_id).delete()
        return Response({'status': 'deleted'})
