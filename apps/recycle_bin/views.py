from rest_framework import viewsets, serializers
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import IsAdministrator, require_confirmation
from common.responses import success_response
from .services import RecycleBin, ON_CONFLICT_CHOICES, ON_CONFLICT_REJECT


class RestoreSerializer(serializers.Serializer):
    on_conflict = serializers.ChoiceField(choices=ON_CONFLICT_CHOICES, default=ON_CONFLICT_REJECT)


@extend_schema_view(
    list=extend_schema(
        summary="List Trash",
        description="Deleted records, most recent first",
        parameters=[OpenApiParameter(name='entity_type', type=str, description='Only this collection')],
        tags=['Recycle Bin']
    ),
    retrieve=extend_schema(
        summary="Get Trash Item",
        tags=['Recycle Bin']
    ),
    destroy=extend_schema(
        summary="Purge Trash Item",
        description="Permanently discard one item. Administrators only; requires confirm=true.",
        parameters=[OpenApiParameter(name='confirm', type=bool)],
        tags=['Recycle Bin']
    ),
)
class RecycleBinViewSet(ClinicErrorMixin, WorkspaceMixin, viewsets.ViewSet):
    """
    Recycle Bin ViewSet

    Restore is open to any signed-in user; purge and empty are
    administrative and need an explicit confirmation.
    """
    lookup_field = 'trash_id'
    lookup_value_regex = '[^/]+'

    def get_permissions(self):
        if self.action in ('destroy', 'empty'):
            return [IsAdministrator()]
        return [IsAuthenticated()]

    def get_bin(self):
        return RecycleBin(self.workspace)

    def list(self, request):
        items = self.get_bin().list_items(entity_type=request.query_params.get('entity_type'))
        return success_response(items)

    def retrieve(self, request, trash_id=None):
        return success_response(self.get_bin().get_item(trash_id))

    def destroy(self, request, trash_id=None):
        require_confirmation(request)
        item = self.get_bin().purge(trash_id)
        return success_response({'id': item['id']}, message='Item permanently deleted')

    @extend_schema(
        summary="Restore Trash Item",
        description=(
            "Put the record back into its collection. When a live record already "
            "uses its id: reject (409), overwrite, or rename to <id>-R<n>."
        ),
        request=RestoreSerializer,
        tags=['Recycle Bin']
    )
    @action(detail=True, methods=['post'])
    def restore(self, request, trash_id=None):
        serializer = RestoreSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = self.get_bin().restore(trash_id, on_conflict=serializer.validated_data['on_conflict'])
        return success_response(record, message='Record restored')

    @extend_schema(
        summary="Empty Recycle Bin",
        description="Purge every item. Administrators only; requires confirm=true.",
        request=None,
        tags=['Recycle Bin']
    )
    @action(detail=False, methods=['post'])
    def empty(self, request):
        require_confirmation(request)
        purged = self.get_bin().empty_all()
        return success_response({'purged': purged}, message='Recycle bin emptied')
