from rest_framework.views import APIView
from rest_framework.permissions import IsAuthenticated

from drf_spectacular.utils import extend_schema, OpenApiResponse

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.responses import success_response


class SyncBaseView(ClinicErrorMixin, WorkspaceMixin, APIView):
    permission_classes = [IsAuthenticated]


class SyncStatusView(SyncBaseView):
    """Connectivity flag and outbox depth"""

    @extend_schema(
        summary="Sync status",
        description="Whether a remote record store is configured, the connectivity flag and pending writes",
        tags=['Sync'],
    )
    def get(self, request):
        workspace = self.workspace
        data = workspace.sync_status()
        data['pending'] = [
            {
                'entity_type': e['entity_type'],
                'record_id': e['record_id'],
                'action': e['action'],
                'queued_at': e['queued_at'],
                'attempts': e['attempts'],
                'last_error': e['last_error'],
            }
            for e in workspace.outbox.pending()
        ]
        return success_response(data)


class GoOnlineView(SyncBaseView):

    @extend_schema(
        summary="Mark online",
        description="Flip the connectivity flag to online; pending writes are replayed",
        tags=['Sync'],
    )
    def post(self, request):
        self.workspace.connectivity.mark_online()
        return success_response(self.workspace.sync_status(), message='Connectivity marked online')


class GoOfflineView(SyncBaseView):

    @extend_schema(
        summary="Mark offline",
        description="Serve reads from the local cache and queue writes until marked online again",
        tags=['Sync'],
    )
    def post(self, request):
        self.workspace.connectivity.mark_offline()
        return success_response(self.workspace.sync_status(), message='Connectivity marked offline')


class FlushOutboxView(SyncBaseView):

    @extend_schema(
        summary="Flush pending writes",
        description="Replay queued remote writes in order, stopping at the first failure",
        responses={200: OpenApiResponse(description="Counts of sent, failed and remaining writes")},
        tags=['Sync'],
    )
    def post(self, request):
        result = self.workspace.adapter.flush_outbox()
        return success_response(result, message='Outbox flushed')


class RefreshView(SyncBaseView):

    @extend_schema(
        summary="Refresh collections",
        description="Re-read every collection (server answer when reachable, else the local cache)",
        tags=['Sync'],
    )
    def post(self, request):
        counts = self.workspace.refresh_all()
        return success_response(counts, message='Collections refreshed')
