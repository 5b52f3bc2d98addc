# billing/views.py
from django.utils import timezone

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
    OpenApiResponse,
    OpenApiExample
)

from common.mixins import ClinicErrorMixin, WorkspaceMixin
from common.permissions import require_confirmation
from common.responses import success_response
from apps.recycle_bin.services import RecycleBin
from .reconciliation import apply_payment
from .reports import daily_summary, due_list
from .serializers import (
    BillWriteSerializer,
    PaymentSerializer,
    BillFilterSerializer,
    SummaryQuerySerializer,
)
from .services import build_ledger, author_of


# ============================================================================
# BILL VIEWSET
# ============================================================================

@extend_schema_view(
    list=extend_schema(
        summary="List Bills",
        description="Bills newest first, with optional status, date range and search filters",
        parameters=[
            OpenApiParameter(name='status', type=str, description='paid, partial or due'),
            OpenApiParameter(name='date_from', type=str, description='Created on/after (YYYY-MM-DD)'),
            OpenApiParameter(name='date_to', type=str, description='Created on/before (YYYY-MM-DD)'),
            OpenApiParameter(name='search', type=str, description='Invoice id, patient id, walk-in name or mobile'),
        ],
        tags=['Billing']
    ),
    retrieve=extend_schema(
        summary="Get Bill",
        tags=['Billing']
    ),
    create=extend_schema(
        summary="Create Bill",
        description="Finalize a bill; the invoice id is generated from the hospital numbering settings",
        request=BillWriteSerializer,
        examples=[
            OpenApiExample(
                'Walk-in with advance',
                value={
                    'invoice_type': 'OPD',
                    'walk_in': {'name': 'Rahim Uddin', 'age': 42, 'sex': 'Male', 'mobile': '01700000000'},
                    'referring_professional_id': 'PRO-101',
                    'items': [{'service_id': 'S1'}, {'service_id': 'S2'}],
                    'discount': 0,
                    'paid_amount': 400,
                    'payment_method': 'Cash',
                },
                request_only=True,
            )
        ],
        tags=['Billing']
    ),
    update=extend_schema(
        summary="Edit Bill",
        description="Replace items, discount and professionals; payments are kept. Discount cannot decrease.",
        request=BillWriteSerializer,
        tags=['Billing']
    ),
    destroy=extend_schema(
        summary="Delete Bill",
        description="Moves the bill to the recycle bin. Requires confirm=true.",
        parameters=[OpenApiParameter(name='confirm', type=bool)],
        tags=['Billing']
    ),
)
class BillViewSet(ClinicErrorMixin, WorkspaceMixin, viewsets.ViewSet):
    """
    Bill ViewSet

    Bills live in the record store collections, not in the database;
    every mutation goes through the ledger.
    """
    permission_classes = [IsAuthenticated]
    lookup_field = 'bill_id'
    lookup_value_regex = '[^/]+'

    def get_ledger(self):
        return build_ledger(self.workspace)

    def list(self, request):
        filters = BillFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        bills = self.get_ledger().list_bills(**filters.validated_data)
        return success_response(bills)

    def retrieve(self, request, bill_id=None):
        return success_response(self.get_ledger().get_bill(bill_id))

    def create(self, request):
        serializer = BillWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = self.get_ledger().create_bill(serializer.validated_data, author=author_of(request.user))
        return success_response(bill, message='Bill created successfully', status_code=status.HTTP_201_CREATED)

    def update(self, request, bill_id=None):
        serializer = BillWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        bill = self.get_ledger().update_bill(bill_id, serializer.validated_data)
        return success_response(bill, message='Bill updated successfully')

    def destroy(self, request, bill_id=None):
        require_confirmation(request)
        self.get_ledger().get_bill(bill_id)

        item = RecycleBin(self.workspace).soft_delete('bills', bill_id)
        return success_response(item, message='Bill moved to recycle bin')

    @extend_schema(
        summary="Record Payment",
        description="Collect a due amount and/or grant a waiver; appends a payment record",
        request=PaymentSerializer,
        responses={
            200: OpenApiResponse(description="Updated bill"),
            400: OpenApiResponse(description="Invalid payment"),
            404: OpenApiResponse(description="Bill not found"),
        },
        tags=['Billing']
    )
    @action(detail=True, methods=['post'])
    def record_payment(self, request, bill_id=None):
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = apply_payment(self.get_ledger(), bill_id, **serializer.validated_data)
        return success_response(bill, message='Payment recorded successfully')

    @extend_schema(
        summary="Next Invoice Id",
        description="Preview of the identifier the next bill would get (not reserved)",
        tags=['Billing']
    )
    @action(detail=False, methods=['get'])
    def next_id(self, request):
        return success_response({'next_id': self.get_ledger().next_invoice_id()})

    @extend_schema(
        summary="Outstanding Dues",
        description="Bills with an open due, newest first, with the total outstanding",
        tags=['Billing']
    )
    @action(detail=False, methods=['get'])
    def dues(self, request):
        return success_response(due_list(self.workspace.bills.all()))


class DailySummaryView(ClinicErrorMixin, WorkspaceMixin, APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Daily Financial Summary",
        description="Advance and due collections, receivables, expenses and cash balance for a date range (defaults to today)",
        parameters=[
            OpenApiParameter(name='start', type=str, description='YYYY-MM-DD'),
            OpenApiParameter(name='end', type=str, description='YYYY-MM-DD'),
        ],
        tags=['Billing']
    )
    def get(self, request):
        query = SummaryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        today = timezone.localdate()
        start = query.validated_data.get('start', today)
        end = query.validated_data.get('end', start)

        summary = daily_summary(
            self.workspace.bills.all(),
            self.workspace.repo('expenses').all(),
            start,
            end,
        )
        return success_response(summary)
