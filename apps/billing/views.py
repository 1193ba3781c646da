from django.db.models import Q
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from apps.rooms.models import Room

from .models import BillingCycle
from .permissions import IsCycleRoomMember, IsCycleRoomAdmin
from .serializers import (
    AllocatedChargeSerializer,
    BillingCycleCreateSerializer,
    BillingCycleListSerializer,
    BillingCycleSerializer,
    BillingCycleUpdateSerializer,
    CloseCycleSerializer,
    CycleCloseResultSerializer,
    CycleFilterSerializer,
    PaymentStatusInputSerializer,
    PaymentSummarySerializer,
    ReconciliationReportSerializer,
)

from apps.billing.services import (
    create_billing_cycle,
    update_billing_cycle,
    close_billing_cycle,
    repair_billing_cycle,
    get_active_cycle,
    ReconciliationGuard,
    PaymentStatusTracker,
    # Exceptions
    BillingServiceError,
    RoomNotFoundError,
    CycleNotFoundError,
    ActiveCycleConflictError,
    InvalidBillingInputError,
    InvalidCycleTransitionError,
    CycleNotActiveError,
    InvalidPaymentTransitionError,
    NotPayerError,
    NotRoomMemberError,
    InsufficientPermissionsError,
)


ERROR_STATUS = [
    (InvalidBillingInputError, status.HTTP_400_BAD_REQUEST),
    (NotPayerError, status.HTTP_400_BAD_REQUEST),
    (NotRoomMemberError, status.HTTP_400_BAD_REQUEST),
    (InsufficientPermissionsError, status.HTTP_403_FORBIDDEN),
    (RoomNotFoundError, status.HTTP_404_NOT_FOUND),
    (CycleNotFoundError, status.HTTP_404_NOT_FOUND),
    (ActiveCycleConflictError, status.HTTP_409_CONFLICT),
    (InvalidCycleTransitionError, status.HTTP_409_CONFLICT),
    (CycleNotActiveError, status.HTTP_409_CONFLICT),
    (InvalidPaymentTransitionError, status.HTTP_409_CONFLICT),
]


def error_response(exc: BillingServiceError) -> Response:
    """Translate a billing domain error into an HTTP response."""
    body = {'error': str(exc)}
    if isinstance(exc, InvalidBillingInputError) and exc.field:
        body['field'] = exc.field

    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            return Response(body, status=http_status)
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


class CyclePagination(PageNumberPagination):
    """Custom pagination for billing cycles."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def user_rooms_filter(user, prefix=''):
    return Q(**{f'{prefix}members__user': user}) | Q(**{f'{prefix}admin': user})


class BillingCycleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for billing cycles.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Cycles of the user's rooms (?room=&status=)
    create: Open a new active cycle (room admin)
    retrieve: Cycle with its cached member charges
    partial_update: Edit an active cycle's inputs (room admin)
    """

    serializer_class = BillingCycleSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = CyclePagination
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    def get_queryset(self):
        return (
            BillingCycle.objects
            .filter(user_rooms_filter(self.request.user, prefix='room__'))
            .select_related('room', 'created_by', 'closed_by')
            .distinct()
            .order_by('-created_at')
        )

    def get_serializer_class(self):
        if self.action == 'list':
            return BillingCycleListSerializer
        if self.action == 'create':
            return BillingCycleCreateSerializer
        if self.action == 'partial_update':
            return BillingCycleUpdateSerializer
        return BillingCycleSerializer

    def get_permissions(self):
        if self.action in ['partial_update', 'close', 'repair', 'reconciliation']:
            return [IsAuthenticated(), IsCycleRoomAdmin()]
        return [IsAuthenticated(), IsCycleRoomMember()]

    @extend_schema(parameters=[CycleFilterSerializer])
    def list(self, request, *args, **kwargs):
        """List cycles, optionally for one room and status."""
        filters = CycleFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)

        queryset = self.get_queryset()
        if filters.validated_data.get('room'):
            queryset = queryset.filter(room_id=filters.validated_data['room'])
        if filters.validated_data.get('status'):
            queryset = queryset.filter(status=filters.validated_data['status'])

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = BillingCycleListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = BillingCycleListSerializer(queryset, many=True)
        return Response(serializer.data)

    @extend_schema(request=BillingCycleCreateSerializer, responses=BillingCycleSerializer)
    def create(self, request, *args, **kwargs):
        """Open a new billing cycle."""
        serializer = BillingCycleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        room_id = data.pop('room')

        try:
            cycle = create_billing_cycle(room_id=room_id, created_by=request.user, **data)
        except BillingServiceError as e:
            return error_response(e)

        output_serializer = BillingCycleSerializer(cycle, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    @extend_schema(request=BillingCycleUpdateSerializer, responses=BillingCycleSerializer)
    def partial_update(self, request, *args, **kwargs):
        """Edit an active cycle's inputs and recompute its charges."""
        cycle = self.get_object()
        serializer = BillingCycleUpdateSerializer(cycle, data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            cycle = update_billing_cycle(
                cycle_id=cycle.id,
                updated_by=request.user,
                **serializer.validated_data
            )
        except BillingServiceError as e:
            return error_response(e)

        cycle.refresh_from_db()
        return Response(BillingCycleSerializer(cycle, context={'request': request}).data)

    @extend_schema(request=CloseCycleSerializer, responses=CycleCloseResultSerializer)
    @action(detail=True, methods=['post'])
    def close(self, request, pk=None):
        """Archive the cycle (admin only)."""
        cycle = self.get_object()
        serializer = CloseCycleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = close_billing_cycle(
                cycle_id=cycle.id,
                closed_by=request.user,
                notes=serializer.validated_data.get('notes'),
            )
        except BillingServiceError as e:
            return error_response(e)

        return Response(CycleCloseResultSerializer(result, context={'request': request}).data)

    @extend_schema(request=None, responses=BillingCycleSerializer)
    @action(detail=True, methods=['post'])
    def repair(self, request, pk=None):
        """Recompute the cycle's cached charges (admin only)."""
        cycle = self.get_object()
        try:
            cycle = repair_billing_cycle(cycle_id=cycle.id, user=request.user)
        except BillingServiceError as e:
            return error_response(e)

        cycle.refresh_from_db()
        return Response(BillingCycleSerializer(cycle, context={'request': request}).data)

    @extend_schema(responses=AllocatedChargeSerializer(many=True))
    @action(detail=True, methods=['get'])
    def charges(self, request, pk=None):
        """Every member's charge, from cache or freshly computed."""
        cycle = self.get_object()
        charges = ReconciliationGuard.resolve_charges(cycle)
        return Response(AllocatedChargeSerializer(charges, many=True).data)

    @extend_schema(responses=AllocatedChargeSerializer)
    @action(detail=True, methods=['get'])
    def my_charge(self, request, pk=None):
        """The current user's charge for this cycle."""
        cycle = self.get_object()
        charge = ReconciliationGuard.resolve_member_charge(cycle, request.user.pk)
        if charge is None:
            return Response(
                {'error': 'No charge for this user in this cycle'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(AllocatedChargeSerializer(charge).data)

    @extend_schema(responses=ReconciliationReportSerializer)
    @action(detail=True, methods=['get'])
    def reconciliation(self, request, pk=None):
        """Compare cached charges with a fresh allocation (admin only)."""
        cycle = self.get_object()
        report = ReconciliationGuard.verify(cycle)
        return Response(ReconciliationReportSerializer(report).data)

    @extend_schema(responses=PaymentSummarySerializer)
    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        """Collection overview with per-member payment statuses."""
        cycle = self.get_object()
        try:
            summary = PaymentStatusTracker.get_payment_summary(cycle_id=cycle.id)
        except BillingServiceError as e:
            return error_response(e)
        return Response(PaymentSummarySerializer(summary).data)

    @extend_schema(request=PaymentStatusInputSerializer)
    @action(detail=True, methods=['post'])
    def payment_status(self, request, pk=None):
        """Change one member's payment status for a bill type."""
        cycle = self.get_object()
        serializer = PaymentStatusInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PaymentStatusTracker.set_payment_status(
                cycle_id=cycle.id,
                updated_by=request.user,
                **serializer.validated_data
            )
        except BillingServiceError as e:
            return error_response(e)

        return Response({
            'user_id': result.record.user_id,
            'bill_type': result.record.bill_type,
            'status': result.record.status,
            'cycle_completed': result.auto_complete.completed,
            'auto_complete_reason': result.auto_complete.reason,
        })


@extend_schema(responses=BillingCycleSerializer)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_cycle(request, room_id):
    """
    Get the room's active billing cycle.

    GET /api/billing/rooms/{room_id}/active/
    """
    room_visible = Room.objects.filter(user_rooms_filter(request.user), id=room_id).exists()
    if not room_visible:
        return Response({'error': 'Room not found'}, status=status.HTTP_404_NOT_FOUND)

    cycle = get_active_cycle(room_id=room_id)
    if cycle is None:
        return Response(
            {'error': 'No active billing cycle for this room'},
            status=status.HTTP_404_NOT_FOUND
        )

    return Response(BillingCycleSerializer(cycle, context={'request': request}).data)
