from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .permissions import IsRoomMember, IsRoomAdmin
from .serializers import (
    RoomSerializer,
    RoomListSerializer,
    RoomMemberSerializer,
    PresenceDaySerializer,
    PresenceQuerySerializer,
    SetPayerSerializer,
)

from apps.rooms.services import (
    get_user_rooms,
    get_room_members,
    get_member_presence,
    mark_present,
    unmark_present,
    reset_room_presence,
    set_payer_status,
    # Exceptions
    RoomNotFoundError,
    NotRoomMemberError,
    InsufficientPermissionsError,
    PresenceClearError,
)


class RoomViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Rooms the current user belongs to.

    Room and membership CRUD lives in the Django admin; this ViewSet only
    exposes presence check-in and the payer flag.

    list: Rooms the user is a member or admin of
    retrieve: Room details with draft billing inputs
    """

    serializer_class = RoomSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        return get_user_rooms(user=self.request.user)

    def get_serializer_class(self):
        if self.action == 'list':
            return RoomListSerializer
        return RoomSerializer

    def get_permissions(self):
        if self.action in ['clear_presence', 'set_payer']:
            return [IsAuthenticated(), IsRoomAdmin()]
        return [IsAuthenticated(), IsRoomMember()]

    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get all members of the room."""
        room = self.get_object()
        members = get_room_members(room_id=room.id)
        serializer = RoomMemberSerializer(members, many=True)
        return Response(serializer.data)

    @extend_schema(
        parameters=[PresenceQuerySerializer],
        request=PresenceDaySerializer,
    )
    @action(detail=True, methods=['get', 'post', 'delete'])
    def presence(self, request, pk=None):
        """List, mark or unmark the current user's presence days."""
        room = self.get_object()

        try:
            if request.method == 'GET':
                query = PresenceQuerySerializer(data=request.query_params)
                query.is_valid(raise_exception=True)
                dates = get_member_presence(
                    room_id=room.id,
                    user=request.user,
                    start=query.validated_data.get('start'),
                    end=query.validated_data.get('end'),
                )
                return Response({'dates': [d.isoformat() for d in dates]})

            serializer = PresenceDaySerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            day = serializer.validated_data['date']

            if request.method == 'POST':
                _, created = mark_present(room_id=room.id, user=request.user, day=day)
                return Response(
                    {'date': day.isoformat(), 'created': created},
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
                )

            removed = unmark_present(room_id=room.id, user=request.user, day=day)
            if not removed:
                return Response(
                    {'error': 'No presence recorded for that day'},
                    status=status.HTTP_404_NOT_FOUND
                )
            return Response(status=status.HTTP_204_NO_CONTENT)

        except NotRoomMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except RoomNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    @action(detail=True, methods=['post'])
    def clear_presence(self, request, pk=None):
        """Reset every member's presence days (admin only)."""
        room = self.get_object()
        try:
            deleted = reset_room_presence(room_id=room.id, user=request.user)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except PresenceClearError as e:
            return Response({'error': str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response({'deleted': deleted})

    @extend_schema(request=SetPayerSerializer, responses=RoomMemberSerializer)
    @action(detail=True, methods=['post'])
    def set_payer(self, request, pk=None):
        """Change a member's payer flag (admin only)."""
        room = self.get_object()
        serializer = SetPayerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            membership = set_payer_status(
                room_id=room.id,
                user_id=serializer.validated_data['user_id'],
                is_payer=serializer.validated_data['is_payer'],
                updated_by=request.user,
            )
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except NotRoomMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(RoomMemberSerializer(membership).data)
