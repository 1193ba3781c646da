"""
Custom permission classes for billing app.

Object permissions receive a BillingCycle and check the user's standing
in the cycle's room.
"""
from rest_framework.permissions import BasePermission


class IsCycleRoomMember(BasePermission):
    """
    Permission: User must be a member or the admin of the cycle's room.
    """

    message = 'You must be a member of this room to view its billing.'

    def has_object_permission(self, request, view, obj):
        room = obj.room
        return room.is_admin(request.user) or room.has_member(request.user)


class IsCycleRoomAdmin(BasePermission):
    """
    Permission: User must be the admin of the cycle's room.
    """

    message = 'Only the room admin can manage billing cycles.'

    def has_object_permission(self, request, view, obj):
        return obj.room.is_admin(request.user)
