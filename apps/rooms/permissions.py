from rest_framework import permissions


class IsRoomMember(permissions.BasePermission):
    """
    Permission: User must be a member or the admin of the room.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Room instance
        return obj.is_admin(request.user) or obj.has_member(request.user)


class IsRoomAdmin(permissions.BasePermission):
    """
    Permission: User must be the room admin.
    """

    message = 'Only the room admin can perform this action.'

    def has_object_permission(self, request, view, obj):
        # obj is a Room instance
        return obj.is_admin(request.user)
