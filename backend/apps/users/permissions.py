from rest_framework import permissions


class IsBusinessMember(permissions.BasePermission):
    """Authenticated user attached to a business."""
    message = 'Your account is not linked to a business.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.business_id)


class IsBusinessOwner(IsBusinessMember):
    """Business member with the owner role. Read-only requests fall back to membership."""
    message = 'Only business owners can make this change.'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return request.user.is_owner
