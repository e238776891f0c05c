from rest_framework import permissions

from .conf import get_setting
from .models import PrintingShop, Profile


class IsDesigner(permissions.BasePermission):
    """
    Permiso para usuarios que pueden tomar pedidos de personalización.
    """

    def has_permission(self, request, view):
        return Profile.objects.filter(user_id=request.user.id, role__in=get_setting("DESIGNER_ROLES")).exists()


class IsShopOwner(permissions.BasePermission):
    """
    Permiso para dueños de al menos una imprenta.
    """

    def has_permission(self, request, view):
        return PrintingShop.objects.filter(owner_id=request.user.id).exists()


class IsCustomizationAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        return Profile.objects.filter(user_id=request.user.id, role__in=get_setting("ADMIN_ROLES")).exists()
