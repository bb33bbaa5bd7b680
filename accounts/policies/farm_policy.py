"""
Farm Authorization Policy

Defines access control rules for farms and everything housed in them
(rooms and workers).
"""

from .base_policy import BasePolicy


class FarmPolicy(BasePolicy):
    """Authorization policy for Farm and farm-scoped models."""

    @classmethod
    def can_view(cls, user, farm_id):
        """
        Check if user can view a farm's data.

        Access Rules:
        - Super Admin: All farms
        - Admin / User: Own farm only
        """
        if cls.is_super_admin(user):
            return True
        own_farm_id = cls.get_user_farm_id(user)
        return own_farm_id is not None and str(own_farm_id) == str(farm_id)

    @classmethod
    def can_edit(cls, user, farm_id):
        """
        Check if user can create or edit rooms and workers of a farm.

        Access Rules:
        - Super Admin: All farms
        - Admin: Own farm only
        - User: Read only
        """
        if cls.is_super_admin(user):
            return True
        return cls.is_farm_admin(user) and cls.can_view(user, farm_id)

    @classmethod
    def can_manage_farms(cls, user):
        """Only super admins create, rename or delete farms."""
        return cls.is_super_admin(user)

    @classmethod
    def scope_queryset(cls, user, queryset, farm_field='farm'):
        """
        Restrict a queryset to the farms the user may see.

        Args:
            user: User instance
            queryset: QuerySet of a farm-scoped model
            farm_field: Lookup path from the model to its farm

        Returns:
            Filtered QuerySet
        """
        if cls.is_super_admin(user):
            return queryset
        own_farm_id = cls.get_user_farm_id(user)
        if own_farm_id is None:
            return queryset.none()
        if farm_field == 'pk':
            return queryset.filter(pk=own_farm_id)
        return queryset.filter(**{f'{farm_field}_id': own_farm_id})
