"""
Base Policy Class

Provides common authorization methods for all policy classes.
"""


class BasePolicy:
    """
    Base class for all authorization policies.
    Provides helper methods for common permission checks.
    """

    @staticmethod
    def is_super_admin(user):
        """Check if user is super admin (the only role that spans farms)."""
        return bool(user and user.is_authenticated and user.is_super_admin)

    @staticmethod
    def is_farm_admin(user):
        return bool(user and user.is_authenticated and user.role == 'ADMIN')

    @staticmethod
    def has_write_access(user):
        """Super admins and farm admins may write housing data."""
        return bool(user and user.is_authenticated and user.can_manage_housing)

    @staticmethod
    def get_user_farm_id(user):
        """
        Return the id of the farm the user is scoped to.

        Returns:
            Farm id or None when the user is not attached to a farm
        """
        return getattr(user, 'farm_id', None)
