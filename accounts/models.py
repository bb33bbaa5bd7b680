from django.contrib.auth.models import AbstractUser
from django.db import models
from phonenumber_field.modelfields import PhoneNumberField
import uuid


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Every non-super-admin account belongs to exactly one farm (tenant) and
    only ever sees that farm's workers and rooms.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class UserRole(models.TextChoices):
        SUPER_ADMIN = 'SUPER_ADMIN', 'Super Administrator'
        ADMIN = 'ADMIN', 'Farm Administrator'
        USER = 'USER', 'Farm User'

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.USER,
        db_index=True,
        help_text="User's role; only super administrators may see every farm"
    )

    farm = models.ForeignKey(
        'farms.Farm',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='members',
        help_text="Farm this account is scoped to (empty for super administrators)"
    )

    phone = PhoneNumberField(
        region='MA',
        blank=True,
        help_text="Contact phone number"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    last_login_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role', 'is_active'], name='users_role_8a1f2e_idx'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.get_role_display()})"

    def get_full_name(self):
        """Return the user's full name or username if name is not set."""
        full_name = super().get_full_name()
        return full_name if full_name else self.username

    @property
    def is_super_admin(self):
        return self.role == self.UserRole.SUPER_ADMIN

    @property
    def can_manage_housing(self):
        """Admins and super admins may create and edit rooms and workers."""
        return self.role in (self.UserRole.SUPER_ADMIN, self.UserRole.ADMIN)
