from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for user details.
    Used for retrieving and updating the authenticated user's profile.
    """
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    role_display = serializers.CharField(source='get_role_display', read_only=True)
    farm_name = serializers.CharField(source='farm.name', read_only=True, default=None)

    class Meta:
        model = User
        fields = (
            'id', 'username', 'email', 'phone', 'first_name', 'last_name',
            'full_name', 'role', 'role_display', 'farm', 'farm_name',
            'is_active', 'date_joined', 'last_login_at'
        )
        # Role and farm assignment are managed by super admins through the admin site
        read_only_fields = (
            'id', 'full_name', 'role', 'role_display', 'farm', 'farm_name',
            'is_active', 'date_joined', 'last_login_at'
        )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    JWT token serializer that also returns the user's role and farm scope.
    """
    def validate(self, attrs):
        data = super().validate(attrs)

        data['user'] = {
            'id': str(self.user.id),
            'username': self.user.username,
            'email': self.user.email,
            'role': self.user.role,
            'farm': str(self.user.farm_id) if self.user.farm_id else None,
            'full_name': self.user.get_full_name(),
        }

        self.user.last_login_at = timezone.now()
        self.user.save(update_fields=['last_login_at'])

        return data
