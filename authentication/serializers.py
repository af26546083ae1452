from rest_framework import serializers

from .models import CustomUser


class UserBasicSerializer(serializers.ModelSerializer):
    """
    Compact user representation used inside workflow payloads
    """
    full_name = serializers.CharField(read_only=True)
    department_display = serializers.CharField(source='get_department_display', read_only=True)

    class Meta:
        model = CustomUser
        fields = ['id', 'email', 'full_name', 'department', 'department_display']
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    department_display = serializers.CharField(source='get_department_display', read_only=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = CustomUser
        fields = [
            'id', 'email', 'first_name', 'last_name', 'full_name', 'phone_number',
            'department', 'department_display', 'designation', 'is_active',
            'date_joined', 'capabilities'
        ]
        read_only_fields = ['id', 'email', 'department', 'is_active', 'date_joined']

    def get_capabilities(self, obj):
        """Operations this user's department may perform"""
        from .capabilities import OPERATION_CAPABILITIES, can_perform

        return sorted(op for op in OPERATION_CAPABILITIES if can_perform(obj, op))
