from rest_framework import serializers

from utils.enums import UnitChoices
from .models import SalesOrder


class SalesOrderItemSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1)
    unit = serializers.ChoiceField(choices=UnitChoices.choices, default=UnitChoices.PIECES)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True)


class SalesOrderSerializer(serializers.ModelSerializer):
    items = serializers.ListField(child=SalesOrderItemSerializer(), allow_empty=False)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    total_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'order_number', 'customer_name', 'project_name', 'items', 'total_quantity',
            'delivery_date', 'priority', 'status', 'status_display', 'lifecycle_history',
            'notes', 'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = ['order_number', 'status', 'lifecycle_history', 'created_by', 'created_at', 'updated_at']
