"""
Credit, Store and Leaderboard Serializers
"""

from rest_framework import serializers

from apps.core.models import CreditTransaction, StoreItem, Purchase


class CreditAdjustSerializer(serializers.Serializer):
    """Serializer for admin credit adjustments."""

    pilot_id = serializers.UUIDField()
    delta = serializers.IntegerField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_delta(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment must be non-zero")
        return value


class JumpseatSerializer(serializers.Serializer):
    destination_icao = serializers.CharField(max_length=4)


class PurchaseRequestSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()


class CreditTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = CreditTransaction
        fields = ['id', 'amount', 'kind', 'reason', 'balance_after', 'created_at']
        read_only_fields = fields


class StoreItemSerializer(serializers.ModelSerializer):
    is_one_time = serializers.BooleanField(read_only=True)

    class Meta:
        model = StoreItem
        fields = ['id', 'name', 'description', 'price', 'category', 'image_url', 'is_one_time']
        read_only_fields = fields


class PurchaseSerializer(serializers.ModelSerializer):
    item = StoreItemSerializer(read_only=True)

    class Meta:
        model = Purchase
        fields = ['id', 'item', 'price_paid', 'purchased_at']
        read_only_fields = fields


class LeaderboardEntrySerializer(serializers.Serializer):
    position = serializers.IntegerField()
    pilot_id = serializers.CharField()
    pilot_code = serializers.CharField()
    name = serializers.CharField()
    rank = serializers.CharField(allow_null=True)
    total_hours = serializers.FloatField()
    total_flights = serializers.IntegerField()
    landing_avg = serializers.IntegerField()
    current_location = serializers.CharField()
    is_flying = serializers.BooleanField()
