"""
Live Flight and Bid Serializers
"""

from rest_framework import serializers

from apps.core.models import ActiveFlightSession, Bid


class TelemetrySerializer(serializers.Serializer):
    """Serializer for a telemetry tick."""

    callsign = serializers.CharField(max_length=20)
    flight_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    departure_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    arrival_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    aircraft_type = serializers.CharField(max_length=10, required=False, allow_blank=True)
    latitude = serializers.FloatField(required=False, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, min_value=-180, max_value=180)
    altitude = serializers.FloatField(required=False)
    heading = serializers.FloatField(required=False, min_value=0, max_value=360)
    ground_speed = serializers.FloatField(required=False, min_value=0)
    status = serializers.CharField(max_length=30, required=False)


class EndFlightSerializer(serializers.Serializer):
    callsign = serializers.CharField(max_length=20, required=False)


class ActiveFlightSessionSerializer(serializers.ModelSerializer):
    pilot_code = serializers.CharField(source='pilot.pilot_code', read_only=True)
    pilot_name = serializers.CharField(source='pilot.full_name', read_only=True)

    class Meta:
        model = ActiveFlightSession
        fields = [
            'id',
            'pilot_id',
            'pilot_code',
            'pilot_name',
            'callsign',
            'flight_number',
            'departure_icao',
            'arrival_icao',
            'aircraft_type',
            'latitude',
            'longitude',
            'altitude',
            'heading',
            'ground_speed',
            'status',
            'started_at',
            'last_update',
        ]
        read_only_fields = fields


class BidSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bid
        fields = [
            'id',
            'callsign',
            'flight_number',
            'departure_icao',
            'arrival_icao',
            'aircraft_type',
            'route',
            'status',
            'created_at',
            'expires_at',
        ]
        read_only_fields = fields


class BidCreateSerializer(serializers.Serializer):
    callsign = serializers.CharField(max_length=20)
    flight_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    departure_icao = serializers.CharField(max_length=4)
    arrival_icao = serializers.CharField(max_length=4)
    aircraft_type = serializers.CharField(max_length=10, required=False, allow_blank=True)
    route = serializers.CharField(required=False, allow_blank=True)
