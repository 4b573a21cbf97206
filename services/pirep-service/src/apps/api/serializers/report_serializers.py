"""
Flight Report Serializers

REST API serializers for report submission and review. Field values are
validated by the intake service; these serializers only coerce types.
"""

from rest_framework import serializers

from apps.core.models import FlightReport


class FlightReportListSerializer(serializers.ModelSerializer):
    """Serializer for report list view (minimal fields)."""

    approval_status_display = serializers.CharField(
        source='get_approval_status_display', read_only=True
    )

    class Meta:
        model = FlightReport
        fields = [
            'id',
            'pilot_id',
            'pilot_name',
            'flight_number',
            'callsign',
            'departure_icao',
            'arrival_icao',
            'aircraft_type',
            'flight_time',
            'landing_rate',
            'score',
            'approval_status',
            'approval_status_display',
            'submitted_at',
        ]
        read_only_fields = fields


class FlightReportDetailSerializer(serializers.ModelSerializer):
    """Serializer for report detail view (all fields)."""

    approval_status_display = serializers.CharField(
        source='get_approval_status_display', read_only=True
    )
    is_propagated = serializers.BooleanField(read_only=True)
    propagation_steps = serializers.SlugRelatedField(
        many=True, read_only=True, slug_field='step'
    )

    class Meta:
        model = FlightReport
        fields = [
            'id',
            'pilot_id',
            'pilot_name',
            'flight_number',
            'callsign',
            'departure_icao',
            'arrival_icao',
            'alternate_icao',
            'route',
            'aircraft_type',
            'flight_time',
            'fuel_used',
            'distance',
            'landing_rate',
            'pax',
            'cargo',
            'score',
            'credits_earned',
            'approval_status',
            'approval_status_display',
            'submitted_at',
            'reviewed_at',
            'reviewed_by',
            'comments',
            'admin_comments',
            'propagated_at',
            'is_propagated',
            'propagation_steps',
        ]
        read_only_fields = fields


class FlightReportSubmitSerializer(serializers.Serializer):
    """Serializer for submitting a flight report."""

    flight_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    callsign = serializers.CharField(max_length=20, required=False, allow_blank=True)
    departure_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    arrival_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    alternate_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    route = serializers.CharField(required=False, allow_blank=True)
    aircraft_type = serializers.CharField(max_length=10, required=False, allow_blank=True)
    flight_time = serializers.FloatField(required=False, allow_null=True)
    fuel_used = serializers.FloatField(required=False, allow_null=True)
    distance = serializers.FloatField(required=False, allow_null=True)
    landing_rate = serializers.FloatField(required=False, allow_null=True)
    pax = serializers.IntegerField(required=False, allow_null=True)
    cargo = serializers.IntegerField(required=False, allow_null=True)
    comments = serializers.CharField(required=False, allow_blank=True)


class ReportDecisionSerializer(serializers.Serializer):
    """Serializer for approving or rejecting a report."""

    comments = serializers.CharField(required=False, allow_blank=True)


class ReportCorrectionSerializer(serializers.Serializer):
    """Serializer for administrative report corrections."""

    comments = serializers.CharField(required=False, allow_blank=True)
    admin_comments = serializers.CharField(required=False, allow_blank=True)
    route = serializers.CharField(required=False, allow_blank=True)
    alternate_icao = serializers.CharField(max_length=4, required=False, allow_blank=True)
    flight_number = serializers.CharField(max_length=20, required=False)
    callsign = serializers.CharField(max_length=20, required=False)
    departure_icao = serializers.CharField(max_length=4, required=False)
    arrival_icao = serializers.CharField(max_length=4, required=False)
    aircraft_type = serializers.CharField(max_length=10, required=False)
    flight_time = serializers.FloatField(required=False)
    fuel_used = serializers.FloatField(required=False)
    distance = serializers.FloatField(required=False)
    landing_rate = serializers.FloatField(required=False)
    pax = serializers.IntegerField(required=False, min_value=0)
    cargo = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("No fields to correct")
        return attrs


class ReportFilterSerializer(serializers.Serializer):
    """Serializer for report list filters."""

    status = serializers.ChoiceField(
        choices=FlightReport.ApprovalStatus.choices,
        required=False
    )
    pilot_id = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False, max_length=100)


class PropagationSummarySerializer(serializers.Serializer):
    """Outcome of a decision."""

    report_id = serializers.CharField()
    approval_status = serializers.CharField()
    applied_steps = serializers.ListField(child=serializers.CharField())
    skipped_steps = serializers.ListField(child=serializers.CharField())
    failed_steps = serializers.ListField(child=serializers.CharField())
    propagated = serializers.BooleanField()
    credits_earned = serializers.IntegerField()
    new_rank = serializers.CharField(allow_null=True)
    activities_advanced = serializers.ListField(child=serializers.CharField())
    tours_advanced = serializers.ListField(child=serializers.CharField())
