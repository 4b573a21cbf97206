"""
Activity and Tour Serializers
"""

from rest_framework import serializers

from apps.core.models import Activity, ActivityLeg, Tour, TourLeg, TourProgress


class ActivityLegSerializer(serializers.ModelSerializer):
    class Meta:
        model = ActivityLeg
        fields = ['id', 'leg_number', 'departure_icao', 'arrival_icao', 'flight_number', 'aircraft']
        read_only_fields = fields


class ActivitySerializer(serializers.ModelSerializer):
    legs = ActivityLegSerializer(many=True, read_only=True)
    min_rank = serializers.StringRelatedField()
    reward_award = serializers.StringRelatedField()

    class Meta:
        model = Activity
        fields = [
            'id',
            'title',
            'description',
            'activity_type',
            'start_date',
            'end_date',
            'legs_in_order',
            'min_rank',
            'reward_points',
            'reward_award',
            'total_pilots_complete',
            'average_days_to_complete',
            'legs',
        ]
        read_only_fields = fields


class ProgressSnapshotSerializer(serializers.Serializer):
    """Serializer for ProgressSnapshot."""

    activity_id = serializers.CharField()
    pilot_id = serializers.CharField()
    total_legs = serializers.IntegerField()
    legs_complete = serializers.IntegerField()
    percent_complete = serializers.FloatField()
    completed_leg_numbers = serializers.ListField(child=serializers.IntegerField())
    next_leg_number = serializers.IntegerField(allow_null=True)
    enrolled = serializers.BooleanField()
    is_complete = serializers.BooleanField()
    start_date = serializers.DateTimeField(allow_null=True)
    last_leg_flown_date = serializers.DateTimeField(allow_null=True)
    date_complete = serializers.DateTimeField(allow_null=True)
    days_to_complete = serializers.IntegerField(allow_null=True)


class TourLegSerializer(serializers.ModelSerializer):
    class Meta:
        model = TourLeg
        fields = ['leg_number', 'departure_icao', 'arrival_icao', 'aircraft_types', 'distance_nm']
        read_only_fields = fields


class TourProgressSerializer(serializers.ModelSerializer):
    legs_completed = serializers.SerializerMethodField()

    class Meta:
        model = TourProgress
        fields = ['id', 'tour_id', 'current_leg', 'status', 'started_at', 'completed_at', 'legs_completed']
        read_only_fields = fields

    def get_legs_completed(self, obj):
        return [
            {'leg_number': leg.leg_number, 'report_id': leg.report_id, 'completed_at': leg.completed_at}
            for leg in obj.legs_completed.all()
        ]


class TourSerializer(serializers.ModelSerializer):
    legs = TourLegSerializer(many=True, read_only=True)

    class Meta:
        model = Tour
        fields = ['id', 'name', 'description', 'difficulty', 'reward_credits', 'legs']
        read_only_fields = fields
