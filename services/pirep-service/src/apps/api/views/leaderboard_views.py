"""
Leaderboard Views
"""

from rest_framework.response import Response

from apps.core.services import LeaderboardService
from apps.api.serializers import LeaderboardEntrySerializer
from .base import BasePirepViewSet


class LeaderboardViewSet(BasePirepViewSet):
    """Top pilots by hours, with their live status."""

    def list(self, request):
        """
        GET /api/v1/pireps/leaderboard/
        """
        try:
            limit = int(request.query_params.get('limit', 0)) or None
        except ValueError:
            limit = None
        if limit:
            limit = min(limit, 100)

        entries = LeaderboardService.top_pilots(limit=limit)
        return Response(LeaderboardEntrySerializer(entries, many=True).data)
