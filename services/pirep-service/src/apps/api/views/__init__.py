"""
PIREP Service API Views
"""

from .report_views import ReportViewSet
from .activity_views import ActivityViewSet
from .tour_views import TourViewSet
from .live_views import LiveFlightViewSet
from .bid_views import BidView
from .credit_views import CreditViewSet, StoreItemViewSet
from .leaderboard_views import LeaderboardViewSet

__all__ = [
    'ReportViewSet',
    'ActivityViewSet',
    'TourViewSet',
    'LiveFlightViewSet',
    'BidView',
    'CreditViewSet',
    'StoreItemViewSet',
    'LeaderboardViewSet',
]
