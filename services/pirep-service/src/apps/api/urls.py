"""
PIREP Service API URL Configuration

All API endpoints for the PIREP Service.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    ReportViewSet,
    ActivityViewSet,
    TourViewSet,
    LiveFlightViewSet,
    BidView,
    CreditViewSet,
    StoreItemViewSet,
    LeaderboardViewSet,
)

app_name = 'api'

# =============================================================================
# Main Router
# =============================================================================

router = DefaultRouter()
router.register(r'reports', ReportViewSet, basename='report')
router.register(r'activities', ActivityViewSet, basename='activity')
router.register(r'tours', TourViewSet, basename='tour')
router.register(r'live', LiveFlightViewSet, basename='live')
router.register(r'credits', CreditViewSet, basename='credit')
router.register(r'store', StoreItemViewSet, basename='store-item')
router.register(r'leaderboard', LeaderboardViewSet, basename='leaderboard')

urlpatterns = [
    path('', include(router.urls)),
    path('bid/', BidView.as_view(), name='bid'),
]

# =============================================================================
# API Endpoint Summary
# =============================================================================
"""
Reports:
    GET     /reports/                       - List reports (own, or all for admins)
    POST    /reports/                       - Submit a report
    GET     /reports/{id}/                  - Report details
    PATCH   /reports/{id}/                  - Admin correction
    POST    /reports/{id}/approve/          - Approve and propagate
    POST    /reports/{id}/reject/           - Reject
    POST    /reports/{id}/reopen/           - Rejected back to pending
    POST    /reports/{id}/redrive/          - Re-run missing propagation steps

Activities:
    GET     /activities/                    - Active activities
    GET     /activities/{id}/               - Activity with legs
    GET     /activities/{id}/progress/      - Progress of the caller

Tours:
    GET     /tours/                         - Tours with the caller's progress
    POST    /tours/{id}/start/              - Start or restart
    POST    /tours/{id}/abandon/            - Abandon

Live flights:
    GET     /live/                          - Sessions within TTL
    POST    /live/start/                    - Open a session
    POST    /live/telemetry/                - Position report
    POST    /live/end/                      - Close session

Bid:
    GET     /bid/                           - Active bid
    POST    /bid/                           - Place bid
    DELETE  /bid/                           - Cancel bid

Credits:
    GET     /credits/                       - Balance and history
    POST    /credits/adjust/                - Admin adjustment
    POST    /credits/jumpseat/              - Jumpseat purchase
    POST    /credits/purchase/              - Store purchase
    GET     /store/                         - Store catalogue

Leaderboard:
    GET     /leaderboard/                   - Top pilots
"""
