"""
PIREP Service API Serializers
"""

from .report_serializers import (
    FlightReportListSerializer,
    FlightReportDetailSerializer,
    FlightReportSubmitSerializer,
    ReportDecisionSerializer,
    ReportCorrectionSerializer,
    ReportFilterSerializer,
    PropagationSummarySerializer,
)
from .progress_serializers import (
    ActivitySerializer,
    ActivityLegSerializer,
    ProgressSnapshotSerializer,
    TourSerializer,
    TourLegSerializer,
    TourProgressSerializer,
)
from .live_serializers import (
    TelemetrySerializer,
    EndFlightSerializer,
    ActiveFlightSessionSerializer,
    BidSerializer,
    BidCreateSerializer,
)
from .credit_serializers import (
    CreditAdjustSerializer,
    JumpseatSerializer,
    PurchaseRequestSerializer,
    CreditTransactionSerializer,
    StoreItemSerializer,
    PurchaseSerializer,
    LeaderboardEntrySerializer,
)

__all__ = [
    # Reports
    'FlightReportListSerializer',
    'FlightReportDetailSerializer',
    'FlightReportSubmitSerializer',
    'ReportDecisionSerializer',
    'ReportCorrectionSerializer',
    'ReportFilterSerializer',
    'PropagationSummarySerializer',
    # Progress
    'ActivitySerializer',
    'ActivityLegSerializer',
    'ProgressSnapshotSerializer',
    'TourSerializer',
    'TourLegSerializer',
    'TourProgressSerializer',
    # Live
    'TelemetrySerializer',
    'EndFlightSerializer',
    'ActiveFlightSessionSerializer',
    'BidSerializer',
    'BidCreateSerializer',
    # Credits
    'CreditAdjustSerializer',
    'JumpseatSerializer',
    'PurchaseRequestSerializer',
    'CreditTransactionSerializer',
    'StoreItemSerializer',
    'PurchaseSerializer',
    'LeaderboardEntrySerializer',
]
