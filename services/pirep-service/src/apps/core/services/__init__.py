"""
PIREP Service Business Logic

Service layer for the flight report pipeline.
"""

from .exceptions import (
    PirepServiceError,
    ValidationError,
    NotFoundError,
    ConflictError,
    InsufficientFundsError,
    PermissionDeniedError,
)
from .reference import ReferenceLookup
from .award_service import AwardService
from .credit_service import CreditLedger
from .stats_service import StatsService
from .rank_service import RankService
from .activity_service import ActivityService, ProgressSnapshot
from .tour_service import TourService
from .registry_service import FlightRegistry
from .intake_service import IntakeService
from .propagation import PropagationPipeline, PropagationSummary, STEPS
from .approval_service import ApprovalService, APPROVE, REJECT
from .leaderboard_service import LeaderboardService

__all__ = [
    # Exceptions
    'PirepServiceError',
    'ValidationError',
    'NotFoundError',
    'ConflictError',
    'InsufficientFundsError',
    'PermissionDeniedError',

    # Services
    'ReferenceLookup',
    'AwardService',
    'CreditLedger',
    'StatsService',
    'RankService',
    'ActivityService',
    'ProgressSnapshot',
    'TourService',
    'FlightRegistry',
    'IntakeService',
    'PropagationPipeline',
    'PropagationSummary',
    'STEPS',
    'ApprovalService',
    'APPROVE',
    'REJECT',
    'LeaderboardService',
]
