"""
PIREP Service Models

Database models for the flight report pipeline including:
- Pilots, ranks and awards
- Flight reports and propagation markers
- Activities and tours with per-pilot progress
- Credit ledger, store catalogue and purchases
- Ephemeral live-flight sessions and bids
- Airport reference data
"""

from .reference import Airport, DestinationOfTheMonth
from .pilot import Rank, Pilot
from .award import Award, PilotAward
from .report import FlightReport, PropagationStep
from .activity import Activity, ActivityLeg, ActivityProgress, ActivityLegCompletion
from .tour import Tour, TourLeg, TourProgress, TourLegCompletion
from .ledger import CreditTransaction, StoreItem, Purchase
from .live import ActiveFlightSession, Bid

__all__ = [
    # Reference
    'Airport',
    'DestinationOfTheMonth',

    # Pilots
    'Rank',
    'Pilot',
    'Award',
    'PilotAward',

    # Reports
    'FlightReport',
    'PropagationStep',

    # Progression
    'Activity',
    'ActivityLeg',
    'ActivityProgress',
    'ActivityLegCompletion',
    'Tour',
    'TourLeg',
    'TourProgress',
    'TourLegCompletion',

    # Ledger
    'CreditTransaction',
    'StoreItem',
    'Purchase',

    # Live
    'ActiveFlightSession',
    'Bid',
]
