from django.contrib import admin
from .models import (
    Airport, DestinationOfTheMonth, Rank, Pilot, Award, PilotAward,
    FlightReport, PropagationStep, Activity, ActivityLeg, ActivityProgress,
    Tour, TourLeg, TourProgress, CreditTransaction, StoreItem, Purchase,
    ActiveFlightSession, Bid,
)


class ActivityLegInline(admin.TabularInline):
    model = ActivityLeg
    extra = 0


class TourLegInline(admin.TabularInline):
    model = TourLeg
    extra = 0


class PropagationStepInline(admin.TabularInline):
    model = PropagationStep
    extra = 0
    readonly_fields = ['step', 'applied_at']


@admin.register(FlightReport)
class FlightReportAdmin(admin.ModelAdmin):
    list_display = ['flight_number', 'pilot_name', 'departure_icao', 'arrival_icao', 'approval_status', 'score', 'submitted_at', 'propagated_at']
    list_filter = ['approval_status']
    search_fields = ['flight_number', 'callsign', 'pilot_name']
    # Status changes go through the approval endpoints
    readonly_fields = ['approval_status', 'reviewed_at', 'reviewed_by', 'propagated_at', 'credits_earned']
    inlines = [PropagationStepInline]


@admin.register(Pilot)
class PilotAdmin(admin.ModelAdmin):
    list_display = ['pilot_code', 'first_name', 'last_name', 'rank', 'status', 'total_hours', 'total_flights', 'total_credits']
    list_filter = ['status', 'rank', 'is_admin']
    search_fields = ['pilot_code', 'first_name', 'last_name', 'email']
    readonly_fields = ['total_credits']


@admin.register(Rank)
class RankAdmin(admin.ModelAdmin):
    list_display = ['order', 'name', 'requirement_hours', 'requirement_flights', 'auto_promote']


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ['title', 'activity_type', 'start_date', 'end_date', 'legs_in_order', 'active', 'total_pilots_complete']
    list_filter = ['activity_type', 'active']
    inlines = [ActivityLegInline]


@admin.register(ActivityProgress)
class ActivityProgressAdmin(admin.ModelAdmin):
    list_display = ['pilot', 'activity', 'legs_complete', 'percent_complete', 'date_complete']


@admin.register(Tour)
class TourAdmin(admin.ModelAdmin):
    list_display = ['name', 'difficulty', 'reward_credits', 'active']
    inlines = [TourLegInline]


@admin.register(TourProgress)
class TourProgressAdmin(admin.ModelAdmin):
    list_display = ['pilot', 'tour', 'current_leg', 'status', 'completed_at']
    list_filter = ['status']


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    list_display = ['pilot', 'amount', 'kind', 'balance_after', 'reference', 'created_at']
    list_filter = ['kind']


@admin.register(StoreItem)
class StoreItemAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'active']


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = ['pilot', 'item', 'price_paid', 'purchased_at']


@admin.register(ActiveFlightSession)
class ActiveFlightSessionAdmin(admin.ModelAdmin):
    list_display = ['callsign', 'pilot', 'status', 'altitude', 'ground_speed', 'last_update']


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ['callsign', 'pilot', 'departure_icao', 'arrival_icao', 'status', 'expires_at']
    list_filter = ['status']


admin.site.register(Airport)
admin.site.register(DestinationOfTheMonth)
admin.site.register(Award)
admin.site.register(PilotAward)
