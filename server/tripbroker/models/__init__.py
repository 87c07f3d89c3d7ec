"""Models module exporting all database models."""

from .agency import Agency, AgencyMembership, MembershipRole, MembershipStatus
from .booking import Booking, BookingEvent, BookingStatus
from .offer import OPEN_OFFER_STATUSES, Offer, OfferStatus
from .travel_request import TravelRequest, TravelRequestStatus
from .user import User

__all__ = [
    # Parties
    "User",
    "Agency",
    "AgencyMembership",
    "MembershipRole",
    "MembershipStatus",

    # Demand and supply
    "TravelRequest",
    "TravelRequestStatus",
    "Offer",
    "OfferStatus",
    "OPEN_OFFER_STATUSES",

    # Booking entities
    "Booking",
    "BookingEvent",
    "BookingStatus",
]
