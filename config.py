"""
Configuration settings for the Booking Sheet service.

This module contains all configuration settings for the application,
including the GCP project, Datastore kind names, and recomputation behavior.

Environment variables are used for anything that differs between environments.
"""

import os


class Config:
    """
    Application configuration class.

    Settings are loaded from environment variables with sensible defaults
    for development. Production should always use environment variables.
    """

    # Flask secret key
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # GCP Project ID (used for Datastore client)
    GCP_PROJECT_ID = os.environ.get('GOOGLE_CLOUD_PROJECT') or 'booking-sheet-dev'

    # Datastore kinds
    # Bookings are the sheet rows; tour packages and discount events are the
    # reference data that lookup columns read from
    BOOKING_KIND = 'Booking'
    TOUR_PACKAGE_KIND = 'TourPackage'
    DISCOUNT_EVENT_KIND = 'DiscountEvent'

    # Maximum number of rows returned by the bookings list endpoint
    BOOKINGS_PAGE_SIZE = int(os.environ.get('BOOKINGS_PAGE_SIZE', '100'))

    # Recompute affected function columns whenever a booking is written
    # Set RECOMPUTE_ON_SAVE=false while bulk-loading rows, then run
    # migrations/recompute_bookings.py once at the end
    RECOMPUTE_ON_SAVE = os.environ.get('RECOMPUTE_ON_SAVE', 'true').lower() == 'true'
