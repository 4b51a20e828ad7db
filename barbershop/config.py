"""Default configuration for the barbershop backend.

Values can be overridden by a settings file named in the ``APP_SETTINGS``
environment variable, or by the object/mapping handed to ``create_app``.
"""
from __future__ import annotations

import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///barbershop.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens expire after 24 hours.
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 86400))

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Booking grid shown to clients: 09:00 to 17:00 every 30 minutes.
    OPENING_HOUR = 9
    CLOSING_HOUR = 17
    SLOT_INTERVAL_MINUTES = 30
