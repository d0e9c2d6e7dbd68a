"""Griftless meetup site: registration form, speaker showcase and live attendee feed."""

__version__ = "1.0.0"
