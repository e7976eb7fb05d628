"""Booking lifecycle and commission settlement service"""

__version__ = "1.0.0"
