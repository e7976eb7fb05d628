"""Bookings domain"""
