"""Availability domain"""
