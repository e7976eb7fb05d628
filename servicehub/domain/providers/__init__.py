"""Providers domain"""
