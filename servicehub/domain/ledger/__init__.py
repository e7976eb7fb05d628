"""Ledger domain"""
