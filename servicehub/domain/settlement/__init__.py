"""Settlement domain"""
