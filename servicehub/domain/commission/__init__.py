"""Commission domain"""
