"""
Core sync engine and data models.
"""
