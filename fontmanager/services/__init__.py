"""
Services used by the sync engine: filesystem access, hashing, settings.
"""
