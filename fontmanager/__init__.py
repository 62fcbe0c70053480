"""
FontManager: font folder management and synchronization.
"""

__version__ = "0.3.0"
