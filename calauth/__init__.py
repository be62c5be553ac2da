"""
calauth - Google Calendar OAuth helper
"""

__version__ = "0.1.0"
__logo__ = "📅"
