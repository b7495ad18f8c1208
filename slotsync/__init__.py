"""
slotsync - keeps interview scheduler availability in sync with recruiter calendars.
"""

__version__ = "0.3.0"
