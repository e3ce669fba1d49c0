"""Terminal presentation for VoiceDash."""

from .dashboard_screen import DashboardScreen

__all__ = ["DashboardScreen"]
