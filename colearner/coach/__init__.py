"""Coach-side views over the bus."""

from colearner.coach.dashboard import Dashboard, StudentRollup, build_dashboard, format_dashboard

__all__ = ["Dashboard", "StudentRollup", "build_dashboard", "format_dashboard"]
