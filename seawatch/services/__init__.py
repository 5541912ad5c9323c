"""Service singletons backing the dashboard."""
