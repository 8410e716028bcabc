"""Read-only query selectors."""

from clinic_kernel.selectors.dashboard_selector import DashboardSelector, DashboardSummary

__all__ = ["DashboardSelector", "DashboardSummary"]
