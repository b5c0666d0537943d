"""
shopgauge/domain package marker.
"""

from shopgauge.domain.analytics import UnifiedAnalytics
from shopgauge.domain.competitors import CompetitorInsights
from shopgauge.domain.dashboard import DASHBOARD_CARDS, DashboardInsights, DashboardSnapshot

__all__ = [
    "DASHBOARD_CARDS",
    "CompetitorInsights",
    "DashboardInsights",
    "DashboardSnapshot",
    "UnifiedAnalytics",
]
