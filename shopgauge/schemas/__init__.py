"""
shopgauge/schemas package marker.
"""

from shopgauge.schemas.admin import AuditLogEntry, AuditLogPage, IntegrationStatus, Secret
from shopgauge.schemas.analytics import (
    AbandonedCartsPayload,
    ConversionPayload,
    InventoryPayload,
    NewProductsPayload,
    OrdersPayload,
    ProductsPayload,
    RevenuePayload,
    RevenueTimeseriesPayload,
    TimeseriesPoint,
    TopProduct,
)
from shopgauge.schemas.auth import (
    AuthStatus,
    HealthSummary,
    HeartbeatResult,
    RefreshResult,
    SessionInfo,
    SessionLimit,
)
from shopgauge.schemas.competitors import (
    Competitor,
    CompetitorSuggestion,
    DiscoveryStats,
    SuggestionCount,
    SuggestionPage,
)
from shopgauge.schemas.privacy import ComplianceReport, DataDeletionResult, DataExport

__all__ = [
    "AbandonedCartsPayload",
    "AuditLogEntry",
    "AuditLogPage",
    "AuthStatus",
    "Competitor",
    "CompetitorSuggestion",
    "ComplianceReport",
    "ConversionPayload",
    "DataDeletionResult",
    "DataExport",
    "DiscoveryStats",
    "HealthSummary",
    "HeartbeatResult",
    "IntegrationStatus",
    "InventoryPayload",
    "NewProductsPayload",
    "OrdersPayload",
    "ProductsPayload",
    "RefreshResult",
    "RevenuePayload",
    "RevenueTimeseriesPayload",
    "Secret",
    "SessionInfo",
    "SessionLimit",
    "SuggestionCount",
    "SuggestionPage",
    "TimeseriesPoint",
    "TopProduct",
]
