"""
ShopGauge merchant-analytics client.

REST API clients, cached view models and demo-mode fallbacks behind the
Streamlit frontend.
"""

__version__ = "1.0.0"
