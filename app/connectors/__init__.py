"""
app/connectors package marker.
"""

from app.connectors.base import (
    BaseConnector,
    ConnectorConfigError,
    ConnectorRequestError,
    ErrorKind,
    url_for_logging,
)
from app.connectors.business_profile_connector import BusinessProfileConnector
from app.connectors.merchant_center_connector import MerchantCenterConnector

__all__ = [
    "BaseConnector",
    "BusinessProfileConnector",
    "ConnectorConfigError",
    "ConnectorRequestError",
    "ErrorKind",
    "MerchantCenterConnector",
    "url_for_logging",
]
