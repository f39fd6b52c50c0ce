"""
app/connectors/merchant_center_connector.py

Merchant Center connector: accounts, data sources and products.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from app.config import ExternalHTTPSettings, MerchantCenterSettings
from app.connectors.base import BaseConnector
from app.domain.sync import DependentEntity, PrimaryEntity

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

_DATA_SOURCE_TYPE_KEYS = {
    "primaryProductDataSource": "PRIMARY_PRODUCT",
    "supplementalProductDataSource": "SUPPLEMENTAL_PRODUCT",
    "localInventoryDataSource": "LOCAL_INVENTORY",
    "regionalInventoryDataSource": "REGIONAL_INVENTORY",
    "promotionDataSource": "PROMOTION",
    "productReviewDataSource": "PRODUCT_REVIEW",
    "merchantReviewDataSource": "MERCHANT_REVIEW",
}


class MerchantCenterConnector(BaseConnector):
    """
    Lists Merchant Center accounts, their data sources and a sample of products.
    """

    def __init__(
        self,
        *,
        settings: MerchantCenterSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(
            source="merchant_center",
            http_settings=http_settings,
            access_token=settings.access_token,
            session=session,
        )
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")

    def list_accounts(self) -> list[PrimaryEntity]:
        accounts: list[PrimaryEntity] = []
        for raw in self._paginate(url=f"{self._base_url}/accounts/v1/accounts", items_key="accounts"):
            account_id = str(raw.get("accountId") or "").strip()
            if not account_id:
                name = str(raw.get("name") or "")
                account_id = name.split("/")[-1] if name else ""
            if not account_id:
                logger.warning("Skipping Merchant Center account without id")
                continue

            time_zone = raw.get("timeZone")
            accounts.append(
                PrimaryEntity(
                    entity_id=account_id,
                    display_name=raw.get("accountName") or raw.get("displayName") or account_id,
                    attributes={
                        "resource_name": raw.get("name") or f"accounts/{account_id}",
                        "website_url": raw.get("websiteUrl") or NOT_AVAILABLE,
                        "time_zone": time_zone.get("id") if isinstance(time_zone, dict) else (time_zone or NOT_AVAILABLE),
                        "adult_content": bool(raw.get("adultContent", False)),
                    },
                )
            )
        return accounts

    def list_data_sources(self, account: PrimaryEntity) -> list[DependentEntity]:
        url = f"{self._base_url}/datasources/v1/accounts/{account.entity_id}/dataSources"
        return [
            self._normalize_data_source(raw, account_id=account.entity_id)
            for raw in self._paginate(url=url, items_key="dataSources")
        ]

    def list_products(self, account: PrimaryEntity) -> list[DependentEntity]:
        """
        Return the first page of processed products (a sample, not the full catalog).
        """

        url = f"{self._base_url}/products/v1/accounts/{account.entity_id}/products"
        payload = self._request_json(
            method="GET",
            url=url,
            params={"pageSize": self._settings.products_page_size},
        )
        products = payload.get("products") if isinstance(payload, dict) else None
        return [
            self._normalize_product(raw, account_id=account.entity_id)
            for raw in products or []
            if isinstance(raw, dict)
        ]

    def register_gcp(self, account: PrimaryEntity) -> Any:
        """
        Register the calling Cloud project as developer for an account.

        Already-registered accounts answer with an error; callers treat the
        call as best-effort.
        """

        if not self._settings.developer_email:
            return None

        resource_name = account.attributes.get("resource_name") or f"accounts/{account.entity_id}"
        return self._request_json(
            method="POST",
            url=f"{self._base_url}/accounts/v1/{resource_name}/developerRegistration:registerGcp",
            json_body={"developerEmail": self._settings.developer_email},
        )

    @staticmethod
    def _normalize_data_source(raw: dict[str, Any], *, account_id: str) -> DependentEntity:
        name = str(raw.get("name") or "")
        data_source_id = str(raw.get("dataSourceId") or (name.split("/")[-1] if name else NOT_AVAILABLE))

        source_type = raw.get("type") or NOT_AVAILABLE
        details: dict[str, Any] = {}
        for key, label in _DATA_SOURCE_TYPE_KEYS.items():
            if isinstance(raw.get(key), dict):
                source_type = label
                details = raw[key]
                break

        language = raw.get("contentLanguage") or details.get("contentLanguage") or NOT_AVAILABLE
        countries = raw.get("targetCountries") or details.get("countries") or []

        return DependentEntity(
            entity_id=data_source_id,
            primary_id=account_id,
            attributes={
                "name": raw.get("displayName") or "Unnamed Source",
                "type": source_type,
                "language": language,
                "target_countries": ", ".join(countries) if countries else NOT_AVAILABLE,
            },
        )

    @staticmethod
    def _normalize_product(raw: dict[str, Any], *, account_id: str) -> DependentEntity:
        attributes = raw.get("productAttributes") if isinstance(raw.get("productAttributes"), dict) else {}

        def pick(key: str) -> Any:
            return raw.get(key) or attributes.get(key)

        price = pick("price")
        if isinstance(price, dict) and price.get("amountMicros") is not None:
            amount = int(price["amountMicros"]) / 1_000_000
            price_text = f"{amount:.2f} {price.get('currencyCode', '')}".strip()
        elif isinstance(price, dict) and price.get("amount") is not None:
            price_text = f"{price['amount']} {price.get('currency', '')}".strip()
        else:
            price_text = NOT_AVAILABLE

        return DependentEntity(
            entity_id=str(raw.get("offerId") or NOT_AVAILABLE),
            primary_id=account_id,
            attributes={
                "title": pick("title") or "Untitled",
                "availability": pick("availability") or NOT_AVAILABLE,
                "condition": pick("condition") or NOT_AVAILABLE,
                "brand": pick("brand") or NOT_AVAILABLE,
                "price": price_text,
                "link": pick("link") or NOT_AVAILABLE,
                "category": pick("googleProductCategory") or NOT_AVAILABLE,
            },
        )
