"""
app/connectors/business_profile_connector.py

Business Profile connector: accounts and their locations.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from app.config import BusinessProfileSettings, ExternalHTTPSettings
from app.connectors.base import BaseConnector
from app.domain.sync import DependentEntity, PrimaryEntity

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"


class BusinessProfileConnector(BaseConnector):
    """
    Lists Business Profile accounts and the locations of each account.
    """

    def __init__(
        self,
        *,
        settings: BusinessProfileSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(
            source="business_profile",
            http_settings=http_settings,
            access_token=settings.access_token,
            session=session,
        )
        self._settings = settings

    def list_accounts(self) -> list[PrimaryEntity]:
        accounts: list[PrimaryEntity] = []
        for raw in self._paginate(url=self._settings.accounts_url, items_key="accounts"):
            name = (raw.get("name") or "").strip()
            if not name:
                logger.warning("Skipping Business Profile account without resource name")
                continue
            accounts.append(
                PrimaryEntity(
                    entity_id=name,
                    display_name=raw.get("accountName") or name,
                    attributes={
                        "type": raw.get("type") or NOT_AVAILABLE,
                        "verification_status": raw.get("verificationState")
                        or raw.get("verificationStatus")
                        or NOT_AVAILABLE,
                        "role": raw.get("role") or NOT_AVAILABLE,
                    },
                )
            )
        return accounts

    def list_locations(self, account: PrimaryEntity) -> list[DependentEntity]:
        base_url = self._settings.locations_base_url.rstrip("/")
        url = f"{base_url}/{account.entity_id}/locations"
        return [
            self._normalize_location(raw, account_id=account.entity_id)
            for raw in self._paginate(
                url=url,
                items_key="locations",
                params={"readMask": self._settings.locations_read_mask},
            )
        ]

    @staticmethod
    def _normalize_location(raw: dict[str, Any], *, account_id: str) -> DependentEntity:
        categories = raw.get("categories") if isinstance(raw.get("categories"), dict) else {}
        primary_category = categories.get("primaryCategory") if isinstance(categories, dict) else None
        category = (
            primary_category.get("displayName")
            if isinstance(primary_category, dict) and primary_category.get("displayName")
            else NOT_AVAILABLE
        )
        metadata = raw.get("metadata") if isinstance(raw.get("metadata"), dict) else {}
        maps_uri = metadata.get("mapsUri")

        return DependentEntity(
            entity_id=raw.get("name") or NOT_AVAILABLE,
            primary_id=account_id,
            attributes={
                "title": raw.get("title") or NOT_AVAILABLE,
                "category": category,
                "store_code": raw.get("storeCode") or NOT_AVAILABLE,
                "status": "Active" if maps_uri else "Missing Info",
                "maps_uri": maps_uri or NOT_AVAILABLE,
            },
        )
