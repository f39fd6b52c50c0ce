"""
app/services/sync_domains.py

Sync domain definitions: which listings to call and which tables to fill.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from functools import lru_cache
from typing import Any

from app.config import (
    BusinessProfileSettings,
    ExternalHTTPSettings,
    MerchantCenterSettings,
    get_business_profile_settings,
    get_external_http_settings,
    get_merchant_center_settings,
)
from app.connectors import BusinessProfileConnector, MerchantCenterConnector
from app.domain.sync import (
    AnnotatedDependent,
    DependentListing,
    DomainSyncConfig,
    PrimaryEntity,
    PrimaryListing,
    TableSpec,
)

BUSINESS_PROFILE = "business_profile"
MERCHANT_CENTER = "merchant_center"

GBP_ACCOUNTS_HEADER = ("Account ID", "Display Name", "Type", "Verification Status", "Role", "Sync Date")
GBP_LOCATIONS_HEADER = (
    "Location Name",
    "Title",
    "Category",
    "Store Code",
    "Status",
    "Account",
    "Account Type",
    "Maps URL",
    "Sync Date",
)
GMC_ACCOUNTS_HEADER = ("Account ID", "Account Name", "Website", "Time Zone", "Adult Content", "Sync Date")
GMC_DATA_SOURCES_HEADER = (
    "Account ID",
    "Account Name",
    "Data Source ID",
    "Name",
    "Type",
    "Language",
    "Target Countries",
    "Sync Date",
)
GMC_PRODUCTS_HEADER = (
    "Account ID",
    "Account Name",
    "Offer ID",
    "Title",
    "Availability",
    "Condition",
    "Brand",
    "Price",
    "Link",
    "Category",
    "Sync Date",
)

GBP_QUOTA_HINT = (
    "Business Profile APIs often default to zero quota and require explicit project approval from Google."
)


def _gbp_account_row(account: PrimaryEntity, synced_at: datetime) -> list[Any]:
    attrs = account.attributes
    return [
        account.entity_id,
        account.display_name,
        attrs.get("type"),
        attrs.get("verification_status"),
        attrs.get("role"),
        synced_at,
    ]


def _gbp_location_row(item: AnnotatedDependent, synced_at: datetime) -> list[Any]:
    attrs = item.entity.attributes
    return [
        item.entity.entity_id,
        attrs.get("title"),
        attrs.get("category"),
        attrs.get("store_code"),
        attrs.get("status"),
        item.primary.display_name,
        item.primary.extra.get("type"),
        attrs.get("maps_uri"),
        synced_at,
    ]


def _gmc_account_row(account: PrimaryEntity, synced_at: datetime) -> list[Any]:
    attrs = account.attributes
    return [
        account.entity_id,
        account.display_name,
        attrs.get("website_url"),
        attrs.get("time_zone"),
        attrs.get("adult_content"),
        synced_at,
    ]


def _gmc_data_source_row(item: AnnotatedDependent, synced_at: datetime) -> list[Any]:
    attrs = item.entity.attributes
    return [
        item.primary.entity_id,
        item.primary.display_name,
        item.entity.entity_id,
        attrs.get("name"),
        attrs.get("type"),
        attrs.get("language"),
        attrs.get("target_countries"),
        synced_at,
    ]


def _gmc_product_row(item: AnnotatedDependent, synced_at: datetime) -> list[Any]:
    attrs = item.entity.attributes
    return [
        item.primary.entity_id,
        item.primary.display_name,
        item.entity.entity_id,
        attrs.get("title"),
        attrs.get("availability"),
        attrs.get("condition"),
        attrs.get("brand"),
        attrs.get("price"),
        attrs.get("link"),
        attrs.get("category"),
        synced_at,
    ]


def build_business_profile_config(connector: BusinessProfileConnector) -> DomainSyncConfig:
    return DomainSyncConfig(
        name=BUSINESS_PROFILE,
        label="Business Profile",
        module="GBP",
        primary=PrimaryListing(
            category="accounts",
            list_entities=connector.list_accounts,
            table=TableSpec("GBP_ACCOUNTS", GBP_ACCOUNTS_HEADER, _gbp_account_row),
        ),
        dependents=(
            DependentListing(
                category="locations",
                list_entities=connector.list_locations,
                table=TableSpec("GBP_LOCATIONS", GBP_LOCATIONS_HEADER, _gbp_location_row),
            ),
        ),
        quota_hint=GBP_QUOTA_HINT,
        primary_display_fields=("type",),
    )


def build_merchant_center_config(connector: MerchantCenterConnector) -> DomainSyncConfig:
    return DomainSyncConfig(
        name=MERCHANT_CENTER,
        label="Merchant Center",
        module="GMC",
        primary=PrimaryListing(
            category="accounts",
            list_entities=connector.list_accounts,
            table=TableSpec("GMC_ACCOUNTS", GMC_ACCOUNTS_HEADER, _gmc_account_row),
        ),
        dependents=(
            DependentListing(
                category="data_sources",
                list_entities=connector.list_data_sources,
                table=TableSpec("GMC_DATA_SOURCES", GMC_DATA_SOURCES_HEADER, _gmc_data_source_row),
            ),
            DependentListing(
                category="products",
                list_entities=connector.list_products,
                table=TableSpec("GMC_PRODUCTS", GMC_PRODUCTS_HEADER, _gmc_product_row),
            ),
        ),
        primary_hook=connector.register_gcp,
    )


def _normalize(name: str) -> str:
    return name.strip().lower()


class SyncDomainRegistry:
    """
    Registry of enabled sync domains keyed by name.
    """

    def __init__(self, configs: Mapping[str, DomainSyncConfig] | None = None) -> None:
        self._configs: dict[str, DomainSyncConfig] = {
            _normalize(name): config for name, config in (configs or {}).items()
        }

    def register(self, config: DomainSyncConfig) -> None:
        self._configs[_normalize(config.name)] = config

    def names(self) -> list[str]:
        return sorted(self._configs)

    def get(self, name: str) -> DomainSyncConfig:
        config = self._configs.get(_normalize(name))
        if config is None:
            allowed = ", ".join(self.names()) or "none"
            raise ValueError(f"Unsupported sync domain '{name}'. Allowed domains: {allowed}.")
        return config

    def all(self) -> list[DomainSyncConfig]:
        return [self._configs[name] for name in self.names()]


def build_domain_registry(
    *,
    http_settings: ExternalHTTPSettings | None = None,
    business_profile_settings: BusinessProfileSettings | None = None,
    merchant_center_settings: MerchantCenterSettings | None = None,
) -> SyncDomainRegistry:
    http = http_settings or get_external_http_settings()
    gbp = business_profile_settings or get_business_profile_settings()
    gmc = merchant_center_settings or get_merchant_center_settings()

    registry = SyncDomainRegistry()
    if gbp.enabled:
        registry.register(
            build_business_profile_config(BusinessProfileConnector(settings=gbp, http_settings=http))
        )
    if gmc.enabled:
        registry.register(
            build_merchant_center_config(MerchantCenterConnector(settings=gmc, http_settings=http))
        )
    return registry


@lru_cache(maxsize=1)
def get_domain_registry() -> SyncDomainRegistry:
    return build_domain_registry()
