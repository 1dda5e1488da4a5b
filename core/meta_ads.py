# =============================================================================
# core/meta_ads.py  -  Meta Marketing API: fetch & normalize
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Five read-only operations over the facebook_business SDK object model
#   (User -> AdAccount -> Campaign -> AdSet), each followed by a pure
#   normalizer that turns the SDK record into one of the summary
#   dataclasses in core/models.py.
#
# SESSIONS:
#   build_api() creates a fresh FacebookAdsApi for one call and every SDK
#   object is constructed with api=... explicitly.  We never call
#   FacebookAdsApi.init(), which would install a process-wide default.
#
# PAGINATION:
#   SDK cursors page lazily and forever.  We take at most `limit` records
#   with islice(), so a call never walks more pages than it needs.
# =============================================================================

import logging
from itertools import islice
from typing import Any, Iterable, Optional

from facebook_business.adobjects.adaccount import AdAccount
from facebook_business.adobjects.campaign import Campaign
from facebook_business.adobjects.user import User
from facebook_business.api import FacebookAdsApi
from facebook_business.session import FacebookSession

from core.config import Settings
from core.formatting import (
    format_currency,
    format_optional_currency,
    get_account_status_text,
    summarize_targeting,
)
from core.models import (
    AccountDetails,
    AdAccountSummary,
    AdSetRef,
    AdSetSummary,
    CampaignDetails,
    CampaignSummary,
)

logger = logging.getLogger(__name__)

RELATED_AD_SETS_LIMIT = 5

ACCOUNT_FIELDS = [
    "id",
    "name",
    "account_status",
    "amount_spent",
    "balance",
    "currency",
    "timezone_name",
]
ACCOUNT_DETAIL_FIELDS = ACCOUNT_FIELDS + [
    "funding_source",
    "business_country_code",
    "spend_cap",
    "owner",
]
CAMPAIGN_FIELDS = [
    "id",
    "name",
    "objective",
    "status",
    "daily_budget",
    "lifetime_budget",
    "created_time",
    "start_time",
    "stop_time",
]
CAMPAIGN_DETAIL_FIELDS = CAMPAIGN_FIELDS + [
    "buying_type",
    "special_ad_categories",
    "bid_strategy",
    "spend_cap",
    "budget_remaining",
]
AD_SET_FIELDS = [
    "id",
    "name",
    "status",
    "campaign_id",
    "daily_budget",
    "lifetime_budget",
    "targeting",
    "optimization_goal",
    "bid_amount",
    "billing_event",
    "start_time",
    "end_time",
]
AD_SET_REF_FIELDS = ["id", "name", "status"]


class MetaConfigError(RuntimeError):
    """Raised when the Meta access token has not been configured."""


def build_api(settings: Settings) -> FacebookAdsApi:
    """Create a request-scoped SDK client from the configured credentials."""
    if not settings.meta_access_token:
        raise MetaConfigError("META_ACCESS_TOKEN is not configured")
    session = FacebookSession(
        app_id=settings.meta_app_id,
        app_secret=settings.meta_app_secret,
        access_token=settings.meta_access_token,
    )
    return FacebookAdsApi(session, api_version=settings.meta_api_version)


def _record(obj: Any) -> dict:
    """SDK objects -> plain dicts (tests hand us dicts directly)."""
    if hasattr(obj, "export_all_data"):
        return obj.export_all_data()
    return dict(obj)


def _take(cursor: Iterable[Any], limit: int) -> list[dict]:
    return [_record(obj) for obj in islice(cursor, max(limit, 0))]


def _equal_filter(field_name: str, value: str) -> list[dict]:
    return [{"field": field_name, "operator": "EQUAL", "value": value}]


# =============================================================================
# Normalizers (pure)
# =============================================================================
def normalize_ad_account(raw: dict) -> AdAccountSummary:
    currency = raw.get("currency")
    return AdAccountSummary(
        id=raw.get("id"),
        name=raw.get("name"),
        status=get_account_status_text(raw.get("account_status")),
        amount_spent=format_currency(raw.get("amount_spent"), currency),
        balance=format_currency(raw.get("balance"), currency),
        currency=currency,
        timezone=raw.get("timezone_name"),
    )


def normalize_account_details(raw: dict) -> AccountDetails:
    base = normalize_ad_account(raw)
    spend_cap = raw.get("spend_cap")
    return AccountDetails(
        **vars(base),
        country=raw.get("business_country_code"),
        spend_cap=format_currency(spend_cap, base.currency) if spend_cap else "No limit",
        owner=raw.get("owner"),
    )


def normalize_campaign(raw: dict) -> CampaignSummary:
    return CampaignSummary(
        id=raw.get("id"),
        name=raw.get("name"),
        objective=raw.get("objective"),
        status=raw.get("status"),
        daily_budget=format_optional_currency(raw.get("daily_budget")),
        lifetime_budget=format_optional_currency(raw.get("lifetime_budget")),
        created_time=raw.get("created_time"),
        start_time=raw.get("start_time"),
        stop_time=raw.get("stop_time"),
    )


def normalize_campaign_details(raw: dict, ad_sets: list[dict]) -> CampaignDetails:
    related = [
        AdSetRef(id=a.get("id"), name=a.get("name"), status=a.get("status"))
        for a in ad_sets[:RELATED_AD_SETS_LIMIT]
    ]
    spend_cap = raw.get("spend_cap")
    return CampaignDetails(
        **vars(normalize_campaign(raw)),
        buying_type=raw.get("buying_type"),
        special_ad_categories=raw.get("special_ad_categories") or [],
        bid_strategy=raw.get("bid_strategy"),
        spend_cap=format_currency(spend_cap) if spend_cap else "No limit",
        budget_remaining=format_optional_currency(raw.get("budget_remaining")),
        related_ad_sets=related,
        related_ad_sets_count=len(related),
    )


def normalize_ad_set(raw: dict) -> AdSetSummary:
    return AdSetSummary(
        id=raw.get("id"),
        name=raw.get("name"),
        status=raw.get("status"),
        campaign_id=raw.get("campaign_id"),
        daily_budget=format_optional_currency(raw.get("daily_budget")),
        lifetime_budget=format_optional_currency(raw.get("lifetime_budget")),
        optimization_goal=raw.get("optimization_goal"),
        bid_amount=format_optional_currency(raw.get("bid_amount")),
        billing_event=raw.get("billing_event"),
        targeting_summary=summarize_targeting(raw.get("targeting")),
        start_time=raw.get("start_time"),
        end_time=raw.get("end_time"),
    )


# =============================================================================
# Fetch operations
# =============================================================================
def get_ad_accounts(api: FacebookAdsApi, user_id: str = "me", limit: int = 10) -> list[AdAccountSummary]:
    """List the ad accounts visible to ``user_id`` (``"me"`` = token owner)."""
    logger.info("Fetching ad accounts for user %s (limit=%d)", user_id, limit)
    cursor = User(fbid=user_id, api=api).get_ad_accounts(
        fields=ACCOUNT_FIELDS,
        params={"limit": limit},
    )
    return [normalize_ad_account(raw) for raw in _take(cursor, limit)]


def get_account_info(api: FacebookAdsApi, account_id: str) -> AccountDetails:
    """Read one ad account, including spend cap, country and owner."""
    logger.info("Fetching account %s", account_id)
    account = AdAccount(account_id, api=api).api_get(fields=ACCOUNT_DETAIL_FIELDS)
    return normalize_account_details(_record(account))


def get_campaigns(
    api: FacebookAdsApi,
    account_id: str,
    limit: int = 10,
    status_filter: Optional[str] = None,
) -> list[CampaignSummary]:
    """List campaigns in an account, optionally filtered by delivery status."""
    params: dict[str, Any] = {"limit": limit}
    if status_filter:
        params["filtering"] = _equal_filter("campaign.delivery_status", status_filter)

    logger.info("Fetching campaigns for %s (limit=%d, status=%s)", account_id, limit, status_filter)
    cursor = AdAccount(account_id, api=api).get_campaigns(fields=CAMPAIGN_FIELDS, params=params)
    return [normalize_campaign(raw) for raw in _take(cursor, limit)]


def get_campaign_details(api: FacebookAdsApi, campaign_id: str) -> CampaignDetails:
    """Read one campaign plus up to five of its ad sets."""
    logger.info("Fetching campaign %s", campaign_id)
    campaign = Campaign(campaign_id, api=api)
    info = _record(campaign.api_get(fields=CAMPAIGN_DETAIL_FIELDS))
    ad_sets = _take(
        campaign.get_ad_sets(fields=AD_SET_REF_FIELDS, params={"limit": RELATED_AD_SETS_LIMIT}),
        RELATED_AD_SETS_LIMIT,
    )
    return normalize_campaign_details(info, ad_sets)


def get_ad_sets(
    api: FacebookAdsApi,
    account_id: str,
    limit: int = 10,
    campaign_id: Optional[str] = None,
) -> list[AdSetSummary]:
    """List ad sets in an account, optionally only those of one campaign."""
    params: dict[str, Any] = {"limit": limit}
    if campaign_id:
        params["filtering"] = _equal_filter("campaign.id", campaign_id)

    logger.info("Fetching ad sets for %s (limit=%d, campaign=%s)", account_id, limit, campaign_id)
    cursor = AdAccount(account_id, api=api).get_ad_sets(fields=AD_SET_FIELDS, params=params)
    return [normalize_ad_set(raw) for raw in _take(cursor, limit)]
