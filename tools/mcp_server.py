# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Defines every MCP tool the agent can call.  Each tool is a thin wrapper
#   around a core/ function: it logs the call, runs core/, and converts the
#   result (or the failure) into a plain dict.
#
# TOOLS:
#   add, calculate                 -> core/calculator.py
#   metaAdsGetAdAccounts           -> core/meta_ads.py
#   metaAdsGetAccountInfo
#   metaAdsGetCampaigns
#   metaAdsGetCampaignDetails
#   metaAdsGetAdSets
#   appleSearchAds                 -> core/apple_search_ads.py
#
#   Tool names and argument names are camelCase because they are the wire
#   contract seen by MCP clients.  The Python functions behind them are
#   registered explicitly in TOOLS at the bottom of this file.
#
# ERROR BOUNDARY:
#   Tools never raise.  Upstream failures are logged with their traceback
#   and returned as {"success": false, "error": ...} so the calling agent
#   always receives a well-formed response.
#
# RUNNING THIS SERVER:
#   a) Over HTTP (SSE + streamable HTTP):  python main.py
#   b) Over stdio:                         MCP_TRANSPORT=stdio python main.py
#                                     or:  python -m tools.mcp_server
# =============================================================================

import json
import logging
import sys
from dataclasses import asdict
from typing import Literal, Optional

from facebook_business.exceptions import FacebookRequestError
from fastmcp import FastMCP
from typing_extensions import TypedDict

from core import calculator, meta_ads
from core.apple_auth import TokenSigningError
from core.apple_search_ads import (
    CERTIFICATE_STATUS,
    SearchAdsAPIError,
    SearchAdsClient,
    SearchAdsQueryError,
)
from core.config import load_settings
from core.models import SearchAdsCredentials, SearchAdsQuery

# =============================================================================
# Logging Setup
# =============================================================================
# STDERR only: with the stdio transport, STDOUT carries the MCP JSON
# stream and a stray log line there would corrupt it.
#
#   CYAN   -> incoming requests (tool name + parameters)
#   GREEN  -> response JSON
#   YELLOW -> intermediate status messages
# =============================================================================

_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [MCP] %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: dict) -> dict:
    """Log the tool response as compact JSON in GREEN, then return it."""
    logger.info(f"{_GREEN}  ← {tool_name} response: {json.dumps(result, separators=(',', ':'), default=str)}{_RESET}")
    return result


def _redact_auth(auth: Optional[dict]) -> Optional[dict]:
    if not auth:
        return auth
    return {k: ("***" if k == "privateKey" else v) for k, v in auth.items()}


def _meta_failure(tool_name: str, exc: Exception) -> dict:
    """Log a Meta failure and turn it into the tool's error payload."""
    logger.exception("Meta Ads API error in %s", tool_name)
    if isinstance(exc, FacebookRequestError):
        message = exc.api_error_message() or str(exc)
    else:
        message = str(exc)
    return _log_response(tool_name, {"success": False, "error": message})


# =============================================================================
# Create the FastMCP server instance
# =============================================================================
mcp = FastMCP("ads-insights")


# =============================================================================
# Calculator tools
# =============================================================================
# Demonstration only.  Handy for checking a client is wired up before
# pointing it at real ad accounts.
# =============================================================================
def add(a: float, b: float) -> str:
    """Add two numbers and return the sum as text."""
    _log_request("add", a=a, b=b)
    return calculator.format_number(calculator.add(a, b))


def calculate(operation: Literal["add", "subtract", "multiply", "divide"], a: float, b: float) -> str:
    """Apply an arithmetic operation to two numbers.

    Args:
        operation: One of "add", "subtract", "multiply", "divide".
        a: Left operand.
        b: Right operand.

    Returns:
        The result as text.  Dividing by zero returns
        "Error: Cannot divide by zero" instead of failing.
    """
    _log_request("calculate", operation=operation, a=a, b=b)
    result = calculator.calculate(operation, a, b)
    if isinstance(result, str):
        _log_status(result)
        return result
    return calculator.format_number(result)


# =============================================================================
# Meta Ads tools
# =============================================================================
# Each call builds its own SDK session from the configured token.  Money
# fields come back already converted from cents.
# =============================================================================
def meta_ads_get_ad_accounts(userId: str = "me", limit: int = 10) -> dict:
    """List the Meta ad accounts a user can access.

    Args:
        userId: Meta user id; "me" means the owner of the configured token.
        limit: Maximum number of accounts to return.

    Returns:
        {"success": true, "count": N, "accounts": [...]} where each account
        has id, name, status (e.g. "Active"), amount_spent, balance,
        currency and timezone.
    """
    _log_request("metaAdsGetAdAccounts", userId=userId, limit=limit)
    try:
        api = meta_ads.build_api(settings)
        accounts = meta_ads.get_ad_accounts(api, user_id=userId, limit=limit)
    except Exception as exc:
        return _meta_failure("metaAdsGetAdAccounts", exc)

    _log_status(f"Found {len(accounts)} ad accounts")
    return _log_response("metaAdsGetAdAccounts", {
        "success": True,
        "count": len(accounts),
        "accounts": [asdict(a) for a in accounts],
    })


def meta_ads_get_account_info(accountId: str) -> dict:
    """Get details for one ad account (spend, balance, spend cap, owner, country).

    Args:
        accountId: Ad account id, e.g. "act_123456789".
    """
    _log_request("metaAdsGetAccountInfo", accountId=accountId)
    try:
        api = meta_ads.build_api(settings)
        account = meta_ads.get_account_info(api, accountId)
    except Exception as exc:
        return _meta_failure("metaAdsGetAccountInfo", exc)

    return _log_response("metaAdsGetAccountInfo", {"success": True, "account": asdict(account)})


def meta_ads_get_campaigns(accountId: str, limit: int = 10, statusFilter: Optional[str] = None) -> dict:
    """List campaigns in an ad account.

    Args:
        accountId: Ad account id, e.g. "act_123456789".
        limit: Maximum number of campaigns to return.
        statusFilter: Optional delivery status to filter on (e.g. "active").

    Returns:
        {"success": true, "count": N, "campaigns": [...]} with objective,
        status, budgets (currency units) and schedule for each campaign.
    """
    _log_request("metaAdsGetCampaigns", accountId=accountId, limit=limit, statusFilter=statusFilter)
    try:
        api = meta_ads.build_api(settings)
        campaigns = meta_ads.get_campaigns(api, accountId, limit=limit, status_filter=statusFilter)
    except Exception as exc:
        return _meta_failure("metaAdsGetCampaigns", exc)

    _log_status(f"Found {len(campaigns)} campaigns")
    return _log_response("metaAdsGetCampaigns", {
        "success": True,
        "count": len(campaigns),
        "campaigns": [asdict(c) for c in campaigns],
    })


def meta_ads_get_campaign_details(campaignId: str) -> dict:
    """Get one campaign in detail, including up to 5 of its ad sets.

    Args:
        campaignId: Campaign id.
    """
    _log_request("metaAdsGetCampaignDetails", campaignId=campaignId)
    try:
        api = meta_ads.build_api(settings)
        campaign = meta_ads.get_campaign_details(api, campaignId)
    except Exception as exc:
        return _meta_failure("metaAdsGetCampaignDetails", exc)

    _log_status(f"Campaign has {campaign.related_ad_sets_count} related ad sets")
    return _log_response("metaAdsGetCampaignDetails", {"success": True, "campaign": asdict(campaign)})


def meta_ads_get_ad_sets(accountId: str, limit: int = 10, campaignId: Optional[str] = None) -> dict:
    """List ad sets in an ad account, optionally only those of one campaign.

    Args:
        accountId: Ad account id, e.g. "act_123456789".
        limit: Maximum number of ad sets to return.
        campaignId: Optional campaign id to restrict the listing to.

    Returns:
        {"success": true, "count": N, "ad_sets": [...]}; each ad set carries
        a targeting_summary (age range, genders, locations, interests,
        behaviors) instead of the raw targeting spec.
    """
    _log_request("metaAdsGetAdSets", accountId=accountId, limit=limit, campaignId=campaignId)
    try:
        api = meta_ads.build_api(settings)
        ad_sets = meta_ads.get_ad_sets(api, accountId, limit=limit, campaign_id=campaignId)
    except Exception as exc:
        return _meta_failure("metaAdsGetAdSets", exc)

    _log_status(f"Found {len(ad_sets)} ad sets")
    return _log_response("metaAdsGetAdSets", {
        "success": True,
        "count": len(ad_sets),
        "ad_sets": [asdict(a) for a in ad_sets],
    })


# =============================================================================
# Apple Search Ads tool
# =============================================================================
# One tool, many endpoints.  Credentials travel with the call; the private
# key is used to sign a one-hour client secret and is never logged.
# =============================================================================
class SearchAdsAuth(TypedDict):
    clientId: str
    teamId: str
    keyId: str
    privateKey: str


def apple_search_ads(
    endpoint: str,
    orgId: str,
    auth: SearchAdsAuth,
    limit: int = 20,
    startDate: Optional[str] = None,
    endDate: Optional[str] = None,
    filters: Optional[dict] = None,
) -> dict:
    """Query Apple Search Ads and return summarized results.

    Args:
        endpoint: One of "campaigns", "adgroups", "keywords", "searchterms",
            "reports" or "certificateStatus".
        orgId: Search Ads organization id.
        auth: {"clientId", "teamId", "keyId", "privateKey"}.  The private key
            may be a full PEM or just its base64 body.
        limit: Maximum number of records to return.
        startDate / endDate: ISO dates.  Required for "searchterms" and
            "reports".
        filters: Extra field filters, e.g. {"campaignId": "123"}.

    Returns:
        {"summary", "data", "analysis"} for data endpoints, a certificate
        status object for "certificateStatus", or
        {"success": false, "error", "errorType", "details"} on failure.
    """
    _log_request(
        "appleSearchAds",
        endpoint=endpoint, orgId=orgId, limit=limit,
        startDate=startDate, endDate=endDate, filters=filters,
        auth=_redact_auth(auth),
    )

    credentials = SearchAdsCredentials.from_auth(auth or {})
    query = SearchAdsQuery(
        endpoint=endpoint,
        org_id=str(orgId),
        limit=limit,
        start_date=startDate or None,
        end_date=endDate or None,
        filters=dict(filters or {}),
    )

    try:
        with SearchAdsClient(
            credentials,
            query.org_id,
            base_url=settings.search_ads_api_base,
            token_url=settings.apple_token_url,
            timeout=settings.http_timeout,
        ) as client:
            if endpoint == CERTIFICATE_STATUS:
                result = client.check_certificate()
                _log_status(f"Certificate status: {result['certificateStatus']}")
                return _log_response("appleSearchAds", result)

            report = client.fetch_report(query)
    except TokenSigningError as exc:
        logger.error("Search Ads token error: %s", exc)
        return _log_response("appleSearchAds", {
            "success": False,
            "errorType": exc.kind,
            "error": str(exc),
        })
    except SearchAdsQueryError as exc:
        logger.error("Invalid Search Ads query: %s", exc)
        return _log_response("appleSearchAds", {
            "success": False,
            "errorType": "invalid_query",
            "error": str(exc),
        })
    except SearchAdsAPIError as exc:
        logger.exception("Search Ads API error")
        return _log_response("appleSearchAds", {
            "success": False,
            "errorType": "api_error",
            "error": str(exc),
            "details": exc.details(),
        })
    except Exception as exc:
        logger.exception("Unexpected error in appleSearchAds")
        return _log_response("appleSearchAds", {
            "success": False,
            "errorType": "unexpected_error",
            "error": str(exc),
        })

    _log_status(f"{report.summary.returned_records} of {report.summary.total_records} records")
    return _log_response("appleSearchAds", report.to_dict())


# =============================================================================
# Tool registry
# =============================================================================
TOOLS = {
    "add": add,
    "calculate": calculate,
    "metaAdsGetAdAccounts": meta_ads_get_ad_accounts,
    "metaAdsGetAccountInfo": meta_ads_get_account_info,
    "metaAdsGetCampaigns": meta_ads_get_campaigns,
    "metaAdsGetCampaignDetails": meta_ads_get_campaign_details,
    "metaAdsGetAdSets": meta_ads_get_ad_sets,
    "appleSearchAds": apple_search_ads,
}

for _name, _fn in TOOLS.items():
    mcp.tool(_fn, name=_name)


if __name__ == "__main__":
    mcp.run()
