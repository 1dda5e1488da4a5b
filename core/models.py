# =============================================================================
# core/models.py  -  Data Models (the "nouns" of the system)
# =============================================================================
#
# Every piece of data that crosses a tool boundary has a dataclass here.
# Nothing in this module talks to the network: these are request-scoped
# DTOs that live for exactly one tool invocation.
#
# Two families live side by side:
#   - Meta Ads summaries (snake_case keys, matching the Graph API fields)
#   - Apple Search Ads query/report types (camelCase keys on the wire,
#     produced with to_camel_dict())
#
# Analysis blocks are modelled as one dataclass per endpoint rather than
# an open dict, so each normalizer states exactly which fields it emits.
# =============================================================================

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_camel_dict(obj: Any) -> dict:
    """Convert a (nested) dataclass into a dict with camelCase keys."""
    return asdict(obj, dict_factory=lambda items: {_camel(k): v for k, v in items})


def compact_dict(obj: Any) -> dict:
    """asdict() that drops keys whose value is None."""
    return asdict(obj, dict_factory=lambda items: {k: v for k, v in items if v is not None})


# -----------------------------------------------------------------------------
# Meta Ads
# -----------------------------------------------------------------------------
@dataclass
class AdAccountSummary:
    """One ad account as listed under a user."""

    id: str
    name: Optional[str]
    status: str                        # "Active", "Disabled", "Unknown (42)"...
    amount_spent: str                  # "123.45 USD"
    balance: str
    currency: Optional[str]
    timezone: Optional[str]


@dataclass
class AccountDetails(AdAccountSummary):
    """The single-account view, with funding and ownership fields."""

    country: Optional[str] = None
    spend_cap: str = "No limit"
    owner: Optional[str] = None


@dataclass
class CampaignSummary:
    id: str
    name: Optional[str]
    objective: Optional[str]
    status: Optional[str]
    daily_budget: Optional[str]        # None when the campaign has no daily budget
    lifetime_budget: Optional[str]
    created_time: Optional[str] = None
    start_time: Optional[str] = None
    stop_time: Optional[str] = None


@dataclass
class AdSetRef:
    id: str
    name: Optional[str]
    status: Optional[str]


@dataclass
class CampaignDetails(CampaignSummary):
    buying_type: Optional[str] = None
    special_ad_categories: list[str] = field(default_factory=list)
    bid_strategy: Optional[str] = None
    spend_cap: str = "No limit"
    budget_remaining: Optional[str] = None
    related_ad_sets: list[AdSetRef] = field(default_factory=list)
    related_ad_sets_count: int = 0


@dataclass
class TargetingLocations:
    countries: Optional[list[str]] = None
    cities: Optional[list[str]] = None
    regions: Optional[list[str]] = None


@dataclass
class TargetingSummary:
    """Flat view of a Meta targeting spec.  Unset fields are omitted on output."""

    age_range: Optional[str] = None
    genders: Optional[list[Any]] = None
    locations: Optional[TargetingLocations] = None
    interests: Optional[list[Any]] = None
    behaviors: Optional[list[Any]] = None


@dataclass
class AdSetSummary:
    id: str
    name: Optional[str]
    status: Optional[str]
    campaign_id: Optional[str]
    daily_budget: Optional[str]
    lifetime_budget: Optional[str]
    optimization_goal: Optional[str]
    bid_amount: Optional[str]
    billing_event: Optional[str]
    targeting_summary: dict = field(default_factory=dict)
    start_time: Optional[str] = None
    end_time: Optional[str] = None


# -----------------------------------------------------------------------------
# Apple Search Ads
# -----------------------------------------------------------------------------
@dataclass(repr=False)
class SearchAdsCredentials:
    """Client-credential material for one Search Ads call.

    repr is disabled so the private key never ends up in a log line or a
    traceback by accident.
    """

    client_id: str
    team_id: str
    key_id: str
    private_key: str

    @classmethod
    def from_auth(cls, auth: dict) -> "SearchAdsCredentials":
        return cls(
            client_id=auth.get("clientId", ""),
            team_id=auth.get("teamId", ""),
            key_id=auth.get("keyId", ""),
            private_key=auth.get("privateKey", ""),
        )

    def __repr__(self) -> str:
        return f"SearchAdsCredentials(client_id={self.client_id!r}, key_id={self.key_id!r})"


@dataclass
class SearchAdsQuery:
    endpoint: str
    org_id: str
    limit: int = 20
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    filters: dict[str, Any] = field(default_factory=dict)


@dataclass
class BidStats:
    min: float = 0
    max: float = 0
    average: float = 0


@dataclass
class PerformanceMetrics:
    average_impressions: float = 0
    average_taps: float = 0
    average_installs: float = 0
    average_conversion_rate: float = 0


@dataclass
class CampaignAnalysis:
    active_campaigns: int = 0
    paused_campaigns: int = 0
    total_budget: float = 0
    average_budget: float = 0


@dataclass
class AdGroupAnalysis:
    active_ad_groups: int = 0
    bids: BidStats = field(default_factory=BidStats)


@dataclass
class KeywordAnalysis:
    active_keywords: int = 0
    match_types: dict[str, int] = field(default_factory=dict)
    bids: BidStats = field(default_factory=BidStats)


@dataclass
class SearchTermAnalysis:
    top_search_terms: list[str] = field(default_factory=list)
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)


@dataclass
class ReportAnalysis:
    total_impressions: float = 0
    total_taps: float = 0
    total_installs: float = 0
    total_spend: float = 0
    average_conversion_rate: float = 0


@dataclass
class ReportSummary:
    endpoint: str
    org_id: str
    total_records: int
    returned_records: int
    date_range: Optional[dict[str, str]] = None


@dataclass
class ProcessedReport:
    """What the appleSearchAds tool hands back for a data endpoint."""

    summary: ReportSummary
    data: list[dict] = field(default_factory=list)
    analysis: Any = None               # one of the *Analysis dataclasses, or None

    def to_dict(self) -> dict:
        summary = to_camel_dict(self.summary)
        if summary.get("dateRange") is None:
            summary.pop("dateRange", None)
        return {
            "summary": summary,
            "data": self.data,
            "analysis": to_camel_dict(self.analysis) if self.analysis is not None else {},
        }
