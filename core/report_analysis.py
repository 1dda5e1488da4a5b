# =============================================================================
# core/report_analysis.py  -  Search Ads response normalization
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns a raw Search Ads JSON payload into a ProcessedReport:
#     1. extract_records()  -> the flat list of records, whatever the shape
#     2. analyze()          -> an endpoint-specific aggregate block
#     3. process_response() -> summary + bounded data + analysis
#
#   Everything here is a pure function of the payload, so it is tested
#   without any HTTP at all.
#
# EMPTY DATA:
#   Every aggregate goes through safe_sum / safe_average, which return 0
#   for an empty input.  An endpoint with zero records still gets its full
#   analysis shape, filled with zeros and empty lists.
# =============================================================================

from collections import Counter
from typing import Any, Callable, Optional

from core.formatting import safe_average, safe_sum, to_number
from core.models import (
    AdGroupAnalysis,
    BidStats,
    CampaignAnalysis,
    KeywordAnalysis,
    PerformanceMetrics,
    ProcessedReport,
    ReportAnalysis,
    ReportSummary,
    SearchAdsQuery,
    SearchTermAnalysis,
)

TOP_SEARCH_TERMS = 10

ACTIVE_STATUSES = {"ACTIVE", "ENABLED"}
PAUSED_STATUSES = {"PAUSED"}

# Metric name aliases across Search Ads API versions.
_METRIC_ALIASES: dict[str, tuple[str, ...]] = {
    "impressions": ("impressions",),
    "taps": ("taps",),
    "installs": ("installs", "totalInstalls"),
    "conversion_rate": ("conversionRate", "totalInstallRate", "tapInstallRate"),
    "spend": ("localSpend",),
}


# -----------------------------------------------------------------------------
# Payload shape
# -----------------------------------------------------------------------------
def extract_records(payload: Any) -> list[dict]:
    """Pull the record list out of a Search Ads response.

    Resource endpoints return ``{"data": [...]}``; reporting endpoints return
    ``{"data": {"reportingDataResponse": {"row": [...]}}}``.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if isinstance(data, list):
        return [r for r in data if isinstance(r, dict)]
    if isinstance(data, dict):
        rows = (data.get("reportingDataResponse") or {}).get("row")
        if isinstance(rows, list):
            return [r for r in rows if isinstance(r, dict)]
    return []


def total_results(payload: Any, records: list[dict]) -> int:
    pagination = payload.get("pagination") if isinstance(payload, dict) else None
    if isinstance(pagination, dict):
        total = to_number(pagination.get("totalResults"))
        if total is not None:
            return int(total)
    return len(records)


def _row_metrics(row: dict) -> dict:
    total = row.get("total")
    return total if isinstance(total, dict) else row


def metric(row: dict, name: str) -> Optional[float]:
    """Read a metric from a report row, honouring version aliases."""
    metrics = _row_metrics(row)
    for key in _METRIC_ALIASES.get(name, (name,)):
        if key in metrics:
            return to_number(metrics[key])
    return None


def _search_term(row: dict) -> Optional[str]:
    metadata = row.get("metadata")
    if isinstance(metadata, dict) and metadata.get("searchTermText"):
        return metadata["searchTermText"]
    return row.get("searchTermText") or None


def _status(record: dict) -> str:
    return str(record.get("status") or "").upper()


def _bid_stats(values: list[Any]) -> BidStats:
    bids = [n for n in (to_number(v) for v in values) if n is not None]
    if not bids:
        return BidStats()
    return BidStats(min=min(bids), max=max(bids), average=safe_average(bids))


# -----------------------------------------------------------------------------
# Per-endpoint analysis
# -----------------------------------------------------------------------------
def analyze_campaigns(records: list[dict]) -> CampaignAnalysis:
    budgets = [r.get("dailyBudget", r.get("dailyBudgetAmount")) for r in records]
    return CampaignAnalysis(
        active_campaigns=sum(1 for r in records if _status(r) in ACTIVE_STATUSES),
        paused_campaigns=sum(1 for r in records if _status(r) in PAUSED_STATUSES),
        total_budget=safe_sum(budgets),
        average_budget=safe_average(budgets),
    )


def analyze_ad_groups(records: list[dict]) -> AdGroupAnalysis:
    return AdGroupAnalysis(
        active_ad_groups=sum(1 for r in records if _status(r) in ACTIVE_STATUSES),
        bids=_bid_stats([r.get("defaultBidAmount", r.get("defaultBid")) for r in records]),
    )


def analyze_keywords(records: list[dict]) -> KeywordAnalysis:
    match_types = Counter(r["matchType"] for r in records if r.get("matchType"))
    return KeywordAnalysis(
        active_keywords=sum(1 for r in records if _status(r) in ACTIVE_STATUSES),
        match_types=dict(match_types),
        bids=_bid_stats([r.get("bidAmount") for r in records]),
    )


def analyze_search_terms(records: list[dict]) -> SearchTermAnalysis:
    terms = [t for t in (_search_term(r) for r in records) if t]
    return SearchTermAnalysis(
        top_search_terms=terms[:TOP_SEARCH_TERMS],
        performance_metrics=PerformanceMetrics(
            average_impressions=safe_average(metric(r, "impressions") for r in records),
            average_taps=safe_average(metric(r, "taps") for r in records),
            average_installs=safe_average(metric(r, "installs") for r in records),
            average_conversion_rate=safe_average(metric(r, "conversion_rate") for r in records),
        ),
    )


def analyze_reports(records: list[dict]) -> ReportAnalysis:
    return ReportAnalysis(
        total_impressions=safe_sum(metric(r, "impressions") for r in records),
        total_taps=safe_sum(metric(r, "taps") for r in records),
        total_installs=safe_sum(metric(r, "installs") for r in records),
        total_spend=safe_sum(metric(r, "spend") for r in records),
        average_conversion_rate=safe_average(metric(r, "conversion_rate") for r in records),
    )


ANALYZERS: dict[str, Callable[[list[dict]], Any]] = {
    "campaigns": analyze_campaigns,
    "adgroups": analyze_ad_groups,
    "keywords": analyze_keywords,
    "searchterms": analyze_search_terms,
    "reports": analyze_reports,
}


def analyze(endpoint: str, records: list[dict]) -> Any:
    """Run the endpoint's analyzer; None for endpoints without one."""
    analyzer = ANALYZERS.get(endpoint)
    return analyzer(records) if analyzer else None


def process_response(query: SearchAdsQuery, payload: Any) -> ProcessedReport:
    records = extract_records(payload)
    returned = records[: max(query.limit, 0)]

    date_range = None
    if query.start_date or query.end_date:
        date_range = {k: v for k, v in (("startDate", query.start_date), ("endDate", query.end_date)) if v}

    return ProcessedReport(
        summary=ReportSummary(
            endpoint=query.endpoint,
            org_id=query.org_id,
            total_records=total_results(payload, records),
            returned_records=len(returned),
            date_range=date_range,
        ),
        data=returned,
        analysis=analyze(query.endpoint, returned),
    )
