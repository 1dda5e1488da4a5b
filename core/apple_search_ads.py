# =============================================================================
# core/apple_search_ads.py  -  Apple Search Ads REST client
# =============================================================================
#
# HOW A CALL FLOWS:
#   1. create_client_secret() signs a fresh ES256 JWT (core/apple_auth.py)
#   2. fetch_access_token() swaps it for a bearer token at appleid.apple.com
#   3. build_request() resolves the logical endpoint to method/path/params
#   4. request() performs the call with the bearer token + org context
#   5. process_response() (core/report_analysis.py) shapes the result
#
#   That is at most two sequential outbound calls per tool invocation and
#   nothing is reused between invocations.  Timeouts come from httpx; there
#   is no retry loop.
#
# ENDPOINTS:
#   ENDPOINT_ROUTES is the whole dispatch table.  Anything not in it is sent
#   as GET /<endpoint>, so the lookup is total and easy to audit.
# =============================================================================

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

import httpx

from core.apple_auth import TokenSigningError, create_client_secret
from core.config import DEFAULT_APPLE_TOKEN_URL, DEFAULT_SEARCH_ADS_API_BASE
from core.models import ProcessedReport, SearchAdsCredentials, SearchAdsQuery
from core.report_analysis import process_response

logger = logging.getLogger(__name__)

TOKEN_SCOPE = "searchadsorg"
CERTIFICATE_STATUS = "certificateStatus"


@dataclass(frozen=True)
class EndpointRoute:
    method: str
    path: str

    @property
    def is_report(self) -> bool:
        return self.method == "POST"


ENDPOINT_ROUTES: dict[str, EndpointRoute] = {
    "campaigns": EndpointRoute("GET", "/campaigns"),
    "adgroups": EndpointRoute("GET", "/adgroups"),
    "keywords": EndpointRoute("GET", "/keywords"),
    "searchterms": EndpointRoute("POST", "/reports/campaigns/searchterms"),
    "reports": EndpointRoute("POST", "/reports/campaigns"),
    CERTIFICATE_STATUS: EndpointRoute("GET", "/acls"),
}


def resolve_endpoint(endpoint: str) -> EndpointRoute:
    """Look up an endpoint; unknown names become ``GET /<name>``."""
    route = ENDPOINT_ROUTES.get(endpoint)
    if route is None:
        route = EndpointRoute("GET", f"/{endpoint.strip('/')}")
    return route


class SearchAdsQueryError(ValueError):
    """The query can't be turned into a valid request."""


class SearchAdsAPIError(Exception):
    """A Search Ads (or Apple ID token) call failed.

    Carries the HTTP status, raw response body and request URL so the tool
    can report them back verbatim.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        url: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(message)

    def details(self) -> dict:
        return {
            key: value
            for key, value in (("status", self.status_code), ("body", self.body), ("url", self.url))
            if value is not None
        }


@dataclass
class SearchAdsRequest:
    method: str
    path: str
    params: dict[str, Any] = field(default_factory=dict)
    json: Optional[dict] = None


def _validate_date(value: str, name: str) -> str:
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise SearchAdsQueryError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc
    return value


def _reporting_body(query: SearchAdsQuery) -> dict:
    if not (query.start_date and query.end_date):
        raise SearchAdsQueryError(f"startDate and endDate are required for the {query.endpoint} endpoint")

    selector: dict[str, Any] = {
        "orderBy": [{"field": "impressions", "sortOrder": "DESCENDING"}],
        "pagination": {"offset": 0, "limit": query.limit},
    }
    conditions = [
        {"field": name, "operator": "EQUALS", "values": value if isinstance(value, list) else [value]}
        for name, value in query.filters.items()
        if value is not None and value != ""
    ]
    if conditions:
        selector["conditions"] = conditions

    return {
        "startTime": _validate_date(query.start_date, "startDate"),
        "endTime": _validate_date(query.end_date, "endDate"),
        "selector": selector,
        "timeZone": "UTC",
        "returnRecordsWithNoMetrics": False,
        "returnRowTotals": True,
        "returnGrandTotals": True,
    }


def build_request(query: SearchAdsQuery) -> SearchAdsRequest:
    """Resolve a logical query into the concrete HTTP request.

    Only filters that are actually set are sent.
    """
    if query.limit < 1:
        raise SearchAdsQueryError("limit must be at least 1")

    route = resolve_endpoint(query.endpoint)
    if route.is_report:
        return SearchAdsRequest(route.method, route.path, json=_reporting_body(query))

    params: dict[str, Any] = {"limit": query.limit}
    if query.start_date:
        params["startDate"] = _validate_date(query.start_date, "startDate")
    if query.end_date:
        params["endDate"] = _validate_date(query.end_date, "endDate")
    for name, value in query.filters.items():
        if value is not None and value != "":
            params[name] = value
    return SearchAdsRequest(route.method, route.path, params=params)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None

    detail = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            messages = [e.get("message") for e in error.get("errors", []) if isinstance(e, dict)]
            detail = "; ".join(m for m in messages if m) or None
        elif isinstance(error, str):
            detail = body.get("error_description") or error
    return f"HTTP {response.status_code}" + (f": {detail}" if detail else "")


class SearchAdsClient:
    """One-shot client for a single org.

    Use as a context manager; the underlying httpx.Client is closed on exit
    unless it was supplied by the caller.
    """

    def __init__(
        self,
        credentials: SearchAdsCredentials,
        org_id: str,
        *,
        base_url: str = DEFAULT_SEARCH_ADS_API_BASE,
        token_url: str = DEFAULT_APPLE_TOKEN_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.credentials = credentials
        self.org_id = str(org_id)
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "SearchAdsClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    # -- transport ---------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise SearchAdsAPIError(f"Request to {url} failed: {exc}", url=url) from exc

        request_url = str(response.request.url)
        if response.is_error:
            message = _error_message(response)
            logger.error("Search Ads call failed: %s %s -> %s", method, request_url, message)
            raise SearchAdsAPIError(message, response.status_code, response.text, request_url)

        try:
            return response.json()
        except ValueError as exc:
            raise SearchAdsAPIError(
                "Response was not valid JSON", response.status_code, response.text, request_url
            ) from exc

    def fetch_access_token(self) -> str:
        """Exchange a freshly signed client secret for a bearer token."""
        client_secret = create_client_secret(self.credentials)
        payload = self._send(
            "POST",
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.credentials.client_id,
                "client_secret": client_secret,
                "scope": TOKEN_SCOPE,
            },
        )
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise SearchAdsAPIError("Token response did not include an access_token", url=self.token_url)
        return token

    def request(self, request: SearchAdsRequest) -> Any:
        access_token = self.fetch_access_token()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "X-AP-Context": f"orgId={self.org_id}",
        }
        url = f"{self.base_url}{request.path}"
        logger.info("Search Ads %s %s", request.method, url)
        kwargs: dict[str, Any] = {"headers": headers}
        if request.params:
            kwargs["params"] = request.params
        if request.json is not None:
            kwargs["json"] = request.json
        return self._send(request.method, url, **kwargs)

    # -- operations --------------------------------------------------------

    def fetch_report(self, query: SearchAdsQuery) -> ProcessedReport:
        request = build_request(query)
        payload = self.request(request)
        return process_response(query, payload)

    def check_certificate(self) -> dict:
        """Verify the key/credentials by listing the orgs they can access.

        Never raises: failures come back as ``certificateStatus: "invalid"``.
        """
        result: dict[str, Any] = {"endpoint": CERTIFICATE_STATUS, "orgId": self.org_id}
        try:
            route = resolve_endpoint(CERTIFICATE_STATUS)
            payload = self.request(SearchAdsRequest(route.method, route.path))
        except TokenSigningError as exc:
            logger.warning("Certificate check failed while signing: %s", exc)
            return {**result, "certificateStatus": "invalid", "errorType": exc.kind, "error": str(exc)}
        except SearchAdsAPIError as exc:
            logger.warning("Certificate check failed: %s", exc)
            return {
                **result,
                "certificateStatus": "invalid",
                "errorType": "api_error",
                "error": str(exc),
                "details": exc.details(),
            }

        records = payload.get("data") if isinstance(payload, dict) else None
        organizations = [
            {"orgId": org.get("orgId"), "orgName": org.get("orgName"), "roles": org.get("roleNames", [])}
            for org in records or []
            if isinstance(org, dict)
        ]
        org_ids = {str(org["orgId"]) for org in organizations}
        return {
            **result,
            "certificateStatus": "valid",
            "orgAccessible": self.org_id in org_ids,
            "organizations": organizations,
        }
