# =============================================================================
# core/__init__.py
# =============================================================================
# Business logic for the ads-insights server: the Meta and Search Ads
# fetch/normalize code, the ES256 client-secret signer, the formatters and
# the demo calculator.
#
# Nothing in this package imports FastMCP.  Upstream access goes through the
# vendor SDK (facebook_business) or httpx, and the normalizers are pure
# functions of the payload, so they can be tested without a network.
# =============================================================================
