"""Unit tests for the Meta Marketing API fetchers and normalizers.

WHAT:
    The SDK object classes (User, AdAccount, Campaign) are patched where
    core.meta_ads imports them, so each test controls exactly what the
    "Graph API" returns and can inspect the fields/params it was asked for.

WHY:
    Budgets arrive in cents, cursors page forever and filters are easy to
    send by accident; these are the behaviours worth pinning down.
"""

from itertools import count
from unittest.mock import MagicMock, patch

import pytest

from core import meta_ads
from core.meta_ads import (
    AD_SET_FIELDS,
    ACCOUNT_FIELDS,
    MetaConfigError,
    build_api,
    get_account_info,
    get_ad_accounts,
    get_ad_sets,
    get_campaign_details,
    get_campaigns,
    normalize_ad_account,
)


@pytest.fixture
def api():
    return MagicMock(name="FacebookAdsApi")


def _account(i):
    return {
        "id": f"act_{i}",
        "name": f"Account {i}",
        "account_status": 1,
        "amount_spent": "12345",
        "balance": "0",
        "currency": "USD",
        "timezone_name": "America/Los_Angeles",
    }


def _endless(factory):
    """A cursor that would page forever if consumed greedily."""
    return (factory(i) for i in count())


class TestBuildApi:
    def test_missing_token(self, make_settings):
        with pytest.raises(MetaConfigError, match="META_ACCESS_TOKEN"):
            build_api(make_settings(meta_access_token=""))

    def test_session_from_settings(self, make_settings):
        settings = make_settings(meta_app_id="app", meta_app_secret="secret", meta_api_version="v21.0")
        with patch.object(meta_ads, "FacebookSession") as session_cls, \
                patch.object(meta_ads, "FacebookAdsApi") as api_cls:
            build_api(settings)
        session_cls.assert_called_once_with(app_id="app", app_secret="secret", access_token="test-token")
        api_cls.assert_called_once_with(session_cls.return_value, api_version="v21.0")


class TestGetAdAccounts:
    def test_normalized_and_bounded(self, api):
        with patch.object(meta_ads, "User") as user_cls:
            user_cls.return_value.get_ad_accounts.return_value = _endless(_account)
            accounts = get_ad_accounts(api, limit=3)

        assert len(accounts) == 3
        user_cls.assert_called_once_with(fbid="me", api=api)
        user_cls.return_value.get_ad_accounts.assert_called_once_with(
            fields=ACCOUNT_FIELDS, params={"limit": 3}
        )
        first = accounts[0]
        assert first.id == "act_0"
        assert first.status == "Active"
        assert first.amount_spent == "123.45 USD"
        assert first.balance == "0"
        assert first.timezone == "America/Los_Angeles"

    def test_unknown_status(self):
        raw = dict(_account(1), account_status=42)
        assert normalize_ad_account(raw).status == "Unknown (42)"

    def test_custom_user(self, api):
        with patch.object(meta_ads, "User") as user_cls:
            user_cls.return_value.get_ad_accounts.return_value = iter([])
            assert get_ad_accounts(api, user_id="1234") == []
        user_cls.assert_called_once_with(fbid="1234", api=api)


class TestGetAccountInfo:
    def test_details(self, api):
        raw = dict(_account(7), spend_cap="500000", business_country_code="US", owner="99")
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.api_get.return_value = raw
            details = get_account_info(api, "act_7")

        account_cls.assert_called_once_with("act_7", api=api)
        assert details.spend_cap == "5000.00 USD"
        assert details.country == "US"
        assert details.owner == "99"
        assert details.amount_spent == "123.45 USD"

    def test_no_spend_cap(self, api):
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.api_get.return_value = _account(1)
            assert get_account_info(api, "act_1").spend_cap == "No limit"


class TestGetCampaigns:
    def _campaign(self, i):
        return {"id": str(i), "name": f"C{i}", "objective": "OUTCOME_SALES", "status": "ACTIVE", "daily_budget": "2500"}

    def test_no_filter_sent_by_default(self, api):
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.get_campaigns.return_value = _endless(self._campaign)
            campaigns = get_campaigns(api, "act_1", limit=2)

        params = account_cls.return_value.get_campaigns.call_args.kwargs["params"]
        assert params == {"limit": 2}
        assert len(campaigns) == 2
        assert campaigns[0].daily_budget == "25.00"
        assert campaigns[0].lifetime_budget is None

    def test_status_filter(self, api):
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.get_campaigns.return_value = iter([])
            get_campaigns(api, "act_1", status_filter="PAUSED")

        params = account_cls.return_value.get_campaigns.call_args.kwargs["params"]
        assert params["filtering"] == [
            {"field": "campaign.delivery_status", "operator": "EQUAL", "value": "PAUSED"}
        ]


class TestGetCampaignDetails:
    def test_related_ad_sets_capped(self, api):
        raw = {
            "id": "c1",
            "name": "Launch",
            "objective": "OUTCOME_TRAFFIC",
            "status": "ACTIVE",
            "lifetime_budget": "100000",
            "buying_type": "AUCTION",
            "special_ad_categories": [],
            "budget_remaining": "4200",
        }
        with patch.object(meta_ads, "Campaign") as campaign_cls:
            campaign = campaign_cls.return_value
            campaign.api_get.return_value = raw
            campaign.get_ad_sets.return_value = _endless(
                lambda i: {"id": f"as{i}", "name": f"Set {i}", "status": "ACTIVE"}
            )
            details = get_campaign_details(api, "c1")

        assert campaign.get_ad_sets.call_args.kwargs["params"] == {"limit": 5}
        assert details.related_ad_sets_count == 5
        assert [a.id for a in details.related_ad_sets] == ["as0", "as1", "as2", "as3", "as4"]
        assert details.lifetime_budget == "1000.00"
        assert details.budget_remaining == "42.00"
        assert details.spend_cap == "No limit"
        assert details.buying_type == "AUCTION"

    def test_no_ad_sets(self, api):
        with patch.object(meta_ads, "Campaign") as campaign_cls:
            campaign_cls.return_value.api_get.return_value = {"id": "c2", "status": "PAUSED"}
            campaign_cls.return_value.get_ad_sets.return_value = iter([])
            details = get_campaign_details(api, "c2")
        assert details.related_ad_sets == []
        assert details.related_ad_sets_count == 0


class TestGetAdSets:
    def test_targeting_summary(self, api):
        raw = {
            "id": "as1",
            "name": "Broad US",
            "status": "ACTIVE",
            "campaign_id": "c1",
            "daily_budget": "1000",
            "bid_amount": "150",
            "optimization_goal": "LINK_CLICKS",
            "billing_event": "IMPRESSIONS",
            "targeting": {"age_min": 21, "age_max": 45, "genders": [2], "geo_locations": {"countries": ["US"]}},
        }
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.get_ad_sets.return_value = iter([raw])
            (ad_set,) = get_ad_sets(api, "act_1")

        account_cls.return_value.get_ad_sets.assert_called_once_with(
            fields=AD_SET_FIELDS, params={"limit": 10}
        )
        assert ad_set.daily_budget == "10.00"
        assert ad_set.bid_amount == "1.50"
        assert ad_set.targeting_summary == {
            "age_range": "21-45",
            "genders": ["female"],
            "locations": {"countries": ["US"]},
        }

    def test_campaign_filter(self, api):
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.get_ad_sets.return_value = iter([])
            get_ad_sets(api, "act_1", limit=4, campaign_id="c9")

        params = account_cls.return_value.get_ad_sets.call_args.kwargs["params"]
        assert params == {
            "limit": 4,
            "filtering": [{"field": "campaign.id", "operator": "EQUAL", "value": "c9"}],
        }

    def test_missing_targeting(self, api):
        with patch.object(meta_ads, "AdAccount") as account_cls:
            account_cls.return_value.get_ad_sets.return_value = iter([{"id": "as2"}])
            (ad_set,) = get_ad_sets(api, "act_1")
        assert ad_set.targeting_summary == {}
