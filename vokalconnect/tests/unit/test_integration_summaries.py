from __future__ import annotations

from vokalconnect.services.integrations import (
    summarize_google_analytics,
    summarize_linkedin,
    summarize_meta_ads,
    summarize_shopify,
)


def test_google_analytics_summary_counts_properties() -> None:
    body = {"totalResults": 2, "items": [{"webProperties": [{}, {}]}, {"webProperties": [{}]}]}
    assert summarize_google_analytics(body) == {"accounts": 2, "properties": 3}


def test_meta_summary_sums_insights() -> None:
    body = {
        "data": [
            {"insights": {"data": [{"impressions": "100", "clicks": "5", "spend": "1.50"}]}},
            {"insights": {"data": [{"impressions": "50", "clicks": "x", "spend": "2.25"}]}},
            {},
        ]
    }
    assert summarize_meta_ads(body) == {"accounts": 3, "impressions": 150, "clicks": 5, "spend": 3.75}


def test_linkedin_summary_prefers_local_currency_cost() -> None:
    body = {"elements": [{"impressions": 10, "clicks": 1, "costInLocalCurrency": "4.5"}, {"spend": 1}]}
    assert summarize_linkedin(body) == {"impressions": 10, "clicks": 1, "spend": 5.5}


def test_shopify_summary_totals_orders() -> None:
    body = {
        "data": {
            "orders": {
                "edges": [
                    {"node": {"totalPriceSet": {"shopMoney": {"amount": "10.00"}}}},
                    {"node": {"totalPriceSet": {"shopMoney": {"amount": "5.25"}}}},
                ]
            }
        }
    }
    assert summarize_shopify(body) == {"orders": 2, "revenue": 15.25}


def test_summaries_tolerate_empty_bodies() -> None:
    assert summarize_shopify({}) == {"orders": 0, "revenue": 0}
    assert summarize_meta_ads({})["accounts"] == 0
