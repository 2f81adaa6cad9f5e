"""
Unit tests for the seller API feed client.

Run: pytest tests/unit/test_catalog_feed.py -v
"""

import pytest
import requests
from unittest.mock import patch

from integrations.catalog_feed import build_headers, extract_products, fetch_catalog_feed
from exceptions import CatalogFeedError

from tests.factories import FeedResponseFactory


class TestBuildHeaders:
    """Tests for build_headers()"""

    def test_bearer_token(self):
        assert build_headers("secret") == {"Authorization": "Bearer secret"}

    def test_no_key_no_header(self):
        assert build_headers(None) == {}
        assert build_headers("") == {}


class TestExtractProducts:
    """Tests for extract_products()"""

    def test_bare_array(self):
        assert extract_products([{"name": "Pump"}]) == [{"name": "Pump"}]

    def test_products_property(self):
        assert extract_products({"products": [{"name": "Pump"}]}) == [{"name": "Pump"}]

    def test_object_without_products_is_empty(self):
        assert extract_products({"items": [{"name": "Pump"}]}) == []

    def test_scalar_body_rejected(self):
        with pytest.raises(CatalogFeedError):
            extract_products("Pump")

    def test_non_array_products_rejected(self):
        with pytest.raises(CatalogFeedError):
            extract_products({"products": {"name": "Pump"}})

    def test_non_object_records_dropped(self):
        assert extract_products([{"name": "Pump"}, "junk", 3]) == [{"name": "Pump"}]


class TestFetchCatalogFeed:
    """Tests for fetch_catalog_feed()"""

    def test_sends_bearer_token(self):
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.return_value = FeedResponseFactory.create([{"name": "Pump"}])

            records = fetch_catalog_feed("https://feeds.example.com/p", "secret")

        assert records == [{"name": "Pump"}]
        _, kwargs = mock_get.call_args
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert kwargs["timeout"] > 0

    def test_non_2xx_raises(self):
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.return_value = FeedResponseFactory.create(status_code=500)

            with pytest.raises(CatalogFeedError) as exc_info:
                fetch_catalog_feed("https://feeds.example.com/p")

        assert exc_info.value.message == "API returned 500"
        assert exc_info.value.status_code == 503
        assert exc_info.value.code == "CATALOG_FEED_ERROR"

    def test_network_error_raises(self):
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.side_effect = requests.exceptions.ConnectionError("refused")

            with pytest.raises(CatalogFeedError):
                fetch_catalog_feed("https://feeds.example.com/p")

    def test_invalid_json_raises(self):
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.return_value = FeedResponseFactory.create(body=b"<html>oops</html>")

            with pytest.raises(CatalogFeedError):
                fetch_catalog_feed("https://feeds.example.com/p")

    @pytest.mark.parametrize("status_code", [201, 204, 299])
    def test_any_2xx_is_accepted(self, status_code):
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.return_value = FeedResponseFactory.create([{"name": "Pump"}], status_code=status_code)

            assert fetch_catalog_feed("https://feeds.example.com/p") == [{"name": "Pump"}]

    @pytest.mark.parametrize("status_code", [300, 301, 304])
    def test_3xx_with_json_body_raises(self, status_code):
        """An unfollowed redirect is not a feed, even with a JSON body."""
        with patch("integrations.catalog_feed.requests.get") as mock_get:
            mock_get.return_value = FeedResponseFactory.create(
                [{"name": "Pump", "cost": "50", "type": "Infusion"}],
                status_code=status_code
            )

            with pytest.raises(CatalogFeedError) as exc_info:
                fetch_catalog_feed("https://feeds.example.com/p")

        assert exc_info.value.message == f"API returned {status_code}"
