"""Unit tests for object path parsing."""

import pytest

from pattern_matcher.matching_components.asset_paths import (
    ActiveQueryPath,
    ListingPath,
    StaticQueryPath,
    listing_prefix,
    parse_active_query_path,
    parse_listing_path,
    parse_static_query_path,
    search_id_for,
    static_query_prefix,
)

pytestmark = pytest.mark.unit


def test_prefixes_lowercase_brand():
    assert listing_prefix("Gucci") == "active_listing_patterns/brands/gucci/"
    assert static_query_prefix("Gucci") == "pattern_queries/gucci/"


class TestParseListingPath:
    def test_parses(self):
        assert parse_listing_path("active_listing_patterns/brands/Gucci/L1/pattern.JPG") == ListingPath("gucci", "L1")

    @pytest.mark.parametrize(
        "path",
        [
            "active_listing_patterns/brands/gucci/L1/cover.jpg",
            "active_listing_patterns/brands/gucci/L1/pattern.gif",
            "active_listing_patterns/gucci/L1/pattern.jpg",
            "pattern.jpg",
        ],
    )
    def test_rejects(self, path):
        assert parse_listing_path(path) is None


class TestParseActiveQueryPath:
    def test_parses(self):
        assert parse_active_query_path("users_active_patterns/u1/Prada/s-9.webp") == ActiveQueryPath("u1", "prada", "s-9")

    @pytest.mark.parametrize(
        "path",
        [
            "users_active_patterns/u1/prada/extra/s-9.webp",
            "users_active_patterns/u1/prada/s-9.txt",
            "users_active_patterns/u1/prada/",
            "other/u1/prada/s-9.jpg",
        ],
    )
    def test_rejects(self, path):
        assert parse_active_query_path(path) is None


class TestParseStaticQueryPath:
    def test_parses_nested(self):
        assert parse_static_query_path("pattern_queries/Prada/u2/a/b.png") == StaticQueryPath("prada", "u2")

    def test_rejects_missing_file(self):
        assert parse_static_query_path("pattern_queries/prada/u2") is None


class TestSearchIdFor:
    def test_stable_and_brand_case_insensitive(self):
        path = "users_active_patterns/u1/gucci/photo.png"

        assert search_id_for("u1", "gucci", path) == search_id_for("u1", "Gucci", path)

    def test_same_filename_for_two_users_differs(self):
        first = search_id_for("u1", "gucci", "users_active_patterns/u1/gucci/photo.png")
        second = search_id_for("u2", "gucci", "users_active_patterns/u2/gucci/photo.png")

        assert first != second

    def test_same_stem_under_two_brands_differs(self):
        gucci = search_id_for("u1", "gucci", "users_active_patterns/u1/gucci/photo.png")
        prada = search_id_for("u1", "prada", "users_active_patterns/u1/prada/photo.png")

        assert gucci != prada
