"""
Import deep links.
"""

import pytest

from harbor.kernel.deeplink import DeepLink, generate_import_link, parse_deep_link


def test_generate_encodes_url():
    link = generate_import_link("https://example.com/t.json?v=2", "reports")
    assert link == "harbor://import?url=https%3A%2F%2Fexample.com%2Ft.json%3Fv%3D2&groupId=reports"


def test_generate_without_group():
    assert generate_import_link("https://example.com/t.json") == "harbor://import?url=https%3A%2F%2Fexample.com%2Ft.json"


def test_parse_round_trip():
    link = generate_import_link("https://example.com/t.json?v=2", "reports")
    assert parse_deep_link(link) == DeepLink("https://example.com/t.json?v=2", "reports")


def test_parse_without_group():
    assert parse_deep_link("harbor://import?url=https%3A%2F%2Fexample.com%2Ft.json") == DeepLink(
        "https://example.com/t.json"
    )


@pytest.mark.parametrize(
    "link",
    [
        "https://import?url=x",
        "harbor://export?url=x",
        "harbor://import",
        "harbor://import?url=",
        "not a link",
    ],
)
def test_parse_rejects(link):
    assert parse_deep_link(link) is None


def test_exported_from_kernel():
    import harbor.kernel

    assert harbor.kernel.parse_deep_link is parse_deep_link
    assert harbor.kernel.generate_import_link is generate_import_link
