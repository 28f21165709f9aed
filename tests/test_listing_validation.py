"""Tests for listing normalisation and field validation."""

import json
import uuid

from app.models.listing import BusinessListing
from app.services.allow_lists import AllowLists
from app.services.listing_validation import (
    normalize_listing,
    normalize_url,
    validate_listing,
    validate_packages,
)

ALLOW = AllowLists(cities=("London", "New York"), categories=("Wedding", "Portrait"))


def _listing(**overrides) -> BusinessListing:
    fields = {
        "user_id": uuid.uuid4(),
        "business_name": "Acme Studio",
        "description": "Candid wedding photography.",
        "city": "London",
        "category": "Wedding",
        "slug": "acme-studio",
    }
    fields.update(overrides)
    return BusinessListing(**fields)


def _fields(errors) -> set[str]:
    return {e.field for e in errors}


def test_normalize_url():
    assert normalize_url("example.com") == "https://example.com"
    assert normalize_url("http://example.com") == "http://example.com"
    assert normalize_url("https://example.com") == "https://example.com"


def test_normalize_listing():
    listing = _listing(
        business_name="  Acme Studio  ",
        city="new york",
        category="PORTRAIT",
        website="acme.example.com",
        instagram="   ",
        email="",
    )
    normalize_listing(listing)

    assert listing.business_name == "Acme Studio"
    assert listing.city == "New York"
    assert listing.category == "Portrait"
    assert listing.website == "https://acme.example.com"
    assert listing.instagram is None
    assert listing.email is None


def test_valid_listing_has_no_errors():
    listing = _listing(website="https://acme.example.com", email="hello@acme.example.com")
    normalize_listing(listing)
    assert validate_listing(listing, ALLOW, max_images=10) == []


def test_collects_every_error():
    listing = _listing(
        business_name="",
        description="x" * 501,
        city="Paris",
        category="",
        email="not-an-email",
        website="not a url",
    )
    normalize_listing(listing)
    errors = validate_listing(listing, ALLOW, max_images=10)

    assert _fields(errors) == {
        "business_name", "description", "city", "category", "email", "website",
    }
    messages = {e.field: e.message for e in errors}
    assert messages["business_name"] == "can't be blank"
    assert messages["description"] == "is too long (maximum is 500 characters)"
    assert messages["city"] == "must be selected from the available cities"
    assert messages["category"] == "can't be blank"
    assert messages["email"] == "is invalid"


def test_name_length_limit():
    listing = _listing(business_name="a" * 101)
    errors = validate_listing(listing, ALLOW, max_images=10)
    assert [e.message for e in errors] == ["is too long (maximum is 100 characters)"]


def test_category_must_be_in_allow_list():
    listing = _listing(category="Astro")
    errors = validate_listing(listing, ALLOW, max_images=10)
    assert [(e.field, e.message) for e in errors] == [
        ("category", "must be selected from the available categories"),
    ]


def test_image_limit():
    listing = _listing(images=json.dumps([f"https://cdn.example.com/{i}.jpg" for i in range(4)]))
    assert validate_listing(listing, ALLOW, max_images=4) == []

    errors = validate_listing(listing, ALLOW, max_images=3)
    assert [(e.field, e.message) for e in errors] == [("images", "cannot exceed 3 images")]


def test_validate_packages():
    errors = validate_packages([
        {"name": "Half day", "description": "", "price": "450"},
        {"name": "Full day", "price": "850.00"},
        {"name": "No price", "price": ""},
        {"name": "", "price": "100"},
        {"name": "Bad price", "price": "12.5"},
        "not a package",
    ])
    assert [e.message for e in errors] == [
        "package 4 must have a name",
        "package 5 price must be a valid amount",
        "package 6 must be a valid format",
    ]
    assert _fields(errors) == {"packages"}
