"""Normalisation and field validation for business listings.

``validate_listing`` is re-run on every save against the allow-lists that
are current at that moment, so a listing whose city or category has since
been removed can no longer be saved until it is moved to a valid one.
All problems are collected and reported together.
"""

from __future__ import annotations

import re

from email_validator import EmailNotValidError, validate_email
from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.core.errors import FieldError
from app.models.listing import BusinessListing
from app.services.allow_lists import AllowLists
from app.services.slug_resolver import titleize

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500

URL_FIELDS = ("website", "instagram", "facebook", "tiktok")
OPTIONAL_TEXT_FIELDS = (*URL_FIELDS, "email", "phone")

_PRICE = re.compile(r"^\d+(\.\d{2})?$")
_http_url = TypeAdapter(HttpUrl)


def normalize_url(value: str) -> str:
    if value.startswith(("http://", "https://")):
        return value
    return f"https://{value}"


def normalize_listing(listing: BusinessListing) -> None:
    """Trim text, blank-to-None optional fields, add URL schemes, title-case city/category."""
    listing.business_name = (listing.business_name or "").strip()
    listing.description = (listing.description or "").strip()

    for field in OPTIONAL_TEXT_FIELDS:
        value = getattr(listing, field)
        value = value.strip() if isinstance(value, str) else value
        setattr(listing, field, value or None)

    for field in URL_FIELDS:
        value = getattr(listing, field)
        if value:
            setattr(listing, field, normalize_url(value))

    if listing.city:
        listing.city = titleize(listing.city.strip())
    if listing.category:
        listing.category = titleize(listing.category.strip())


def _is_valid_url(value: str) -> bool:
    try:
        _http_url.validate_python(value)
    except ValidationError:
        return False
    return True


def _is_valid_email(value: str) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def validate_packages(packages: list) -> list[FieldError]:
    errors: list[FieldError] = []
    for index, package in enumerate(packages, start=1):
        if not isinstance(package, dict):
            errors.append(FieldError("packages", f"package {index} must be a valid format"))
            continue
        if not str(package.get("name") or "").strip():
            errors.append(FieldError("packages", f"package {index} must have a name"))
        price = package.get("price")
        if price not in (None, "") and not _PRICE.match(str(price)):
            errors.append(FieldError("packages", f"package {index} price must be a valid amount"))
    return errors


def validate_listing(
    listing: BusinessListing, allow_lists: AllowLists, max_images: int,
) -> list[FieldError]:
    errors: list[FieldError] = []

    if not listing.business_name:
        errors.append(FieldError("business_name", "can't be blank"))
    elif len(listing.business_name) > NAME_MAX_LENGTH:
        errors.append(
            FieldError("business_name", f"is too long (maximum is {NAME_MAX_LENGTH} characters)")
        )

    if not listing.description:
        errors.append(FieldError("description", "can't be blank"))
    elif len(listing.description) > DESCRIPTION_MAX_LENGTH:
        errors.append(
            FieldError(
                "description", f"is too long (maximum is {DESCRIPTION_MAX_LENGTH} characters)",
            )
        )

    if not listing.city:
        errors.append(FieldError("city", "can't be blank"))
    elif not allow_lists.has_city(listing.city):
        errors.append(FieldError("city", "must be selected from the available cities"))

    if not listing.category:
        errors.append(FieldError("category", "can't be blank"))
    elif not allow_lists.has_category(listing.category):
        errors.append(FieldError("category", "must be selected from the available categories"))

    if listing.email and not _is_valid_email(listing.email):
        errors.append(FieldError("email", "is invalid"))

    for field in URL_FIELDS:
        value = getattr(listing, field)
        if value and not _is_valid_url(value):
            errors.append(FieldError(field, "is invalid"))

    if len(listing.image_list) > max_images:
        errors.append(FieldError("images", f"cannot exceed {max_images} images"))

    errors.extend(validate_packages(listing.package_list))
    return errors
