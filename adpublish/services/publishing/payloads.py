"""Resolve an Ad's wizard payloads and assemble the remote creation request."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from adpublish.credentials import Credential
from adpublish.models import Ad, Campaign
from adpublish.platforms.base import AdSpec, DestinationSpec

DESTINATION_REQUIRED_FIELD: dict[str, str] = {
    "instant_form": "form_id",
    "website_url": "website_url",
    "phone_number": "phone_number",
}

GEO_BUCKETS: dict[str, str] = {
    "country": "countries",
    "region": "regions",
    "city": "cities",
    "zip": "zips",
}


def resolve_creative_url(creative_data: dict[str, Any] | None) -> str | None:
    """The selected image variation, falling back to the single base image."""
    creative = creative_data or {}
    variations = creative.get("image_variations") or []
    index = creative.get("selected_image_index")
    if index is None:
        index = 0

    url = None
    if isinstance(index, int) and 0 <= index < len(variations):
        url = variations[index]
    if not url:
        url = creative.get("image_url")
    if not isinstance(url, str) or not url.strip():
        return None
    return url.strip()


def is_valid_locator(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def resolve_copy(copy_data: dict[str, Any] | None) -> dict[str, str]:
    copy = copy_data or {}
    return {
        "headline": (copy.get("headline") or "").strip(),
        "primary_text": (copy.get("primary_text") or "").strip(),
        "description": (copy.get("description") or "").strip(),
        "cta_text": (copy.get("cta_text") or "").strip(),
    }


def resolve_destination(destination_data: dict[str, Any] | None) -> DestinationSpec | None:
    destination = destination_data or {}
    dest_type = destination.get("type")
    if not dest_type:
        return None
    data = destination.get("data") or {}
    return DestinationSpec(
        type=dest_type,
        website_url=data.get("website_url") or None,
        form_id=data.get("form_id") or None,
        phone_number=data.get("phone_number") or None,
    )


def build_geo_targeting(locations: list[dict[str, Any]] | None) -> dict[str, Any]:
    """Turn the campaign's location selections into Meta targeting spec."""
    included: dict[str, list] = {}
    excluded: dict[str, list] = {}

    for location in locations or []:
        bucket = GEO_BUCKETS.get(location.get("type", ""))
        key = location.get("key")
        if bucket is None or not key:
            continue
        target = excluded if location.get("mode") == "exclude" else included
        if bucket == "countries":
            target.setdefault(bucket, []).append(key)
        elif bucket == "cities" and location.get("radius"):
            target.setdefault(bucket, []).append(
                {"key": key, "radius": location["radius"], "distance_unit": "mile"}
            )
        else:
            target.setdefault(bucket, []).append({"key": key})

    if not included:
        return {}
    targeting: dict[str, Any] = {"geo_locations": included}
    if excluded:
        targeting["excluded_geo_locations"] = excluded
    return targeting


def build_ad_spec(ad: Ad, campaign: Campaign, credential: Credential) -> AdSpec:
    image_url = resolve_creative_url(ad.creative_data)
    destination = resolve_destination(ad.destination_data)
    if image_url is None or destination is None:
        raise ValueError(f"Ad {ad.id} has no resolvable creative or destination")

    copy = resolve_copy(ad.copy_data)
    return AdSpec(
        name=ad.name or f"{campaign.name} - Ad",
        campaign_name=campaign.name,
        goal=campaign.goal or "",
        daily_budget=float(campaign.daily_budget or 0),
        currency=campaign.currency,
        image_url=image_url,
        headline=copy["headline"],
        primary_text=copy["primary_text"],
        description=copy["description"],
        call_to_action=copy["cta_text"].upper().replace(" ", "_") or None,
        destination=destination,
        page_id=credential.page_id or "",
        instagram_actor_id=credential.instagram_actor_id,
        targeting=build_geo_targeting(campaign.location_targeting),
        remote_campaign_id=campaign.remote_campaign_id,
        remote_adset_id=campaign.remote_adset_id,
    )
