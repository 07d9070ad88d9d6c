"""Fact extraction from listing pages."""

import json

from palm_comps.aliases import AliasResolver
from palm_comps.extractors import extract_listing_page, has_maids_room, run_strategies
from palm_comps.page import PageSnapshot

RENT_URL = "https://www.propertyfinder.ae/en/plp/rent/apartment-for-rent-dubai-palm-jumeirah-seven-palm-123.html"
BUY_URL = "https://www.propertyfinder.ae/en/plp/buy/apartment-for-sale-dubai-palm-jumeirah-456.html"


def test_maids_room_in_description_bumps_the_bedroom_count(page_builder, aliases):
    page = page_builder(
        title="Apartment for rent in Seven Palm | Property Finder",
        description="Spacious 2 Bed + Maid with full sea views",
        details="Bedrooms: 2 Bathrooms: 3 Property Size: 1,450 sqft AED 250,000 yearly",
    )

    resolved = extract_listing_page(page, RENT_URL, aliases)

    assert resolved.building_name == "Seven Palm Jumeirah"
    assert resolved.unit_type == "3BR"
    assert resolved.facts.bedrooms == 3
    assert resolved.facts.bedrooms_without_maid == 2
    assert resolved.facts.has_maids_room is True
    assert resolved.facts.bathrooms == 3
    assert resolved.facts.size == "1450 sqft"
    assert resolved.facts.size_sqft == 1450
    assert resolved.facts.yearly_rent == 250_000
    assert resolved.facts.listing_type == "rent"
    assert resolved.confidence == 1.0


def test_maid_service_is_not_a_maids_room(page_builder, aliases):
    page = page_builder(
        description="Bright 2 bedroom apartment, weekly maid service available",
        details="Bedrooms: 2",
    )

    resolved = extract_listing_page(page, RENT_URL, aliases)

    assert resolved.unit_type == "2BR"
    assert resolved.facts.bedrooms == 2
    assert resolved.facts.has_maids_room is False
    assert resolved.facts.bedrooms_without_maid is None


def test_maid_mentions_outside_the_description_are_ignored(aliases):
    page = PageSnapshot(
        "<html><body>"
        "<div class=\"agent-bio\">Ask us about units with a maid's room</div>"
        "<div class=\"property-description\">Bright 2 bedroom on a high floor</div>"
        "<p>Bedrooms: 2</p>"
        "</body></html>"
    )

    resolved = extract_listing_page(page, RENT_URL, aliases)

    assert resolved.unit_type == "2BR"
    assert resolved.facts.has_maids_room is False


def test_has_maids_room_patterns():
    assert has_maids_room("3 bedroom with maid's room and balcony", 3)
    assert has_maids_room("1 br + maid room", 1)
    assert not has_maids_room("daily maid service and concierge", 2)
    assert not has_maids_room("2 bedroom, sea view", 2)


def test_structured_data_feeds_building_unit_and_price(page_builder):
    listing = {
        "@type": "Apartment",
        "name": "Studio in Azure Residences",
        "description": "Fully furnished, beach access",
        "numberOfBathroomsTotal": 1,
        "address": {"@type": "PostalAddress", "addressLocality": "Palm Jumeirah"},
        "offers": {"price": "95000", "priceCurrency": "AED"},
    }
    page = page_builder(json_ld=["{broken json", json.dumps(listing)])

    resolved = extract_listing_page(page, RENT_URL, AliasResolver())

    assert resolved.building_name == "Azure Residences"
    assert resolved.unit_type == "Studio"
    assert resolved.facts.bathrooms == 1
    assert resolved.facts.yearly_rent == 95_000
    assert resolved.facts.address["addressLocality"] == "Palm Jumeirah"


def test_sale_price_falls_back_to_meta_tags(page_builder):
    page = page_builder(meta={"product:price:amount": "2,450,000"}, details="Bedrooms: 1")

    resolved = extract_listing_page(page, BUY_URL, AliasResolver())

    assert resolved.facts.listing_type == "sale"
    assert resolved.facts.purchase_price == 2_450_000
    assert resolved.facts.yearly_rent is None


def test_out_of_range_rent_is_discarded(page_builder):
    page = page_builder(details="Bedrooms: 1 AED 500 per year")

    resolved = extract_listing_page(page, RENT_URL, AliasResolver())

    assert resolved.facts.yearly_rent is None


def test_unit_type_falls_back_to_meta_description(page_builder):
    page = page_builder(meta={"description": "Three bedroom apartment with private beach"})

    resolved = extract_listing_page(page, "https://www.bayut.com/property/details-9182.html", AliasResolver())

    assert resolved.unit_type == "3BR"
    assert resolved.facts.bedrooms == 3
    assert resolved.building_name is None
    assert resolved.confidence == 0.8


def test_size_in_square_metres_is_converted(page_builder):
    page = page_builder(details="Property Size: 100 sqm")

    resolved = extract_listing_page(page, RENT_URL, AliasResolver())

    assert resolved.facts.size == "100 sqm"
    assert resolved.facts.size_sqft == 1076


def test_strategies_fold_first_writer_wins(page_builder):
    page = page_builder()

    def first(page, url, draft):
        return {"unit_type": "2BR", "bathrooms": None}

    def second(page, url, draft):
        assert draft["unit_type"] == "2BR"
        return {"unit_type": "3BR", "bathrooms": 2}

    assert run_strategies(page, RENT_URL, [first, second]) == {"unit_type": "2BR", "bathrooms": 2}
