from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from catalogsync.adapters.yml import render_catalog
from catalogsync.domain.errors import MissingRequiredMetadataError
from catalogsync.domain.ingest import BuildOptions, build_catalog
from catalogsync.domain.model import Category
from tests.helpers.catalogs import make_catalog, make_product


def _parse(markup: str) -> ET.Element:
    return ET.fromstring(markup.split("\n", 1)[1])  # noqa: S314


def test_render_catalog_writes_shop_header(shop_feed: str, build_options: BuildOptions) -> None:
    catalog = build_catalog(shop_feed, "Sample", options=build_options)

    markup = render_catalog(catalog)

    assert markup.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<yml_catalog')
    root = _parse(markup)
    assert root.get("date") == "2024-05-01 12:00"
    shop = root.find("shop")
    assert shop is not None
    assert shop.findtext("name") == "Sample Store"
    assert shop.findtext("company") == "Sample Store LLC"
    assert shop.findtext("url") == "https://shop.example"
    assert [currency.get("id") for currency in shop.iter("currency")] == ["RUB"]


def test_render_catalog_writes_categories_and_offers(
    shop_feed: str, build_options: BuildOptions
) -> None:
    catalog = build_catalog(shop_feed, "Sample", options=build_options)

    root = _parse(render_catalog(catalog))

    categories = [(c.get("id"), c.get("parentId"), c.text) for c in root.iter("category")]
    assert categories == [("1", None, "Clothing"), ("2", "1", "T-shirts")]
    offers = list(root.iter("offer"))
    assert [(o.get("id"), o.get("available")) for o in offers] == [
        ("101", "true"),
        ("102", "false"),
        ("103", "false"),
    ]
    tee = offers[0]
    assert tee.findtext("price") == "990"
    assert tee.findtext("oldprice") == "1290"
    assert tee.findtext("categoryId") == "2"
    assert [picture.text for picture in tee.iter("picture")] == [
        "https://shop.example/img/tee-1.jpg",
        "https://shop.example/img/tee-2.jpg",
    ]
    assert [(param.get("name"), param.text) for param in tee.iter("param")] == [
        ("Размер", "S"),
        ("Цвет", "White"),
    ]
    assert offers[2].findtext("price") == "450.5"
    assert offers[2].find("oldprice") is None


def test_rendered_catalog_can_be_imported_again(
    shop_feed: str, build_options: BuildOptions
) -> None:
    original = build_catalog(shop_feed, "Sample", "scope", options=build_options)

    rebuilt = build_catalog(render_catalog(original), "Sample", "scope")

    assert [product.id for product in rebuilt.products] == [
        product.id for product in original.products
    ]
    assert [(p.price, p.available, p.name) for p in rebuilt.products] == [
        (p.price, p.available, p.name) for p in original.products
    ]
    assert rebuilt.metadata.shop_url == original.metadata.shop_url


def test_render_catalog_prefers_generated_overlays() -> None:
    product = make_product("p1", name="Source name", generated_url="https://gen.example/p1")
    product.generated_name = "Better name"
    product.generated_description = "Better description"
    catalog = make_catalog([product], categories=[Category(id="c1", name="Root")])

    offer = _parse(render_catalog(catalog)).find("shop/offers/offer")

    assert offer is not None
    assert offer.findtext("name") == "Better name"
    assert offer.findtext("description") == "Better description"
    assert offer.findtext("url") == "https://gen.example/p1"


def test_render_catalog_skips_products_excluded_from_export() -> None:
    hidden = make_product("hidden")
    hidden.include_in_export = False
    catalog = make_catalog([make_product("shown"), hidden])

    root = _parse(render_catalog(catalog))

    assert [offer.get("id") for offer in root.iter("offer")] == ["shown"]


@pytest.mark.parametrize("shop_url", [None, "  "])
def test_render_catalog_requires_shop_url(shop_url: str | None) -> None:
    catalog = make_catalog([make_product("p1")], shop_url=shop_url)

    with pytest.raises(MissingRequiredMetadataError) as excinfo:
        render_catalog(catalog)

    assert excinfo.value.field == "shop_url"
