"""Render a catalog back into ``yml_catalog`` markup."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from logging import getLogger
from typing import TYPE_CHECKING

from catalogsync.domain.errors import MissingRequiredMetadataError
from catalogsync.domain.ingest.document import CATALOG_ROOT, DOCUMENT_DATE_FORMAT, XML_DECLARATION
from catalogsync.domain.ingest.normalizers import stringify

if TYPE_CHECKING:
    from catalogsync.domain.model import Catalog, Category, Product

log = getLogger(__name__)


def _text_element(parent: ET.Element, tag: str, text: str | None) -> None:
    if text:
        ET.SubElement(parent, tag).text = text


def _categories(shop: ET.Element, categories: list[Category]) -> None:
    references = {category.id: category.reference for category in categories}
    container = ET.SubElement(shop, "categories")
    for category in categories:
        element = ET.SubElement(container, "category", id=category.reference)
        parent = references.get(category.parent_id) if category.parent_id else None
        if parent:
            element.set("parentId", parent)
        element.text = category.name


def _offer(offers: ET.Element, product: Product) -> None:
    offer = ET.SubElement(
        offers,
        "offer",
        id=product.external_id,
        available="true" if product.available else "false",
    )
    _text_element(offer, "url", product.export_url)
    _text_element(offer, "price", stringify(product.price))
    if product.old_price is not None:
        _text_element(offer, "oldprice", stringify(product.old_price))
    _text_element(offer, "currencyId", product.currency)
    _text_element(offer, "categoryId", product.category_id)
    for picture in product.pictures:
        _text_element(offer, "picture", picture)
    _text_element(offer, "vendor", product.vendor)
    _text_element(offer, "vendorCode", product.vendor_code)
    _text_element(offer, "name", product.export_name)
    _text_element(offer, "description", product.export_description)
    for attribute in product.attributes:
        param = ET.SubElement(offer, "param", name=attribute.name)
        param.text = attribute.value


def render_catalog(catalog: Catalog) -> str:
    """Serialize exportable products of ``catalog`` as a YML document.

    Raises:
        MissingRequiredMetadataError: the catalog has no shop URL.
    """

    metadata = catalog.metadata
    shop_url = (metadata.shop_url or "").strip()
    if not shop_url:
        raise MissingRequiredMetadataError("shop_url")

    products = [product for product in catalog.products if product.include_in_export]
    root = ET.Element(CATALOG_ROOT, date=catalog.date_modified.strftime(DOCUMENT_DATE_FORMAT))
    shop = ET.SubElement(root, "shop")
    _text_element(shop, "name", metadata.shop_name)
    _text_element(shop, "company", metadata.company or metadata.shop_name)
    _text_element(shop, "url", shop_url)

    currencies = ET.SubElement(shop, "currencies")
    for currency in dict.fromkeys(product.currency for product in products):
        ET.SubElement(currencies, "currency", id=currency, rate="1")

    _categories(shop, catalog.categories)
    offers = ET.SubElement(shop, "offers")
    for product in products:
        _offer(offers, product)

    ET.indent(root)
    log.info(
        "Rendered %d of %d product(s) for export", len(products), len(catalog.products)
    )
    return f"{XML_DECLARATION}\n{ET.tostring(root, encoding='unicode')}\n"
