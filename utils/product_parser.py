# Shopping MCP Relay - product records from any tool payload

import logging
from typing import Any, Dict, List, Optional

from models import (
    Brand,
    Payload,
    PriceRange,
    Product,
    ProductDetail,
    ProductImage,
    ProductPrice,
    StructuredListPayload,
    StructuredSingletonPayload,
    TextPayload,
)
from utils.content import to_payload
from utils.markdown_parser import (
    affirms,
    normalize_price,
    parse_markdown_products,
    parse_product_detail_markdown,
    price_fields,
)

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ("product", "data")


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return normalize_price(value)
        except ValueError:
            return None
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        return _as_float(value.get("average", value.get("value")))
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _first(entry: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if entry.get(key) is not None:
            return entry[key]
    return None


def _as_text(value: Any) -> Optional[str]:
    """Scalars become strings; nested objects carry no usable text."""
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _nested_min(price: Any, key: str) -> Optional[int]:
    if not isinstance(price, dict):
        return None
    bucket = price.get(key)
    if isinstance(bucket, dict):
        return _as_int(bucket.get("min"))
    return _as_int(bucket)


def _images(entry: Dict[str, Any]) -> List[ProductImage]:
    raw = entry.get("images") or entry.get("medias") or []
    if isinstance(raw, (str, dict)):
        raw = [raw]
    images = []
    for item in raw:
        if isinstance(item, str) and item:
            images.append(ProductImage(url=item))
        elif isinstance(item, dict) and item.get("url"):
            images.append(ProductImage(url=item["url"], alt=item.get("alt")))
    return images


def _common_fields(entry: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Canonical field values shared by list and detail records."""
    name = entry.get("name")
    slug = _as_text(entry.get("slug")) or ""
    uid = _as_int(entry.get("uid"))
    item_id = _as_int(_first(entry, "item_id", "itemId"))
    raw_id = _first(entry, "uid", "id")
    if not name or not (slug or item_id is not None or raw_id is not None):
        return None

    brand = entry.get("brand")
    if isinstance(brand, dict):
        brand_name = _as_text(brand.get("name")) or ""
    elif isinstance(brand, str):
        brand_name = brand
    else:
        brand_name = _as_text(_first(entry, "brand_name", "brandName")) or ""

    price = entry.get("price")
    effective = _nested_min(price, "effective")
    if effective is None:
        effective = _as_int(_first(entry, "effectivePrice", "effective_price"))
    if effective is None and not isinstance(price, dict):
        effective = _as_int(price)
    marked = _nested_min(price, "marked")
    if marked is None:
        marked = _as_int(_first(entry, "markedPrice", "marked_price", "mrp"))

    discount = entry.get("discount")
    article_id = _first(entry, "article_id", "articleId")
    fields = {
        "id": str(raw_id if raw_id is not None else (item_id or slug)),
        "uid": uid,
        "slug": slug,
        "name": str(name),
        "brand": Brand(name=brand_name),
        "brand_name": brand_name,
        "images": _images(entry),
        "discount": str(discount) if discount not in (None, "") else None,
        "rating": _as_float(entry.get("rating")),
        "item_id": item_id,
        "article_id": str(article_id) if article_id is not None else None,
        "description": _as_text(_first(entry, "description", "short_description", "shortDescription")),
    }
    if effective is not None:
        fields.update(price_fields(effective, marked))
    elif marked is not None:
        fields.update(price=ProductPrice(marked=PriceRange(min=marked)), marked_price=marked)
    return fields


def map_product(entry: Dict[str, Any]) -> Optional[Product]:
    """Map one JSON product object onto the canonical record."""
    fields = _common_fields(entry)
    return Product(**fields) if fields else None


def _try_map(mapper, entry: Dict[str, Any], label: str):
    try:
        return mapper(entry)
    except (TypeError, ValueError) as e:
        logger.warning(f"[Products] Skipping JSON {label}: {e}")
        return None


def map_products(entries: List[Any]) -> List[Product]:
    products = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            continue
        product = _try_map(map_product, entry, f"product {index}")
        if product is not None:
            products.append(product)
    return products


def _specifications(raw: Any) -> Dict[str, str]:
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items() if v is not None}
    if isinstance(raw, list):
        specs = {}
        for item in raw:
            if isinstance(item, dict) and item.get("key") is not None:
                specs[str(item["key"])] = str(item.get("value", ""))
        return specs
    return {}


def map_product_detail(entry: Dict[str, Any]) -> Optional[ProductDetail]:
    fields = _common_fields(entry)
    if not fields:
        return None

    availability = _as_text(entry.get("availability"))
    return_policy = _as_text(entry.get("return_policy"))
    in_stock = entry.get("in_stock", entry.get("inStock"))
    if in_stock is None:
        in_stock = affirms(availability, "in stock")
    returnable = entry.get("is_returnable", entry.get("isReturnable"))
    if returnable is None:
        returnable = affirms(return_policy, "returnable")
    cod = entry.get("is_cod_available", entry.get("cod"))

    return ProductDetail(
        **fields,
        availability=availability,
        in_stock=bool(in_stock),
        stock_count=_as_int(_first(entry, "stock_count", "stockCount", "quantity")),
        size=_as_text(entry.get("size")),
        return_policy=return_policy,
        is_returnable=bool(returnable),
        is_cod_available=bool(cod),
        delivery_estimate=_as_text(_first(entry, "delivery_estimate", "deliveryEstimate")),
        store_id=_as_int(_first(entry, "store_id", "storeId")) or 1,
        store=_as_text(_first(entry, "store", "store_name")),
        seller=_as_text(_first(entry, "seller", "seller_name")),
        specifications=_specifications(entry.get("specifications")),
    )


def _unwrap(data: Dict[str, Any]) -> Dict[str, Any]:
    for key in WRAPPER_KEYS:
        if isinstance(data.get(key), dict):
            return data[key]
    return data


def _as_payload(value: Any) -> Payload:
    if isinstance(value, (TextPayload, StructuredListPayload, StructuredSingletonPayload)):
        return value
    return to_payload(value)


def parse_product_response(value: Any) -> List[Product]:
    """Product records from a tool result, whichever shape it arrived in."""
    payload = _as_payload(value)
    if isinstance(payload, TextPayload):
        return parse_markdown_products(payload.text)
    if isinstance(payload, StructuredListPayload):
        return map_products(payload.items)
    if isinstance(payload, StructuredSingletonPayload):
        if not isinstance(payload.data, dict):
            return []
        product = _try_map(map_product, _unwrap(payload.data), "product")
        return [product] if product else []
    raise TypeError(f"unsupported payload {type(payload).__name__}")


def parse_product_detail_response(value: Any) -> Optional[ProductDetail]:
    """A product detail record from a tool result, or None."""
    payload = _as_payload(value)
    if isinstance(payload, TextPayload):
        detail = parse_product_detail_markdown(payload.text)
        if detail is None:
            # some servers answer a slug lookup with a one-entry listing
            listed = parse_markdown_products(payload.text)
            if listed:
                detail = ProductDetail(**listed[0].model_dump())
        return detail
    if isinstance(payload, StructuredListPayload):
        for entry in payload.items:
            if isinstance(entry, dict) and (detail := _try_map(map_product_detail, entry, "product detail")):
                return detail
        return None
    if isinstance(payload, StructuredSingletonPayload):
        if not isinstance(payload.data, dict):
            return None
        return _try_map(map_product_detail, _unwrap(payload.data), "product detail")
    raise TypeError(f"unsupported payload {type(payload).__name__}")
