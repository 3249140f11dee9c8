# Mock catalog tools - answers in the remote server's markdown format

import logging
from typing import Any, Dict, List

from models import MCPResponse
from tools.responses import error_response, text_response

logger = logging.getLogger(__name__)

CDN = "https://cdn.tirabeauty.com/v2/billowing-snowflake-434234/tira-p/wrkr/products/pictures/item/free/original"

CATALOG: List[Dict[str, Any]] = [
    {
        "name": "Lakme 9to5 Primer + Matte Lipstick - Red Coat",
        "brand": "Lakme",
        "slug": "lakme-9to5-primer-matte-lipstick-red-coat",
        "price": 499,
        "marked_price": 599,
        "rating": 4.3,
        "item_id": 1001,
        "article_id": "39_1001",
        "size": "3.6 g",
        "category": "lipstick",
        "specifications": {"Finish": "Matte", "Shade": "Red Coat"},
    },
    {
        "name": "Maybelline New York Superstay Matte Ink Liquid Lipstick",
        "brand": "Maybelline New York",
        "slug": "maybelline-superstay-matte-ink-pioneer",
        "price": 649,
        "marked_price": 649,
        "rating": 4.5,
        "item_id": 1002,
        "article_id": "39_1002",
        "size": "5 ml",
        "category": "lipstick",
        "specifications": {"Finish": "Matte", "Longwear": "16 hours"},
    },
    {
        "name": "Minimalist 10% Niacinamide Face Serum",
        "brand": "Minimalist",
        "slug": "minimalist-10-niacinamide-face-serum",
        "price": 1020,
        "marked_price": 1200,
        "rating": 4.4,
        "item_id": 2001,
        "article_id": "41_2001",
        "size": "30 ml",
        "category": "serum",
        "specifications": {"Skin Type": "All", "Concern": "Blemishes"},
    },
    {
        "name": "The Derma Co 1% Hyaluronic Sunscreen Aqua Gel SPF 50",
        "brand": "The Derma Co",
        "slug": "the-derma-co-hyaluronic-sunscreen-aqua-gel",
        "price": 499,
        "marked_price": 499,
        "rating": None,
        "item_id": 2002,
        "article_id": "41_2002",
        "size": "50 g",
        "category": "sunscreen",
        "specifications": {"SPF": "50", "Texture": "Gel"},
    },
    {
        "name": "Kay Beauty Hydrating Foundation",
        "brand": "Kay Beauty",
        "slug": "kay-beauty-hydrating-foundation-120n",
        "price": 1299,
        "marked_price": 1499,
        "rating": 4.1,
        "item_id": 3001,
        "article_id": "43_3001",
        "size": "30 ml",
        "category": "foundation",
        "specifications": {"Coverage": "Medium", "Finish": "Dewy"},
    },
]


def image_url(product: Dict[str, Any]) -> str:
    return f"{CDN}/{product['item_id']}/{product['slug']}-1.jpg"


def discount_label(product: Dict[str, Any]) -> str:
    if product["marked_price"] <= product["price"]:
        return ""
    percent = round((product["marked_price"] - product["price"]) * 100 / product["marked_price"])
    return f"{percent}% OFF"


def search_catalog(query: str) -> List[Dict[str, Any]]:
    words = [w for w in query.lower().split() if w not in ("bestseller", "best", "top")]
    if not words:
        return list(CATALOG)
    matches = []
    for product in CATALOG:
        haystack = f"{product['name']} {product['brand']} {product['category']}".lower()
        if any(word in haystack for word in words):
            matches.append(product)
    return matches


def format_listing(products: List[Dict[str, Any]], query: str) -> str:
    if not products:
        return f'No products found for "{query}".'
    lines = [f'Found {len(products)} products for "{query}":', ""]
    for index, product in enumerate(products, 1):
        price_line = f"**Price:** ₹{product['price']:,}"
        discount = discount_label(product)
        if discount:
            price_line += f" ~~₹{product['marked_price']:,}~~ ({discount})"
        rating = f"{product['rating']}" if product["rating"] else "Not yet rated"
        lines.extend([
            f"**{index}. {product['name']}**",
            f"**Brand:** {product['brand']}",
            f"**Slug:** `{product['slug']}`",
            price_line,
            f"**Rating:** {rating}",
            f"**Item ID:** {product['item_id']}",
            f"**Article ID:** {product['article_id']}",
            f"[View Product Image]({image_url(product)})",
            "",
        ])
    return "\n".join(lines)


def format_detail(product: Dict[str, Any]) -> str:
    lines = [
        f"**Name:** {product['name']}",
        f"**Brand:** {product['brand']}",
        f"**Price:** ₹{product['price']:,}",
        f"MRP: ₹{product['marked_price']:,}.00",
        f"**Product Slug:** {product['slug']}",
        f"Article ID: {product['article_id']}",
        "Store ID: 1",
        f"SKU: {product['item_id']}",
        "**Availability:** In Stock (25 available)",
        f"**Size:** {product['size']}",
        "**Return Policy:** Returnable within 15 days",
        "**Cash on Delivery:** Available",
        "**Delivery Estimate:** 3-5 business days",
        "**Store:** Tira Online",
        "**Seller:** Reliance Retail Ltd",
        f"**Image:** [Product Image]({image_url(product)})",
        "",
        "**Specifications:**",
    ]
    lines.extend(f"- {key}: {value}" for key, value in product["specifications"].items())
    return "\n".join(lines) + "\n"


async def get_products(params: Dict[str, Any]) -> MCPResponse:
    """Catalog search"""
    query = str(params.get("query", "")).strip()
    limit = params.get("limit", 20)
    try:
        limit = max(1, int(limit))
    except (TypeError, ValueError):
        return error_response(f"Invalid limit: {limit}")

    products = search_catalog(query)[:limit]
    logger.info(f"[mock:get_products] query={query!r} -> {len(products)} products")
    return text_response(format_listing(products, query))


async def get_product_by_slug(params: Dict[str, Any]) -> MCPResponse:
    """Product detail by slug"""
    slug = params.get("slug")
    if not slug:
        return error_response("slug is required")
    product = next((p for p in CATALOG if p["slug"] == slug), None)
    if product is None:
        return text_response(f"Product not found: {slug}")
    return text_response(format_detail(product))
