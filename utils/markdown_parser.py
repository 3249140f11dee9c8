# Shopping MCP Relay - product records from markdown tool output
#
# The remote catalog tools answer in loosely formatted markdown such as
#
#   **1. Lakme Lipstick**
#   **Brand:** Lakme
#   **Slug:** `lakme-lip-1`
#   **Price:** ₹499 ~~₹599~~ (17% OFF)
#   **Item ID:** 1001
#
# Every field is recovered by an independent rule; a record is only emitted
# when its required fields were found.

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Tuple

from models import Brand, PriceRange, Product, ProductDetail, ProductImage, ProductPrice

logger = logging.getLogger(__name__)

ENTRY_MARKER = re.compile(r"\*\*\d+\.")
CURRENCY = r"(?:₹|Rs\.?|INR)"
AMOUNT = r"(\d[\d,]*(?:\.\d+)?)"


def normalize_price(raw: str) -> int:
    """``"1,200"`` -> 1200, ``"225.00"`` -> 225."""
    cleaned = re.sub(r"[^\d.]", "", raw)
    if not cleaned:
        raise ValueError(f"no digits in price {raw!r}")
    return int(float(cleaned))


def _text(value: str) -> Optional[str]:
    value = value.strip().strip("`").strip()
    return value or None


def _first_line(value: str) -> Optional[str]:
    for line in value.strip().splitlines():
        if line.strip():
            return line.strip()
    return None


@dataclass(frozen=True)
class ExtractionRule:
    field: str
    patterns: Tuple[Pattern[str], ...]
    convert: Callable[[str], Any] = _text

    def apply(self, text: str) -> Optional[Any]:
        """Value from the first pattern that matches, or None."""
        for pattern in self.patterns:
            match = pattern.search(text)
            if match:
                return self.convert(match.group(1))
        return None


def rule(field: str, *patterns: str, convert: Callable[[str], Any] = _text,
         flags: int = 0) -> ExtractionRule:
    return ExtractionRule(field, tuple(re.compile(p, flags) for p in patterns), convert)


def labeled(label: str, value: str = r"([^\n]+)") -> Tuple[str, str]:
    """``**Label:** value`` anywhere, then a plain ``Label: value`` line."""
    return (
        rf"\*\*{label}:\*\*[ \t]*{value}",
        rf"(?m)^[ \t]*(?:[-•][ \t]*)?{label}:[ \t]*{value}",
    )


def extract_fields(text: str, rules: Iterable[ExtractionRule]) -> Dict[str, Any]:
    fields = {}
    for extraction_rule in rules:
        if (value := extraction_rule.apply(text)) is not None:
            fields[extraction_rule.field] = value
    return fields


IMAGE_PATTERNS = (
    r"(?:\*\*)?Image:(?:\*\*)?[ \t]*\[[^\]]*\]\(([^)\s]+)\)",
    r"\[(?:View )?Product Image\]\(([^)\s]+)\)",
    r"(https?://[^\s)\]]*cdn[^\s)\]]*)",
)

LIST_RULES = (
    rule("name", r"([^*]+)\*\*", convert=_first_line),
    rule("brand", *labeled("Brand")),
    rule("slug", r"\*\*Slug:\*\*[ \t]*`([^`]+)`", r"\*\*Slug:\*\*[ \t]*([^\s`*]+)"),
    rule("price", rf"\*\*Price:\*\*[ \t]*(?:~~[^~\n]*~~[ \t]*)?{CURRENCY}[ \t]*{AMOUNT}",
         convert=normalize_price),
    rule("marked_price", rf"~~[ \t]*{CURRENCY}[ \t]*{AMOUNT}[ \t]*~~", convert=normalize_price),
    rule("discount", r"\((\d+%\s*OFF)\)", flags=re.IGNORECASE),
    rule("image", *IMAGE_PATTERNS),
    rule("item_id", r"(?:\*\*)?Item ID:(?:\*\*)?[ \t]*(\d+)", convert=int),
    rule("article_id", r"(?:\*\*)?Article ID:(?:\*\*)?[ \t]*`?([^\s`*]+)"),
    rule("rating", r"(?:\*\*)?Rating:(?:\*\*)?[ \t]*(\d+(?:\.\d+)?)", convert=float),
)

DETAIL_RULES = (
    rule("name", *labeled("(?:Product )?Name")),
    rule("brand", *labeled("Brand")),
    rule("price", *labeled("Price", rf"(?:~~[^~\n]*~~[ \t]*)?{CURRENCY}[ \t]*{AMOUNT}"),
         convert=normalize_price),
    rule("slug", *labeled("Product Slug"), *labeled("Slug")),
    rule("article_id", r"Article ID:(?:\*\*)?[ \t]*([^\n]+)"),
    rule("store_id", r"Store ID:(?:\*\*)?[ \t]*(\d+)", convert=int),
    rule("item_id", r"SKU:(?:\*\*)?[ \t]*(\d+)", r"Item ID:(?:\*\*)?[ \t]*(\d+)", convert=int),
    rule("availability", *labeled("Availability")),
    rule("size", *labeled("Size")),
    rule("return_policy", *labeled("Return Policy")),
    rule("cod", *labeled("Cash on Delivery")),
    rule("delivery_estimate", *labeled("Delivery Estimate")),
    rule("store", *labeled("Store")),
    rule("seller", *labeled("Seller")),
    rule("marked_price", rf"MRP:(?:\*\*)?[ \t]*(?:~~)?[ \t]*{CURRENCY}[ \t]*{AMOUNT}",
         convert=normalize_price),
    rule("discount", r"\((\d+%\s*OFF)\)", flags=re.IGNORECASE),
    rule("rating", r"(?:\*\*)?Rating:(?:\*\*)?[ \t]*(\d+(?:\.\d+)?)", convert=float),
    rule("image", *IMAGE_PATTERNS),
)

STOCK_COUNT = re.compile(r"(\d+)\s+available", re.IGNORECASE)
SPEC_HEADER = re.compile(r"(?:\*\*)?Specifications:(?:\*\*)?[ \t]*(?:\n|$)", re.IGNORECASE)
SPEC_LINE = re.compile(r"^[ \t]*[-*•][ \t]*(?:\*\*)?([^:*\n]+?)(?:\*\*)?:(?:\*\*)?[ \t]*(.+?)[ \t]*$")
SECTION_LABEL = re.compile(r"^[ \t]*\*\*[^*\n]+:\*\*")


def affirms(text: Optional[str], phrase: str) -> bool:
    """True when ``phrase`` appears without a negation (non-/not/no/un) in front."""
    if not text:
        return False
    if re.search(rf"\b(?:non|not|no|un)[\s-]*{phrase}", text, re.IGNORECASE):
        return False
    return re.search(phrase, text, re.IGNORECASE) is not None


def parse_specifications(markdown: str) -> Dict[str, str]:
    """Bullet ``Key: Value`` lines under a ``Specifications:`` heading."""
    header = SPEC_HEADER.search(markdown)
    if not header:
        return {}

    specs: Dict[str, str] = {}
    started = False
    for line in markdown[header.end():].splitlines():
        if not line.strip():
            if started:
                break
            continue
        if SECTION_LABEL.match(line):
            break
        match = SPEC_LINE.match(line)
        if match:
            started = True
            specs[match.group(1).strip()] = match.group(2).strip()
    return specs


def price_fields(effective: int, marked: Optional[int] = None) -> Dict[str, Any]:
    """Nested and flattened price representations built from the same numbers."""
    if marked is None:
        marked = effective
    return {
        "price": ProductPrice(effective=PriceRange(min=effective), marked=PriceRange(min=marked)),
        "effective_price": effective,
        "marked_price": marked,
    }


def build_product(block: str) -> Optional[Product]:
    """One product record from one numbered markdown entry, or None."""
    fields = extract_fields(block, LIST_RULES)
    name = fields.get("name")
    slug = fields.get("slug")
    if not name or not slug:
        return None

    item_id = fields.get("item_id")
    brand_name = fields.get("brand") or ""
    image = fields.get("image")
    return Product(
        id=str(item_id or slug),
        uid=item_id,
        slug=slug,
        name=name,
        brand=Brand(name=brand_name),
        brand_name=brand_name,
        images=[ProductImage(url=image)] if image else [],
        discount=fields.get("discount"),
        rating=fields.get("rating"),
        item_id=item_id,
        article_id=fields.get("article_id"),
        **price_fields(fields.get("price", 0), fields.get("marked_price")),
    )


def parse_markdown_products(markdown: str) -> List[Product]:
    """Product records from a numbered markdown listing.

    Text before the first ``**N.`` marker is ignored. Entries missing a name
    or slug are dropped and an entry that fails to parse is skipped, so one
    bad entry never costs the rest of the listing.
    """
    products = []
    blocks = ENTRY_MARKER.split(markdown)[1:]
    for index, block in enumerate(blocks, 1):
        try:
            product = build_product(block)
        except Exception as e:
            logger.warning(f"[Markdown] Skipping product entry {index}: {e}")
            continue
        if product is None:
            logger.debug(f"[Markdown] Entry {index} has no name/slug, dropped")
            continue
        products.append(product)
    return products


def describe(seller: Optional[str], returnable: bool, cod: bool) -> str:
    parts = [f"Seller: {seller or ''}."]
    if returnable:
        parts.append("Returnable within 15 days.")
    if cod:
        parts.append("Cash on Delivery available.")
    return " ".join(parts)


def parse_product_detail_markdown(markdown: str) -> Optional[ProductDetail]:
    """A single product detail record from labeled markdown, or None without a name."""
    try:
        fields = extract_fields(markdown, DETAIL_RULES)
        name = fields.get("name")
        if not name:
            return None

        price = fields.get("price", 0)
        slug = fields.get("slug") or ""
        item_id = fields.get("item_id")
        availability = fields.get("availability")
        stock = STOCK_COUNT.search(availability) if availability else None
        return_policy = fields.get("return_policy")
        returnable = affirms(return_policy, "returnable")
        cod = affirms(fields.get("cod"), "available")
        brand_name = fields.get("brand") or ""
        image = fields.get("image")

        return ProductDetail(
            id=str(item_id or slug),
            uid=item_id,
            slug=slug,
            name=name,
            brand=Brand(name=brand_name),
            brand_name=brand_name,
            images=[ProductImage(url=image)] if image else [],
            discount=fields.get("discount"),
            rating=fields.get("rating"),
            item_id=item_id,
            article_id=fields.get("article_id"),
            description=describe(fields.get("seller"), returnable, cod),
            availability=availability,
            in_stock=affirms(availability, "in stock"),
            stock_count=int(stock.group(1)) if stock else None,
            size=fields.get("size"),
            return_policy=return_policy,
            is_returnable=returnable,
            is_cod_available=cod,
            delivery_estimate=fields.get("delivery_estimate"),
            store_id=fields.get("store_id", 1),
            store=fields.get("store"),
            seller=fields.get("seller"),
            specifications=parse_specifications(markdown),
            **price_fields(price, fields.get("marked_price")),
        )
    except Exception as e:
        logger.error(f"[Markdown] Error parsing product detail: {e}")
        return None
