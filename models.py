# Shopping MCP Relay Data Models

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Dict, Any, List, Literal, Optional, Union

JSONRPC_VERSION = "2.0"

# JSON-RPC envelope


class MCPError(BaseModel):
    code: int = -32000
    message: str = ""
    data: Any = None


class MCPRequest(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: Optional[Union[int, str]] = None
    method: str
    params: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class MCPResponse(BaseModel):
    jsonrpc: str = JSONRPC_VERSION
    id: Optional[Union[int, str]] = None
    result: Any = None
    error: Optional[MCPError] = None

    @field_validator("error", mode="before")
    @classmethod
    def _coerce_error(cls, value):
        # some servers report errors as a bare string
        if isinstance(value, str):
            return {"code": -32000, "message": value}
        return value

    @model_validator(mode="after")
    def _one_outcome(self):
        if self.result is not None and self.error is not None:
            raise ValueError("response carries both result and error")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None


class ContentBlock(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


# Normalized tool payloads


class TextPayload(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class StructuredListPayload(BaseModel):
    kind: Literal["list"] = "list"
    items: List[Any]
    source: Any = None


class StructuredSingletonPayload(BaseModel):
    kind: Literal["singleton"] = "singleton"
    data: Any = None


Payload = Union[TextPayload, StructuredListPayload, StructuredSingletonPayload]


# Local API


class InvokeRequest(BaseModel):
    tool: Optional[str] = None
    params: Optional[Dict[str, Any]] = None


class InvokeResponse(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    mock: Optional[bool] = None


class ProductSearchRequest(BaseModel):
    query: str = ""
    limit: int = Field(default=20, ge=1, le=100)


# Product records


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Brand(CamelModel):
    name: str = ""


class ProductImage(CamelModel):
    url: str
    alt: Optional[str] = None


class PriceRange(CamelModel):
    min: int
    max: Optional[int] = None


class ProductPrice(CamelModel):
    effective: Optional[PriceRange] = None
    marked: Optional[PriceRange] = None


class Product(CamelModel):
    id: str
    uid: Optional[int] = None
    slug: str = ""
    name: str
    brand: Optional[Brand] = None
    brand_name: Optional[str] = None
    images: List[ProductImage] = Field(default_factory=list)
    price: Optional[ProductPrice] = None
    effective_price: Optional[int] = None
    marked_price: Optional[int] = None
    discount: Optional[str] = None
    rating: Optional[float] = None
    item_id: Optional[int] = None
    article_id: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_price_agreement(self):
        """Nested and flattened prices must carry the same numbers."""
        if self.price is None:
            return self
        pairs = (
            (self.price.effective, self.effective_price, "effective"),
            (self.price.marked, self.marked_price, "marked"),
        )
        for nested, flat, label in pairs:
            if nested is not None and flat is not None and nested.min != flat:
                raise ValueError(f"{label} price mismatch: {nested.min} != {flat}")
        return self

    @property
    def image_url(self) -> Optional[str]:
        return self.images[0].url if self.images else None


class ProductDetail(Product):
    availability: Optional[str] = None
    in_stock: bool = False
    stock_count: Optional[int] = None
    size: Optional[str] = None
    return_policy: Optional[str] = None
    is_returnable: bool = False
    is_cod_available: bool = False
    delivery_estimate: Optional[str] = None
    store_id: int = 1
    store: Optional[str] = None
    seller: Optional[str] = None
    specifications: Dict[str, str] = Field(default_factory=dict)
