"""Products, categories, product types and reviews."""

from typing import Any, Optional

from pydantic import Field

from vitrine.schemas.common import ApiModel


# ─── Products ────────────────────────────────────────────

class ProductQueryParams(ApiModel):
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    search: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0, alias="minPrice")
    max_price: Optional[float] = Field(None, ge=0, alias="maxPrice")
    in_stock: Optional[bool] = Field(None, alias="inStock")
    is_active: Optional[bool] = Field(None, alias="isActive")


class ProductCreate(ApiModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    category: str
    brand: str
    images: list[str] = Field(default_factory=list)
    stock: int = Field(..., ge=0)
    specifications: Optional[dict[str, Any]] = None


class ProductUpdate(ApiModel):
    """Partial update; only non-None fields are sent."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    brand: Optional[str] = None
    images: Optional[list[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = Field(None, alias="isActive")
    specifications: Optional[dict[str, Any]] = None


class UpdateProduct(ApiModel):
    id: str = Field(..., min_length=1)
    data: ProductUpdate


class UpdateProductStock(ApiModel):
    id: str = Field(..., min_length=1)
    stock: int = Field(..., ge=0)


# ─── Categories / product types ──────────────────────────

class CategoryCreate(ApiModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CategoryUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


class UpdateCategory(ApiModel):
    id: str = Field(..., min_length=1)
    data: CategoryUpdate


class ProductTypeCreate(ApiModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    attributes: Optional[list[dict[str, Any]]] = None


class ProductTypeUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    attributes: Optional[list[dict[str, Any]]] = None
    is_active: Optional[bool] = Field(None, alias="isActive")


class UpdateProductType(ApiModel):
    id: str = Field(..., min_length=1)
    data: ProductTypeUpdate


# ─── Reviews ─────────────────────────────────────────────

class ReviewCreate(ApiModel):
    product_id: str = Field(..., min_length=1, alias="productId")
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    name: Optional[str] = None
