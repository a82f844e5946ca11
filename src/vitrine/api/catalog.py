"""Catalog slices — products (perfumes), categories, product types, reviews."""

from vitrine.api.base import ApiSlice, mutation, query
from vitrine.cache.tags import Tag
from vitrine.http.base_query import FetchArgs
from vitrine.schemas.catalog import (
    CategoryCreate,
    ProductCreate,
    ProductQueryParams,
    ProductTypeCreate,
    ReviewCreate,
    UpdateCategory,
    UpdateProduct,
    UpdateProductStock,
    UpdateProductType,
)


# ─── Products ────────────────────────────────────────────


class ProductsApi(ApiSlice):
    reducer_path = "productsApi"
    base_path = "/perfumes"
    tag_types = ("Products", "Product")

    @query(provides_tags=["Products"], arg_model=ProductQueryParams)
    def get_products(self, params: ProductQueryParams) -> FetchArgs:
        return FetchArgs("", params=params.params())

    @query(provides_tags=lambda result, error, id: [Tag("Product", id)])
    def get_product(self, id: str) -> FetchArgs:
        return FetchArgs(id)

    @mutation(invalidates_tags=["Products"], arg_model=ProductCreate)
    def create_product(self, req: ProductCreate) -> FetchArgs:
        return FetchArgs("", method="POST", body=req.body())

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("Product", arg.id), "Products"],
        arg_model=UpdateProduct,
    )
    def update_product(self, req: UpdateProduct) -> FetchArgs:
        return FetchArgs(req.id, method="PUT", body=req.data.body())

    @mutation(invalidates_tags=["Products"])
    def delete_product(self, id: str) -> FetchArgs:
        return FetchArgs(id, method="DELETE")

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("Product", arg.id), "Products"],
        arg_model=UpdateProductStock,
    )
    def update_product_stock(self, req: UpdateProductStock) -> FetchArgs:
        return FetchArgs(f"{req.id}/stock", method="PATCH", body={"stock": req.stock})

    @mutation(invalidates_tags=lambda result, error, id: [Tag("Product", id), "Products"])
    def toggle_product_status(self, id: str) -> FetchArgs:
        return FetchArgs(f"{id}/toggle-status", method="PATCH")


# ─── Categories ──────────────────────────────────────────


class CategoriesApi(ApiSlice):
    reducer_path = "categoriesApi"
    base_path = "/categories"
    tag_types = ("Categories", "Category")

    @query(provides_tags=["Categories"])
    def get_categories(self) -> FetchArgs:
        return FetchArgs("")

    @query(provides_tags=lambda result, error, id: [Tag("Category", id)])
    def get_category(self, id: str) -> FetchArgs:
        return FetchArgs(id)

    @mutation(invalidates_tags=["Categories"], arg_model=CategoryCreate)
    def create_category(self, req: CategoryCreate) -> FetchArgs:
        return FetchArgs("", method="POST", body=req.body())

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("Category", arg.id), "Categories"],
        arg_model=UpdateCategory,
    )
    def update_category(self, req: UpdateCategory) -> FetchArgs:
        return FetchArgs(req.id, method="PUT", body=req.data.body())

    @mutation(invalidates_tags=["Categories"])
    def delete_category(self, id: str) -> FetchArgs:
        return FetchArgs(id, method="DELETE")


# ─── Product types ───────────────────────────────────────


class ProductTypesApi(ApiSlice):
    reducer_path = "productTypesApi"
    base_path = "/product-types"
    tag_types = ("ProductTypes", "ProductType")

    @query(provides_tags=["ProductTypes"])
    def get_product_types(self) -> FetchArgs:
        return FetchArgs("")

    @query(provides_tags=lambda result, error, id: [Tag("ProductType", id)])
    def get_product_type(self, id: str) -> FetchArgs:
        return FetchArgs(id)

    @mutation(invalidates_tags=["ProductTypes"], arg_model=ProductTypeCreate)
    def create_product_type(self, req: ProductTypeCreate) -> FetchArgs:
        return FetchArgs("", method="POST", body=req.body())

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("ProductType", arg.id), "ProductTypes"],
        arg_model=UpdateProductType,
    )
    def update_product_type(self, req: UpdateProductType) -> FetchArgs:
        return FetchArgs(req.id, method="PUT", body=req.data.body())

    @mutation(invalidates_tags=["ProductTypes"])
    def delete_product_type(self, id: str) -> FetchArgs:
        return FetchArgs(id, method="DELETE")


# ─── Reviews ─────────────────────────────────────────────


class ReviewsApi(ApiSlice):
    """Product reviews live under the product resource."""

    reducer_path = "reviewsApi"
    base_path = "/perfumes"
    tag_types = ("Reviews",)

    @query(provides_tags=lambda result, error, product_id: [Tag("Reviews", product_id)])
    def get_reviews_by_product(self, product_id: str) -> FetchArgs:
        return FetchArgs(f"{product_id}/reviews")

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("Reviews", arg.product_id)],
        arg_model=ReviewCreate,
    )
    def create_review(self, req: ReviewCreate) -> FetchArgs:
        return FetchArgs(f"{req.product_id}/reviews", method="POST", body=req.body("product_id"))
