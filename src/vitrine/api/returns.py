"""Returns (RMA) — customers open them, admins move them along."""

from vitrine.api.base import ApiSlice, mutation, query
from vitrine.cache.tags import Tag
from vitrine.http.base_query import FetchArgs
from vitrine.schemas.returns import ReturnCreate, UpdateReturnStatus


class ReturnsApi(ApiSlice):
    reducer_path = "returnsApi"
    base_path = "/returns"
    tag_types = ("Return",)
    error_title = "Returns"
    success_title = "Returns"

    @mutation(invalidates_tags=["Return"], arg_model=ReturnCreate)
    def create_return(self, req: ReturnCreate) -> FetchArgs:
        return FetchArgs("/", method="POST", body=req.body())

    @query(provides_tags=["Return"])
    def get_my_returns(self) -> FetchArgs:
        return FetchArgs("/my")

    @query(provides_tags=lambda result, error, id: [Tag("Return", id)])
    def get_return_by_id(self, id: str) -> FetchArgs:
        return FetchArgs(f"/{id}")

    @mutation(
        invalidates_tags=lambda result, error, arg: [Tag("Return", arg.id), "Return"],
        arg_model=UpdateReturnStatus,
    )
    def update_return_status(self, req: UpdateReturnStatus) -> FetchArgs:
        return FetchArgs(f"/{req.id}/status", method="PATCH", body=req.body("id"))
