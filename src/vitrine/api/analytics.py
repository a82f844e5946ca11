"""Admin analytics — dashboard snapshot and per-topic breakdowns.

All endpoints take the same optional date range. The dashboard is the
one the live analytics room refreshes.
"""

from vitrine.api.base import ApiSlice, query
from vitrine.http.base_query import FetchArgs
from vitrine.schemas.analytics import DateRangeParams


class AnalyticsApi(ApiSlice):
    reducer_path = "analyticsApi"
    base_path = "/admin"
    tag_types = ("Analytics", "SalesData", "ProductPerformance", "CustomerInsights")

    @query(provides_tags=["Analytics"], arg_model=DateRangeParams)
    def get_analytics_dashboard(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/dashboard", params=params.params())

    @query(provides_tags=["SalesData"], arg_model=DateRangeParams)
    def get_sales_data(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/sales", params=params.params())

    @query(provides_tags=["Analytics"], arg_model=DateRangeParams)
    def get_revenue_metrics(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/revenue", params=params.params())

    @query(provides_tags=["ProductPerformance"], arg_model=DateRangeParams)
    def get_product_performance(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/products", params=params.params())

    @query(provides_tags=["Analytics"], arg_model=DateRangeParams)
    def get_category_performance(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/categories", params=params.params())

    @query(provides_tags=["CustomerInsights"], arg_model=DateRangeParams)
    def get_customer_insights(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/customers", params=params.params())

    @query(provides_tags=["Analytics"], arg_model=DateRangeParams)
    def get_inventory_insights(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/inventory", params=params.params())

    @query(provides_tags=["Analytics"], arg_model=DateRangeParams)
    def get_traffic_data(self, params: DateRangeParams) -> FetchArgs:
        return FetchArgs("analytics/traffic", params=params.params())
