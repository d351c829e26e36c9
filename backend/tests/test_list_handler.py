"""
Tests for ListRequestHandler - the generic listing pipeline.

Tests cover:
- Projection per column selection and include / exclude columns
- Key order, native sort and caller sort
- Contains text search on name and id fields
- Soft delete filtering and equality filters
- Paging and total count (with and without a count query)
- Hooks and permission gate
"""

import pytest

from data_services.schemas import ColumnSelection, ListRequest, SortBy
from data_services.services.crud import ListRequestHandler
from data_services.services.permissions import PermissionContext
from shared.config.constants import ActiveState
from shared.utils.exceptions import PermissionDeniedError, UnauthorizedError, ValidationError
from tests.models import Product, ProductTag, Supplier, Tag


def list_rows(registry, db_session, entity_type, permissions=None, **request):
    handler = ListRequestHandler(registry.get(entity_type), permissions)
    return handler.process(db_session, ListRequest(**request))


def ids(response):
    return [entity.id for entity in response.entities]


def count_queries(statements):
    return [s for s in statements if "count(" in s.lower()]


class TestProjection:
    """Which fields end up loaded on the listed rows."""

    def test_list_selection_loads_list_fields(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", equality_filter={"id": 11})

        product = response.entities[0]
        assert isinstance(product, Product)
        assert product.id == 11
        assert product.name == "Cheese Burger"
        assert product.category_id == 1
        assert product.price_cents == 1700
        assert product.revision == 1
        assert product.is_active == ActiveState.ACTIVE
        # DETAILS, foreign, EXPLICIT and NEVER fields stay unloaded
        assert product.notes is None
        assert product.supplier_name is None
        assert product.internal_code is None
        assert product.cost_cents is None

    def test_details_selection_loads_details_and_foreign(self, registry, db_session, seed_products):
        response = list_rows(
            registry, db_session, "products", column_selection=ColumnSelection.DETAILS
        )

        by_id = {p.id: p for p in response.entities}
        assert by_id[11].notes == "Cheddar"
        assert by_id[12].supplier_name == "Acme"
        assert by_id[10].internal_code is None
        assert by_id[10].cost_cents is None

    def test_lookup_selection(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", column_selection=ColumnSelection.LOOKUP)

        product = response.entities[0]
        assert product.name is not None
        assert product.category_id is not None
        assert product.price_cents is None
        assert product.is_active is None
        assert product.revision == 1

    def test_key_only_selection(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", column_selection=ColumnSelection.KEY_ONLY)

        assert sorted(ids(response)) == [10, 11, 12, 13]
        assert all(p.name is None for p in response.entities)
        assert all(p.revision == 1 for p in response.entities)

    def test_include_explicit_field(self, registry, db_session, seed_products):
        response = list_rows(
            registry, db_session, "products", include_columns={"internal_code"}, equality_filter={"id": 10}
        )
        assert response.entities[0].internal_code == "B-01"

    def test_include_never_field_is_ignored(self, registry, db_session, seed_products):
        response = list_rows(
            registry, db_session, "products", include_columns={"cost_cents"}, equality_filter={"id": 10}
        )
        assert response.entities[0].cost_cents is None

    def test_exclude_by_column_name(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", exclude_columns={"product_name"})
        assert all(p.name is None for p in response.entities)
        assert all(p.id is not None for p in response.entities)

    def test_exclude_key_has_no_effect(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", exclude_columns={"id"})
        assert sorted(ids(response)) == [10, 11, 12, 13]

    def test_explicit_key_is_only_loaded_when_included(self, registry, db_session):
        db_session.add_all([Supplier(id=1, name="Acme"), Supplier(id=2, name="Globex")])
        db_session.commit()

        response = list_rows(registry, db_session, "suppliers", PermissionContext({"sub": "1", "roles": ["ADMIN"]}))
        assert [s.name for s in response.entities] == ["Acme", "Globex"]
        assert all(s.id is None for s in response.entities)

        response = list_rows(
            registry,
            db_session,
            "suppliers",
            PermissionContext({"sub": "1", "roles": ["ADMIN"]}),
            include_columns={"id"},
        )
        assert ids(response) == [1, 2]

    def test_empty_projection_is_rejected(self, registry, db_session, admin_ctx):
        with pytest.raises(ValidationError):
            list_rows(registry, db_session, "suppliers", admin_ctx, column_selection=ColumnSelection.KEY_ONLY)

    def test_listed_rows_are_detached_from_session(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products")
        assert all(p not in db_session for p in response.entities)


class TestOrdering:
    def test_native_sort_is_name(self, registry, db_session, seed_categories):
        response = list_rows(registry, db_session, "categories")
        assert [c.name for c in response.entities] == ["Burgers", "Drinks", "Salads"]

    def test_caller_sort_replaces_native_sort(self, registry, db_session, seed_products):
        response = list_rows(
            registry, db_session, "products", sort=[SortBy(field="price_cents", descending=True)]
        )
        assert ids(response) == [11, 10, 13, 12]

    def test_sort_string(self, registry, db_session, seed_categories):
        response = list_rows(registry, db_session, "categories", sort="name DESC")
        assert [c.name for c in response.entities] == ["Salads", "Drinks", "Burgers"]

    def test_sort_by_column_name(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", sort="product_name")
        assert [p.name for p in response.entities] == [
            "Cheese Burger",
            "Classic Burger",
            "Cola",
            "Lemonade 100%",
        ]

    def test_key_order_is_tie_break(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", sort="category_id desc")
        assert ids(response) == [12, 13, 10, 11]

    def test_key_order_without_name_field(self, registry, db_session):
        db_session.add_all([Tag(id=3, label="spicy"), Tag(id=1, label="vegan"), Tag(id=2, label="new")])
        db_session.commit()

        response = list_rows(registry, db_session, "tags")
        assert ids(response) == [1, 2, 3]

    def test_unknown_sort_field(self, registry, db_session, seed_products):
        with pytest.raises(ValidationError):
            list_rows(registry, db_session, "products", sort="nope")

    def test_client_side_sort_field(self, registry, db_session, seed_products):
        with pytest.raises(ValidationError):
            list_rows(registry, db_session, "products", sort="display_label")


class TestContainsText:
    def test_matches_name_case_insensitive(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", contains_text="BURGER")
        assert sorted(ids(response)) == [10, 11]

    def test_matches_id(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", contains_text="12")
        assert ids(response) == [12]

    def test_number_too_large_for_id(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", contains_text="99999999999999999999")
        assert response.entities == []
        assert response.total_count == 0

    def test_wildcards_are_literal(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", contains_text="%")
        assert ids(response) == [13]

    def test_blank_text_is_ignored(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", contains_text="   ")
        assert len(response.entities) == 4

    def test_id_only_row_with_numeric_text(self, registry, db_session):
        db_session.add_all([Tag(id=1, label="vegan"), Tag(id=2, label="new")])
        db_session.commit()

        response = list_rows(registry, db_session, "tags", contains_text="2")
        assert ids(response) == [2]

    def test_id_only_row_with_non_numeric_text(self, registry, db_session):
        db_session.add_all([Tag(id=1, label="vegan"), Tag(id=2, label="new")])
        db_session.commit()

        response = list_rows(registry, db_session, "tags", contains_text="vegan")
        assert response.entities == []
        assert response.total_count == 0

    def test_row_without_id_or_name_ignores_text(self, registry, db_session, seed_products):
        db_session.add_all([Tag(id=1, label="vegan"), ProductTag(product_id=10, tag_id=1)])
        db_session.commit()

        response = list_rows(registry, db_session, "product_tags", contains_text="anything")
        assert [(pt.product_id, pt.tag_id) for pt in response.entities] == [(10, 1)]

    def test_text_too_long(self, registry, db_session, seed_products):
        with pytest.raises(ValidationError):
            list_rows(registry, db_session, "products", contains_text="x" * 201)


class TestFilters:
    def test_deleted_and_inactive_rows_are_hidden(self, registry, db_session, seed_categories):
        response = list_rows(registry, db_session, "categories")
        assert sorted(ids(response)) == [1, 2, 4]

    def test_include_deleted(self, registry, db_session, seed_categories):
        response = list_rows(registry, db_session, "categories", include_deleted=True)
        assert sorted(ids(response)) == [1, 2, 3, 4, 5]

    def test_equality_filter(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", equality_filter={"category_id": 2})
        assert sorted(ids(response)) == [12, 13]

    def test_equality_filter_none_matches_null(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", equality_filter={"notes": None})
        assert sorted(ids(response)) == [10, 12, 13]

    def test_equality_filter_unknown_field(self, registry, db_session, seed_products):
        with pytest.raises(ValidationError):
            list_rows(registry, db_session, "products", equality_filter={"color": "red"})


class TestPagingAndCount:
    def test_no_paging_counts_without_count_query(self, registry, db_session, seed_categories, statements):
        response = list_rows(registry, db_session, "categories")

        assert response.total_count == 3
        assert response.skip == 0
        assert response.take == 0
        assert count_queries(statements) == []

    def test_partial_last_page_counts_without_count_query(self, registry, db_session, seed_products, statements):
        response = list_rows(registry, db_session, "products", skip=2, take=10)

        assert len(response.entities) == 2
        assert response.total_count == 4
        assert count_queries(statements) == []

    def test_full_page_runs_count_query(self, registry, db_session, seed_products, statements):
        response = list_rows(registry, db_session, "products", take=2)

        assert len(response.entities) == 2
        assert response.total_count == 4
        assert response.take == 2
        assert len(count_queries(statements)) == 1

    def test_skip_past_end_runs_count_query(self, registry, db_session, seed_products, statements):
        response = list_rows(registry, db_session, "products", skip=10, take=5)

        assert response.entities == []
        assert response.total_count == 4
        assert len(count_queries(statements)) == 1

    def test_count_respects_filters(self, registry, db_session, seed_products):
        response = list_rows(registry, db_session, "products", take=1, contains_text="burger")
        assert len(response.entities) == 1
        assert response.total_count == 2

    def test_exclude_total_count(self, registry, db_session, seed_products, statements):
        response = list_rows(registry, db_session, "products", take=2, exclude_total_count=True)

        assert len(response.entities) == 2
        assert response.total_count is None
        assert count_queries(statements) == []

    def test_pages_follow_order(self, registry, db_session, seed_products):
        first = list_rows(registry, db_session, "products", take=2, sort="id")
        second = list_rows(registry, db_session, "products", skip=2, take=2, sort="id")
        assert ids(first) == [10, 11]
        assert ids(second) == [12, 13]


class TestHooks:
    def test_process_entity_can_drop_rows(self, registry, db_session, seed_products):
        class NoBurgersHandler(ListRequestHandler):
            def process_entity(self, row):
                return None if "Burger" in row.name else row

        response = NoBurgersHandler(registry.get("products")).process(db_session, ListRequest())

        assert sorted(ids(response)) == [12, 13]
        assert response.total_count == 4

    def test_query_hooks_run_in_order(self, registry, db_session, seed_categories):
        calls = []

        class TracingHandler(ListRequestHandler):
            def on_before_execute_query(self):
                calls.append("before")

            def process_entity(self, row):
                calls.append("row")
                return row

            def on_after_execute_query(self):
                calls.append("after")

        TracingHandler(registry.get("categories")).process(db_session, ListRequest())
        assert calls == ["before", "row", "row", "row", "after"]

    def test_custom_filter(self, registry, db_session, seed_products):
        class CheapProductsHandler(ListRequestHandler):
            def apply_filters(self, query):
                super().apply_filters(query)
                query.where(query.column(self.row.find_field("price_cents")) < 1000)

        response = CheapProductsHandler(registry.get("products")).process(db_session, ListRequest())
        assert sorted(ids(response)) == [12, 13]


class TestPermissions:
    @pytest.fixture
    def seed_suppliers(self, db_session):
        db_session.add(Supplier(id=1, name="Acme"))
        db_session.commit()

    def test_anonymous_is_rejected(self, registry, db_session, seed_suppliers):
        with pytest.raises(UnauthorizedError) as exc:
            list_rows(registry, db_session, "suppliers")
        assert exc.value.status_code == 401

    def test_missing_token_is_rejected(self, registry, db_session, seed_suppliers, user_ctx):
        with pytest.raises(PermissionDeniedError) as exc:
            list_rows(registry, db_session, "suppliers", user_ctx)
        assert exc.value.status_code == 403

    def test_token_holder_can_list(self, registry, db_session, seed_suppliers):
        ctx = PermissionContext({"sub": "5", "permissions": ["Purchasing:Read"]})
        response = list_rows(registry, db_session, "suppliers", ctx)
        assert [s.name for s in response.entities] == ["Acme"]

    def test_row_without_read_permission_is_public(self, registry, db_session, seed_categories):
        response = list_rows(registry, db_session, "categories", PermissionContext.anonymous())
        assert len(response.entities) == 3

    def test_session_is_required(self, registry):
        with pytest.raises(ValueError):
            ListRequestHandler(registry.get("categories")).process(None, ListRequest())
