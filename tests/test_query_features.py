import uuid

import pytest

from app.core.errors import BadRequestError
from app.core.query_features import (
    Condition,
    QuerySpec,
    build_query_spec,
    filter_stage,
    limit_fields_stage,
    paginate_stage,
    project,
    query_params_to_dict,
    search_stage,
    sort_stage,
)
from app.models.category import Category
from app.models.product import Product
from app.models.user import User


# ---- pagination ----


def test_first_page_has_next_and_no_prev():
    spec = paginate_stage(QuerySpec(), {"limit": "10"}, total_count=23)
    assert spec.pagination.as_dict() == {
        "current_page": 1,
        "limit": 10,
        "number_of_pages": 3,
        "next": 2,
    }
    assert spec.skip == 0
    assert spec.limit == 10


def test_last_page_has_prev_and_no_next():
    spec = paginate_stage(QuerySpec(), {"limit": "10", "page": "3"}, total_count=23)
    assert spec.pagination.as_dict() == {
        "current_page": 3,
        "limit": 10,
        "number_of_pages": 3,
        "prev": 2,
    }
    assert spec.skip == 20


def test_invalid_page_and_limit_fall_back_to_defaults():
    spec = paginate_stage(QuerySpec(), {"page": "zero", "limit": "-4"}, total_count=7, default_limit=5)
    assert spec.pagination.current_page == 1
    assert spec.limit == 5
    assert spec.pagination.number_of_pages == 2


def test_out_of_range_page_and_limit_fall_back_to_defaults():
    huge = "99999999999999999999999"
    spec = paginate_stage(QuerySpec(), {"page": huge, "limit": huge}, total_count=7, default_limit=5)
    assert spec.pagination.current_page == 1
    assert spec.limit == 5
    assert spec.skip == 0


def test_page_whose_offset_overflows_restarts_at_first_page():
    spec = paginate_stage(QuerySpec(), {"page": str(2**62), "limit": "50"}, total_count=7)
    assert spec.pagination.current_page == 1
    assert spec.skip == 0


# ---- filtering ----


def test_text_equality_keeps_the_raw_value():
    spec = filter_stage(QuerySpec(), {"title": "Phone"}, Product)
    assert spec.filters == (Condition("title", "eq", "Phone"),)


def test_comparison_operators_become_range_conditions():
    spec = filter_stage(QuerySpec(), {"price[gte]": "100", "quantity[lt]": "5"}, Product)
    assert Condition("price", "gte", 100.0) in spec.filters
    assert Condition("quantity", "lt", 5) in spec.filters


def test_in_operator_accepts_comma_separated_values():
    a, b = uuid.uuid4(), uuid.uuid4()
    spec = filter_stage(QuerySpec(), {"brand_id[in]": f"{a},{b}"}, Product)
    assert spec.filters == (Condition("brand_id", "in", (a, b)),)


def test_repeated_equality_values_become_in():
    spec = filter_stage(QuerySpec(), {"title": ["Phone", "Laptop"]}, Product)
    assert spec.filters == (Condition("title", "in", ("Phone", "Laptop")),)


def test_reserved_parameters_are_not_filters():
    params = {"page": "2", "limit": "5", "sort": "price", "fields": "title", "keyword": "x"}
    assert filter_stage(QuerySpec(), params, Product).filters == ()


@pytest.mark.parametrize(
    "params",
    [
        {"nope": "1"},
        {"price[between]": "1"},
        {"price[gte]": "cheap"},
        {"price[lt]": "inf"},
        {"quantity[gt]": "99999999999999999999999"},
        {"colors": "red"},
    ],
)
def test_malformed_filters_are_rejected(params):
    with pytest.raises(BadRequestError):
        filter_stage(QuerySpec(), params, Product)


def test_hidden_fields_cannot_be_filtered():
    spec = QuerySpec(hidden_fields=frozenset({"password"}))
    with pytest.raises(BadRequestError):
        filter_stage(spec, {"password": "x"}, User)


# ---- sort / fields / search ----


def test_sort_defaults_to_newest_first():
    assert sort_stage(QuerySpec(), {}, Product).sort == (("created_at", True),)


def test_sort_keeps_left_to_right_priority():
    spec = sort_stage(QuerySpec(), {"sort": "price,-sold"}, Product)
    assert spec.sort == (("price", False), ("sold", True))


def test_sort_rejects_unknown_field():
    with pytest.raises(BadRequestError):
        sort_stage(QuerySpec(), {"sort": "popularity"}, Product)


def test_include_fields_always_keep_id():
    spec = limit_fields_stage(QuerySpec(), {"fields": "title,price"}, Product)
    row = {"id": "1", "title": "Phone", "price": 10, "description": "long"}
    assert project(row, spec) == {"id": "1", "title": "Phone", "price": 10}


def test_exclude_fields_and_hidden_fields():
    spec = QuerySpec(hidden_fields=frozenset({"password"}))
    spec = limit_fields_stage(spec, {"fields": "-phone"}, User)
    row = {"id": "1", "name": "A", "phone": "1", "password": "hash"}
    assert project(row, spec) == {"id": "1", "name": "A"}


def test_mixing_include_and_exclude_is_rejected():
    with pytest.raises(BadRequestError):
        limit_fields_stage(QuerySpec(), {"fields": "title,-price"}, Product)


def test_search_targets_depend_on_entity_type():
    assert search_stage(QuerySpec(), {"keyword": "x"}, "Product").search_fields == ("title", "description")
    assert search_stage(QuerySpec(), {"keyword": "x"}, "Category").search_fields == ("name",)
    assert search_stage(QuerySpec(), {}, "Product").keyword is None


# ---- composition ----


def test_stages_return_new_specs():
    original = QuerySpec()
    updated = sort_stage(original, {"sort": "name"}, Category)
    assert original.sort == ()
    assert updated is not original


def test_build_query_spec_keeps_base_filter_and_unfiltered_count():
    category_id = uuid.uuid4()
    spec = build_query_spec(
        {"name": "Phones", "limit": "2"},
        Category,
        total_count=5,
        base_filter={"id": category_id},
    )
    assert spec.base_filter == (Condition("id", "eq", category_id),)
    assert spec.filters == (Condition("name", "eq", "Phones"),)
    # The page count is computed from the count given, not the filtered one
    assert spec.pagination.number_of_pages == 3


def test_query_params_to_dict_collects_repeated_keys():
    items = [("color", "red"), ("color", "blue"), ("page", "2")]
    assert query_params_to_dict(items) == {"color": ["red", "blue"], "page": "2"}
