"""
Test client-side search, filter and sort.
"""
import copy

import pytest

from storefront.core.query import (
    PRICE_BUCKETS,
    QueryState,
    active_brands,
    brand_product_counts,
    derive_view,
    in_price_bucket,
    rate,
    related_products,
)
from storefront.core.rating import aggregate
from storefront.models.catalog import Brand, Product, RatingSummary, Review


def make_product(pid, name, brand="Dior", price=100.0, description="", audience="unisex"):
    return Product(
        id=pid,
        name=name,
        brand_name=brand,
        price=price,
        description=description,
        target_audience=audience
    )


@pytest.fixture
def catalog():
    return [
        make_product("p1", "Sauvage", "Dior", 120, "Fresh spicy", "male"),
        make_product("p2", "Aqua", "Dior", 45, "Marine notes", "unisex"),
        make_product("p3", "No 5", "Chanel", 210, "Floral aldehyde", "female"),
        make_product("p4", "Bleu", "Chanel", 50, "Woody aromatic", "male"),
        make_product("p5", "Éclat", "Lanvin", 99.99, "Fruity", "female"),
    ]


@pytest.fixture
def ratings():
    return {
        "p1": RatingSummary(average=4.5, count=2),
        "p2": RatingSummary(average=3.99, count=3),
        "p3": RatingSummary(average=4.0, count=1),
        "p4": RatingSummary(average=4.5, count=4),
    }


def names(products):
    return [p.name for p in products]


def test_empty_query_sorts_by_name(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState())

    assert names(view) == ["Aqua", "Bleu", "Éclat", "No 5", "Sauvage"]


def test_derive_view_is_pure(catalog, ratings):
    before_catalog = copy.deepcopy(catalog)
    before_ratings = copy.deepcopy(ratings)
    query = QueryState(search_text="a", sort="price-high")

    first = derive_view(catalog, ratings, query)
    second = derive_view(catalog, ratings, query)

    assert first == second
    assert first is not catalog
    assert catalog == before_catalog
    assert ratings == before_ratings


def test_search_matches_name_brand_or_description(catalog, ratings):
    assert names(derive_view(catalog, ratings, QueryState(search_text="CHANEL"))) == ["Bleu", "No 5"]
    assert names(derive_view(catalog, ratings, QueryState(search_text="marine"))) == ["Aqua"]
    assert names(derive_view(catalog, ratings, QueryState(search_text="sauv"))) == ["Sauvage"]
    assert derive_view(catalog, ratings, QueryState(search_text="zzz")) == []


def test_brand_filter_is_or_within_dimension(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(brands={"Chanel", "Lanvin"}))

    assert names(view) == ["Bleu", "Éclat", "No 5"]


def test_empty_brand_set_is_no_constraint(catalog, ratings):
    assert len(derive_view(catalog, ratings, QueryState(brands=frozenset()))) == len(catalog)


def test_price_bucket_boundaries():
    assert in_price_bucket(50.0, "50-100")
    assert not in_price_bucket(50.0, "0-50")
    assert in_price_bucket(200.0, "200+")
    assert not in_price_bucket(200.0, "100-200")
    assert in_price_bucket(0.0, "0-50")
    assert set(PRICE_BUCKETS) == {"0-50", "50-100", "100-200", "200+"}


def test_price_filter_any_selected_bucket(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(price_buckets={"0-50", "200+"}))

    assert names(view) == ["Aqua", "No 5"]


def test_unknown_price_bucket_admits_everything(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(price_buckets={"cheap"}))

    assert len(view) == len(catalog)


def test_min_rating_uses_unrounded_average(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(min_rating=4))

    assert "Aqua" not in names(view)
    assert names(view) == ["Bleu", "No 5", "Sauvage"]


def test_min_rating_zero_is_no_constraint(catalog, ratings):
    assert len(derive_view(catalog, ratings, QueryState(min_rating=0))) == len(catalog)


def test_products_without_rating_fail_threshold(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(min_rating=1))

    assert "Éclat" not in names(view)


def test_gender_filter(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(genders={"female"}))

    assert names(view) == ["Éclat", "No 5"]


def test_dimensions_combine_with_and(catalog, ratings):
    query = QueryState(brands={"Chanel", "Dior"}, genders={"male"}, min_rating=4.5, price_buckets={"100-200"})

    assert names(derive_view(catalog, ratings, query)) == ["Sauvage"]


def test_sort_by_price(catalog, ratings):
    low = derive_view(catalog, ratings, QueryState(sort="price-low"))
    high = derive_view(catalog, ratings, QueryState(sort="price-high"))

    assert [p.price for p in low] == [45, 50, 99.99, 120, 210]
    assert [p.price for p in high] == [210, 120, 99.99, 50, 45]


def test_sort_by_rating_is_stable(catalog, ratings):
    view = derive_view(catalog, ratings, QueryState(sort="rating"))

    # Sauvage and Bleu tie at 4.5 and keep their input order
    assert names(view) == ["Sauvage", "Bleu", "No 5", "Aqua", "Éclat"]


def test_sort_by_rating_stable_for_reversed_input(catalog, ratings):
    view = derive_view(list(reversed(catalog)), ratings, QueryState(sort="rating"))

    assert names(view)[:2] == ["Bleu", "Sauvage"]


def test_unknown_sort_falls_back_to_name(catalog, ratings):
    assert derive_view(catalog, ratings, QueryState(sort="popularity")) == derive_view(catalog, ratings, QueryState())


def test_end_to_end_scenario():
    aqua_reviews = [Review(id="r1", rating=5), Review(id="r2", rating=3)]
    products = [
        Product(id="aqua", name="Aqua", brand_name="Dior", price=45, reviews=tuple(aqua_reviews)),
        Product(id="noir", name="Noir", brand_name="Chanel", price=120),
    ]
    ratings = {p.id: aggregate(p.reviews) for p in products}

    view = derive_view(products, ratings, QueryState(price_buckets=["0-50"], sort="name"))

    assert names(view) == ["Aqua"]
    assert ratings["aqua"] == RatingSummary(average=4, count=2)


def test_query_state_toggle():
    query = QueryState().toggle("brands", "Dior").toggle("brands", "Chanel")
    assert query.brands == {"Dior", "Chanel"}

    query = query.toggle("brands", "Dior")
    assert query.brands == {"Chanel"}

    with pytest.raises(ValueError):
        query.toggle("min_rating", 4)


def test_query_state_rating_is_single_select():
    query = QueryState().with_min_rating(3)
    assert query.min_rating == 3

    query = query.with_min_rating(4)
    assert query.min_rating == 4

    assert query.with_min_rating(4).min_rating is None


def test_query_state_cleared_keeps_search_and_sort():
    query = QueryState(search_text="rose", brands={"Dior"}, min_rating=4, sort="rating")

    cleared = query.cleared()

    assert cleared.is_empty is False
    assert cleared.search_text == "rose"
    assert cleared.sort == "rating"
    assert not cleared.brands
    assert cleared.min_rating is None
    assert QueryState().is_empty


def test_query_state_accepts_lists():
    query = QueryState(genders=["male", "male"])
    assert query.genders == frozenset({"male"})


def test_rate_defaults_missing_ratings(catalog, ratings):
    rated = rate(catalog, ratings)

    assert rated[0].rating == ratings["p1"]
    assert rated[4].rating == RatingSummary(average=0.0, count=0)


def test_active_brands_drop_soft_deleted():
    brands = [Brand(id="1", brand_name="Dior"), Brand(id="2", brand_name="Old", is_deleted=True)]

    assert [b.brand_name for b in active_brands(brands)] == ["Dior"]


def test_brand_product_counts(catalog):
    assert brand_product_counts(catalog) == {"Dior": 2, "Chanel": 2, "Lanvin": 1}


def test_related_products(catalog):
    related = related_products(catalog, catalog[0])

    assert names(related) == ["Aqua"]
    assert related_products(catalog, catalog[0], limit=0) == []
