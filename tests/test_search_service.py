import itertools

import pytest
from sqlalchemy.exc import OperationalError

from services.loads_service import LoadsService
from services.search_service import (
    LoadFilter, LoadQuery, QueryError, SearchService,
)


ALL_FILTERS = {
    "caliber": ".308 Winchester",
    "bullet_manufacturer": "Lapua",
    "bullet_type": "Scenar",
    "bullet_weight_grains": "155",
    "powder_manufacturer": "Vihtavuori",
    "powder_type": "N140",
    "charge_weight_grains": "44.5",
    "velocity_ms": "820",
    "total_cartridge_length_mm": "71,1",
    "source": "imported",
    "my_collection": "true",
    "bullet_weight_min": "150",
    "bullet_weight_max": "175",
    "search": "lapua",
}


@pytest.fixture
def seeded(add_load):
    """Five .308 loads, two 6.5x55 imports and one 9mm user load."""
    for vel, weight, src in [(820, 155, "imported"), (790, 175, "imported"),
                             (805, 155, "user"), (780, 168, "Ladeboken"),
                             (835, 150, "imported")]:
        add_load(caliber=".308 Winchester", velocity_ms=vel,
                 bullet_weight_grains=weight, source=src,
                 bullet_manufacturer="Lapua" if weight == 155 else "Sierra")
    add_load(caliber="6.5x55", velocity_ms=760, bullet_weight_grains=139,
             source="imported", notes="Old Norma brass")
    collected = add_load(caliber="6.5x55", velocity_ms=750, bullet_weight_grains=144,
                         source="imported")
    add_load(caliber="9mm", velocity_ms=360, bullet_weight_grains=124)
    return {"collected": collected}


# ── Parsing ────────────────────────────────────────────────────────────

def test_from_args_defaults():
    flt = LoadFilter.from_args({})
    assert flt.exact == {}
    assert flt.predicates() == []
    assert (flt.sort_field, flt.sort_order) == ("created_at", "desc")
    assert (flt.page, flt.limit, flt.offset) == (1, 50, 0)


@pytest.mark.parametrize("page, limit, expected", [
    ("3", "20", (3, 20, 40)),
    ("abc", "x", (1, 50, 0)),
    ("0", "-5", (1, 50, 0)),
    ("2.5", None, (1, 50, 0)),
    (2, 10, (2, 10, 10)),
    ("99999999999999999999", None, (1, 50, 0)),
    ("2", str(2**64), (2, 50, 50)),
    ("1e400", "1e400", (1, 50, 0)),
])
def test_from_args_paging(page, limit, expected):
    flt = LoadFilter.from_args({"page": page, "limit": limit})
    assert (flt.page, flt.limit, flt.offset) == expected


@pytest.mark.parametrize("field", ["notes", "id; DROP TABLE loads", "", None, "search_text"])
def test_unknown_sort_field_falls_back_to_created_at(field):
    assert LoadFilter.from_args({"sort_field": field}).sort_field == "created_at"


@pytest.mark.parametrize("order, expected", [
    ("asc", "asc"), ("ASC", "asc"), ("desc", "desc"), ("sideways", "desc"), (None, "desc"),
])
def test_sort_order(order, expected):
    assert LoadFilter.from_args({"sort_order": order}).sort_order == expected


def test_numeric_exact_filters_are_floats_and_junk_is_ignored():
    flt = LoadFilter.from_args({"bullet_weight_grains": "155", "velocity_ms": "fast",
                                "caliber": "  ", "unknown_key": "x"})
    assert flt.exact == {"bullet_weight_grains": 155.0}


# ── Rows / count parity ────────────────────────────────────────────────

def test_rows_and_count_share_the_same_predicates():
    query = LoadQuery(LoadFilter.from_args({**ALL_FILTERS, "sort_field": "velocity_ms",
                                            "page": 3, "limit": 7}))
    rows, count = query.rows(), query.count()

    assert len(query.predicates) == 14
    assert rows.whereclause is not None
    assert rows.whereclause.compare(count.whereclause)
    assert str(rows.whereclause) == str(count.whereclause)
    assert rows.whereclause.compile().params == count.whereclause.compile().params

    count_sql = str(count)
    assert "ORDER BY" not in count_sql
    assert "LIMIT" not in count_sql
    assert "OFFSET" not in count_sql
    rows_sql = str(rows)
    assert "ORDER BY loads.velocity_ms DESC, loads.id DESC" in rows_sql
    assert "LIMIT" in rows_sql and "OFFSET" in rows_sql


def test_no_filters_means_no_where_clause():
    query = LoadQuery(LoadFilter.from_args({}))
    assert query.rows().whereclause is None
    assert query.count().whereclause is None


FILTER_COMBOS = [
    {},
    {"caliber": ".308 Winchester"},
    {"caliber": ".308 Winchester", "bullet_weight_grains": "155"},
    {"bullet_weight_min": "150", "bullet_weight_max": "170"},
    {"my_collection": "1"},
    {"search": "LAPUA"},
    {"search": "norma"},
    {"source": "imported", "caliber": "6.5x55"},
    {"velocity_ms": "805"},
    {"caliber": "nope"},
]


@pytest.mark.parametrize("filters", FILTER_COMBOS)
def test_count_matches_unpaged_result(session, seeded, filters):
    page = SearchService.search(session, {**filters, "limit": 1000})
    assert page.total == len(page.records)


@pytest.mark.parametrize("filters, limit", list(itertools.product(FILTER_COMBOS[:6], [1, 2, 3, 50])))
def test_pages_concatenate_to_full_result(session, seeded, filters, limit):
    full = SearchService.search(session, {**filters, "sort_field": "caliber",
                                          "sort_order": "asc", "limit": 1000})
    collected = []
    first = SearchService.search(session, {**filters, "sort_field": "caliber",
                                           "sort_order": "asc", "limit": limit})
    for page_no in range(1, first.total_pages + 1):
        page = SearchService.search(session, {**filters, "sort_field": "caliber",
                                              "sort_order": "asc", "page": page_no,
                                              "limit": limit})
        assert len(page.records) <= limit
        collected.extend(r.id for r in page.records)

    assert collected == [r.id for r in full.records]
    assert len(set(collected)) == len(collected)


# ── Behaviour ──────────────────────────────────────────────────────────

def test_caliber_sorted_by_velocity_ascending(session, seeded):
    page = SearchService.search(session, {
        "caliber": ".308 Winchester", "sort_field": "velocity_ms",
        "sort_order": "asc", "page": 1, "limit": 2,
    })
    assert [r.velocity_ms for r in page.records] == [780, 790]
    assert page.to_dict()["pagination"] == {"page": 1, "limit": 2, "total": 5, "totalPages": 3}


def test_default_ordering_is_newest_first(session, seeded):
    page = SearchService.search(session, {"sort_field": "bogus"})
    ids = [r.id for r in page.records]
    assert ids == sorted(ids, reverse=True)


def test_range_filter_is_inclusive(session, seeded):
    page = SearchService.search(session, {"bullet_weight_min": 150, "bullet_weight_max": 155})
    assert sorted(r.bullet_weight_grains for r in page.records) == [150, 155, 155]


def test_my_collection_includes_user_and_flagged_rows(session, seeded):
    LoadsService.set_collection(session, seeded["collected"], True)
    session.commit()

    page = SearchService.search(session, {"my_collection": "true"})
    assert {r.source for r in page.records} == {"user", "imported"}
    assert page.total == 3


def test_search_is_case_insensitive_substring(session, seeded):
    assert SearchService.search(session, {"search": "NORMA BR"}).total == 1
    assert SearchService.search(session, {"search": "sierra"}).total == 3


def test_search_escapes_like_wildcards(session, seeded):
    assert SearchService.search(session, {"search": "%"}).total == 0
    assert SearchService.search(session, {"search": "_"}).total == 0


def test_empty_result_has_zero_pages(session):
    page = SearchService.search(session, {"caliber": "none"})
    assert page.records == []
    assert page.to_dict()["pagination"]["totalPages"] == 0


def test_storage_failure_becomes_query_error(session, monkeypatch):
    def boom(*_a, **_kw):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "scalars", boom)
    with pytest.raises(QueryError, match="query failed"):
        SearchService.search(session, {})


def test_out_of_range_page_falls_back_to_first_page(session, seeded):
    page = SearchService.search(session, {"page": "99999999999999999999"})
    assert page.page == 1
    assert len(page.records) == page.total
