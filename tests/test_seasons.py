"""Tests for season-keyed merging."""

from __future__ import annotations

from rankings.entities.core import ScrapedRow
from rankings.pipeline.seasons import (
    CIRCUIT_TEAM_MERGE,
    HIGH_SCHOOL_MERGE,
    PLAYER_MERGE,
    SeasonMerger,
    merge_season_maps,
    union_sources,
)

PAGE_A = "https://example.com/hs-rankings-2/"
PAGE_B = "https://example.com/2024-25-high-school-rankings/"


def test_rows_from_two_seasons_fold_into_one_record() -> None:
    merger = SeasonMerger(HIGH_SCHOOL_MERGE)
    merger.add_page("2023-24", PAGE_A, [ScrapedRow(name="Lincoln", rank=3, record="25-3", image_url="https://cdn/l.png")])
    merger.add_page("2024-25", PAGE_B, [ScrapedRow(name="Lincoln", rank=1), ScrapedRow(name="Central", rank=2)])

    lincoln, central = merger.records()

    assert lincoln.key == "Lincoln"
    assert lincoln.maps["ranks"] == {"2023-24": 3, "2024-25": 1}
    assert lincoln.maps["records"] == {"2023-24": "25-3"}
    assert lincoln.maps["key_wins"] == {}
    assert lincoln.value("image_url") == "https://cdn/l.png"
    assert lincoln.source_urls == [PAGE_A, PAGE_B]
    assert central.source_urls == [PAGE_B]
    assert len(merger) == 2


def test_missing_values_never_clear_a_season_entry() -> None:
    merger = SeasonMerger(HIGH_SCHOOL_MERGE)
    merger.add_page("2024", PAGE_A, [ScrapedRow(name="Lincoln", rank=5, record="10-1")])
    merger.add_page("2024", PAGE_B, [ScrapedRow(name="Lincoln", rank=None, record="  ")])

    (record,) = merger.records()

    assert record.maps["ranks"] == {"2024": 5}
    assert record.maps["records"] == {"2024": "10-1"}


def test_merging_the_same_input_twice_is_idempotent() -> None:
    rows = [ScrapedRow(name="Jane Doe", rank=4, position="G")]
    merger = SeasonMerger(PLAYER_MERGE)

    merger.add_page("2025", PAGE_A, rows)
    first = merger.records()[0].to_dict()
    merger.add_page("2025", PAGE_A, rows)

    assert merger.records()[0].to_dict() == first


def test_last_value_wins_for_repeated_season_key() -> None:
    merger = SeasonMerger(PLAYER_MERGE)
    merger.add_page("2025", PAGE_A, [ScrapedRow(name="Jane Doe", rank=4), ScrapedRow(name="Jane Doe", rank=6)])

    assert merger.records()[0].maps["ranks"] == {"2025": 6}


def test_player_scalars_track_latest_observation() -> None:
    merger = SeasonMerger(PLAYER_MERGE)
    merger.add_page(
        "2025",
        PAGE_A,
        [ScrapedRow(name="Jane Doe", rank=4, position="G", rating=90, committed_college="Stanford")],
        page_scalars={"grade_year": 2025},
    )
    merger.add_page("2026", PAGE_B, [ScrapedRow(name="Jane Doe", rank=2, position="PG")], page_scalars={"grade_year": None})

    (record,) = merger.records()

    assert record.value("position") == "PG"
    assert record.value("rating") == 90
    assert record.value("committed_college") == "Stanford"
    assert record.value("grade_year") == 2025
    assert record.maps["positions"] == {"2025": "G", "2026": "PG"}
    assert record.maps["ratings"] == {"2025": 90}
    assert record.source_url == PAGE_B


def test_team_circuit_keeps_first_seen_label() -> None:
    merger = SeasonMerger(CIRCUIT_TEAM_MERGE)
    merger.add_page("2024", PAGE_A, [ScrapedRow(name="CyFair Elite", circuit="EYBL", placement="Champion")])
    merger.add_page("2025", PAGE_B, [ScrapedRow(name="CyFair Elite", circuit="GUAA")])

    (record,) = merger.records()

    assert record.value("circuit") == "EYBL"
    assert record.maps["placements"] == {"2024": "Champion"}


def test_merge_season_maps_is_non_destructive() -> None:
    assert merge_season_maps({"2024": 5}, {"2025": 9}) == {"2024": 5, "2025": 9}
    assert merge_season_maps({"2024": 5}, {"2024": None}) == {"2024": 5}
    assert merge_season_maps({"2024": 5}, {"2024": 7}) == {"2024": 7}
    assert merge_season_maps(None, {"2024": ""}) == {}


def test_union_sources_preserves_order_without_duplicates() -> None:
    assert union_sources(["a", "b"], ["b", "c", ""]) == ["a", "b", "c"]
    assert union_sources(None, None) == []
