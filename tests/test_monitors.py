import pytest
from conftest import make_item
from pydantic import ValidationError

from worldwatch.analysis.monitors import Monitor, match_monitors
from worldwatch.analysis.text import contained_keywords


def test_keywords_are_cleaned():
    monitor = Monitor(id="m1", name="Chips", keywords=(" TSMC ", "tsmc", "", "Nvidia"))
    assert monitor.keywords == ("tsmc", "nvidia")


def test_monitor_needs_a_keyword():
    with pytest.raises(ValidationError):
        Monitor(id="m1", name="Empty", keywords=("  ",))
    with pytest.raises(ValidationError):
        Monitor(id="m2", name="None", keywords=())


def test_contained_keywords_is_case_insensitive_and_ordered():
    title = "Aid trucks enter Rafah and gaza"
    assert contained_keywords(["Gaza", "rafah", "GAZA"], title) == ["gaza", "rafah"]
    assert contained_keywords(["gaza"], "Fed holds rates") == []


def test_matches_newest_first():
    monitor = Monitor(id="chips", name="Chips", keywords=("tsmc", "nvidia"))
    items = [
        make_item("TSMC opens Arizona fab", minutes_ago=90),
        make_item("Fed holds interest rates steady", minutes_ago=5),
        make_item("Nvidia and TSMC sign packaging deal", minutes_ago=20),
    ]

    results = match_monitors([monitor], items)

    matches = results["chips"]
    assert [m.item.title for m in matches] == [
        "Nvidia and TSMC sign packaging deal",
        "TSMC opens Arizona fab",
    ]
    assert matches[0].keywords == ("tsmc", "nvidia")
    assert all(m.monitor_id == "chips" for m in matches)


def test_every_monitor_gets_an_entry():
    monitors = [
        Monitor(id="quakes", name="Quakes", keywords=("earthquake",)),
        Monitor(id="fed", name="Fed", keywords=("fed",)),
    ]
    results = match_monitors(monitors, [make_item("Fed holds interest rates steady")])

    assert results["quakes"] == []
    assert len(results["fed"]) == 1
    assert match_monitors([], [make_item("anything")]) == {}
