"""Tests for the JSON history store."""
from pushdrop.services.history import HistoryStore


def test_append_keeps_most_recent_first(tmp_path):
    store = HistoryStore(tmp_path / "history.json", max_entries=10)
    store.append("a.png", "https://x/a.png")
    store.append("b.png", "https://x/b.png")

    assert [e.name for e in store.all()] == ["b.png", "a.png"]


def test_cap_trims_oldest(tmp_path):
    store = HistoryStore(tmp_path / "history.json", max_entries=2)
    for name in ("a", "b", "c"):
        store.append(name, f"https://x/{name}")

    assert [e.name for e in store.all()] == ["c", "b"]


def test_cap_provider_is_reread(tmp_path):
    cap = {"value": 5}
    store = HistoryStore(tmp_path / "history.json", max_entries=lambda: cap["value"])
    for name in ("a", "b", "c"):
        store.append(name, f"https://x/{name}")
    cap["value"] = 1
    store.append("d", "https://x/d")

    assert [e.name for e in store.all()] == ["d"]


def test_persists_between_instances(tmp_path):
    path = tmp_path / "nested" / "history.json"
    HistoryStore(path).append("a.png", "https://x/a.png")

    reloaded = HistoryStore(path)
    entries = reloaded.all()
    assert len(entries) == 1
    assert entries[0].url == "https://x/a.png"


def test_corrupt_file_starts_fresh(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    store = HistoryStore(path)
    assert store.all() == []
