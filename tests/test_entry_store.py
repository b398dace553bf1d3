"""
Tests for the per-date journal file storage
"""

import re

import pytest

from devjournal.entry_format import ENTRY_SEPARATOR
from devjournal.entry_store import EntryStore, JournalStoreError, is_date_name
from devjournal.models import IssueRef, JournalEntry, Link

DATE = "2024-03-14"


@pytest.fixture
def store(tmp_path):
    return EntryStore(tmp_path / "journal", jira_base_url="https://jira.example.com")


def make_entry(project="Mandate", duration="1h", **kwargs) -> JournalEntry:
    kwargs.setdefault("description", f"Work on {project}")
    return JournalEntry(project=project, duration=duration, **kwargs)


def test_directory_created_on_first_use(tmp_path):
    store = EntryStore(tmp_path / "a" / "b")
    assert store.list_dates() == []
    assert (tmp_path / "a" / "b").is_dir()


def test_load_missing_date_is_empty(store):
    assert store.load(DATE) == ""
    assert store.get_entries(DATE) == []


def test_save_creates_then_appends(store):
    store.save(DATE, make_entry("A"))
    first_content = store.load(DATE)
    assert first_content.startswith("## ")
    assert ENTRY_SEPARATOR not in first_content

    store.save(DATE, make_entry("B"))
    content = store.load(DATE)
    assert content.startswith(first_content + ENTRY_SEPARATOR)
    assert [e.project for e in store.get_entries(DATE)] == ["A", "B"]


def test_save_stamps_current_time(store):
    saved = store.save(DATE, make_entry(timestamp="ignored"))
    assert re.fullmatch(r"\d{2}/\d{2}/\d{4} \d{2}:\d{2}", saved.timestamp)
    assert store.get_entries(DATE)[0].timestamp == saved.timestamp


def test_saved_entry_fields_survive(store):
    entry = make_entry(
        tags=["bug"],
        links=[Link(text="Docs", url="https://docs.example.com")],
        issue_refs=[IssueRef(key="PROJ-9")],
        results="Done\nand tested",
    )
    saved = store.save(DATE, entry)
    assert store.get_entries(DATE) == [saved]
    assert "[PROJ-9](https://jira.example.com/browse/PROJ-9)" in store.load(DATE)


def test_list_dates_filters_and_sorts(store):
    journal_dir = store.journal_dir
    journal_dir.mkdir(parents=True)
    for name in ["2024-01-01.md", "2024-03-02.md", "2023-12-31.md", "notes.txt", "2024-1-1.md", "2024-01-05.txt"]:
        (journal_dir / name).write_text("", encoding="utf-8")

    assert store.list_dates() == ["2024-03-02", "2024-01-01", "2023-12-31"]


def test_update_preserves_timestamp(store):
    original = store.save(DATE, make_entry("A"))
    store.save(DATE, make_entry("B"))

    replacement = make_entry("C", duration="30min", timestamp="99/99/9999 00:00", tags=["x"])
    assert store.update(DATE, 0, replacement) is True

    entries = store.get_entries(DATE)
    assert [e.project for e in entries] == ["C", "B"]
    assert entries[0].timestamp == original.timestamp
    assert entries[0].duration == "30min"
    assert entries[0].tags == ["x"]


def test_update_out_of_range_leaves_file_untouched(store):
    store.save(DATE, make_entry("A"))
    before = (store.journal_dir / f"{DATE}.md").read_bytes()

    assert store.update(DATE, 1, make_entry("Z")) is False
    assert store.update(DATE, -1, make_entry("Z")) is False
    assert (store.journal_dir / f"{DATE}.md").read_bytes() == before


def test_update_missing_file(store):
    assert store.update(DATE, 0, make_entry()) is False
    assert not (store.journal_dir / f"{DATE}.md").exists()


def test_delete_down_to_empty_file(store):
    store.save(DATE, make_entry("A"))
    store.save(DATE, make_entry("B"))

    assert store.delete(DATE, 0) is True
    assert [e.project for e in store.get_entries(DATE)] == ["B"]

    assert store.delete(DATE, 0) is True
    path = store.journal_dir / f"{DATE}.md"
    assert path.exists()
    assert path.read_text(encoding="utf-8") == ""

    assert store.delete(DATE, 0) is False
    assert DATE in store.list_dates()


def test_delete_out_of_range(store):
    store.save(DATE, make_entry("A"))
    assert store.delete(DATE, 5) is False
    assert len(store.get_entries(DATE)) == 1


def test_invalid_date_is_rejected(store):
    with pytest.raises(JournalStoreError, match="Invalid journal date"):
        store.load("../etc/pwd")
    with pytest.raises(JournalStoreError):
        store.save("2024-1-1", make_entry())


def test_write_failure_is_raised(store, monkeypatch):
    def fail(*args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr("pathlib.Path.write_text", fail)
    with pytest.raises(JournalStoreError, match="Cannot write"):
        store.save(DATE, make_entry())


def test_file_that_is_not_utf8_is_reported(store):
    path = store.date_file(DATE)
    path.write_bytes("## 09:00\n**Projet**: café\n".encode("latin-1"))

    with pytest.raises(JournalStoreError, match="Cannot read") as exc:
        store.load(DATE)
    assert isinstance(exc.value.__cause__, UnicodeDecodeError)

    with pytest.raises(JournalStoreError, match="Cannot read"):
        store.get_entries(DATE)
    with pytest.raises(JournalStoreError, match="Cannot read"):
        store.delete(DATE, 0)


def test_delete_keeps_label_shaped_text_of_other_entries(store):
    store.save(DATE, make_entry("A"))
    store.save(DATE, make_entry("B", description="Fixed\n**Note**: retest\n## tomorrow"))

    assert store.delete(DATE, 0) is True

    entries = store.get_entries(DATE)
    assert len(entries) == 1
    assert entries[0].project == "B"
    assert entries[0].description == "Fixed\n**Note**: retest\n## tomorrow"


def test_is_date_name():
    assert is_date_name("2024-01-01")
    assert not is_date_name("2024-1-1")
    assert not is_date_name("notes")
