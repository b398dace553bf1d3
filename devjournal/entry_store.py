"""
Per-date journal file storage
"""

import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Union

from .entry_format import (
    DEFAULT_JIRA_BASE_URL, ENTRY_SEPARATOR, format_entries, format_entry, parse_entries
)
from .models import JournalEntry

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "%d/%m/%Y %H:%M"


class JournalStoreError(Exception):
    """Raised when a journal file cannot be read or written"""
    pass


def is_date_name(name: str) -> bool:
    """True for names shaped like YYYY-MM-DD (10 characters, two dashes)"""
    return len(name) == 10 and name.count('-') == 2


class EntryStore:
    """Stores journal entries as one Markdown file per date.

    Entries have no identifier of their own: an entry is addressed by its
    position in the current parse of its date file, so indexes shift after
    every update or delete. All mutations rewrite the whole file.
    """

    def __init__(self, journal_dir: Union[str, Path],
                 jira_base_url: str = DEFAULT_JIRA_BASE_URL,
                 timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT):
        self.journal_dir = Path(journal_dir).expanduser()
        self.jira_base_url = jira_base_url or DEFAULT_JIRA_BASE_URL
        self.timestamp_format = timestamp_format

    def _ensure_dir(self) -> Path:
        try:
            self.journal_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise JournalStoreError(f"Cannot create journal directory {self.journal_dir}: {e}") from e
        return self.journal_dir

    def date_file(self, date: str) -> Path:
        """Path of the file holding the entries of ``date``"""
        if not is_date_name(date) or '/' in date or '\\' in date:
            raise JournalStoreError(f"Invalid journal date '{date}'. Use YYYY-MM-DD")
        return self._ensure_dir() / f"{date}.md"

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise JournalStoreError(f"Cannot read {path}: {e}") from e

    def _write(self, path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise JournalStoreError(f"Cannot write {path}: {e}") from e

    def save(self, date: str, entry: JournalEntry) -> JournalEntry:
        """Append an entry to the file of ``date``, stamped with the current local time"""
        path = self.date_file(date)
        stamped = replace(entry, timestamp=datetime.now().strftime(self.timestamp_format))
        block = format_entry(stamped, self.jira_base_url)

        if path.exists():
            content = self._read(path) + ENTRY_SEPARATOR + block
        else:
            content = block

        self._write(path, content)
        logger.info(f"Saved entry for {date} ({stamped.project or 'no project'})")
        return stamped

    def load(self, date: str) -> str:
        """Raw content of the file of ``date``, empty when there is none"""
        path = self.date_file(date)
        if not path.exists():
            return ""
        return self._read(path)

    def get_entries(self, date: str) -> List[JournalEntry]:
        return parse_entries(self.load(date))

    def list_dates(self) -> List[str]:
        """Dates that have a journal file, newest first"""
        journal_dir = self._ensure_dir()
        try:
            paths = list(journal_dir.iterdir())
        except OSError as e:
            raise JournalStoreError(f"Cannot list journal directory {journal_dir}: {e}") from e

        dates = [
            path.stem for path in paths
            if path.suffix == '.md' and path.is_file() and is_date_name(path.stem)
        ]
        return sorted(dates, reverse=True)

    def _rewrite(self, path: Path, entries: List[JournalEntry]) -> None:
        self._write(path, format_entries(entries, self.jira_base_url))

    def update(self, date: str, index: int, new_entry: JournalEntry) -> bool:
        """Replace the entry at ``index``, keeping its original timestamp.

        Returns False, leaving the file untouched, when there is no such entry.
        """
        path = self.date_file(date)
        if not path.exists():
            return False

        entries = parse_entries(self._read(path))
        if not 0 <= index < len(entries):
            logger.warning(f"No entry #{index} in {date} ({len(entries)} entries)")
            return False

        entries[index] = replace(new_entry, timestamp=entries[index].timestamp)
        self._rewrite(path, entries)
        logger.info(f"Updated entry #{index} of {date}")
        return True

    def delete(self, date: str, index: int) -> bool:
        """Remove the entry at ``index``; the file is kept even when it ends up empty"""
        path = self.date_file(date)
        if not path.exists():
            return False

        entries = parse_entries(self._read(path))
        if not 0 <= index < len(entries):
            logger.warning(f"No entry #{index} in {date} ({len(entries)} entries)")
            return False

        del entries[index]
        self._rewrite(path, entries)
        logger.info(f"Deleted entry #{index} of {date}, {len(entries)} left")
        return True
