__all__ = ["main", "Config", "JournalEntry", "Link", "IssueRef", "ActivityReport",
           "parse_entries", "format_entry", "normalize_duration", "EntryStore", "ActivityAggregator"]
from .models import Config, JournalEntry, Link, IssueRef, ActivityReport
from .duration import normalize_duration
from .entry_format import parse_entries, format_entry
from .entry_store import EntryStore
from .activity_report import ActivityAggregator
from .cli import main
__version__ = "0.1.0"
