"""
Activity report generation over a range of journal dates
"""

import logging
import threading
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from .duration import normalize_duration
from .entry_format import parse_entries
from .entry_store import EntryStore
from .models import ActivityReport, JournalEntry, MonthlyDetail, ProjectSummary, TagSummary

logger = logging.getLogger(__name__)


class ReportCancelledError(Exception):
    """Raised when report generation is cancelled before all dates are loaded"""
    pass


class ActivityAggregator:
    """Builds activity reports from the entries of an EntryStore"""

    def __init__(self, store: EntryStore):
        self.store = store

    def collect_entries(self, start_date: str, end_date: str,
                        cancel_event: Optional[threading.Event] = None) -> List[JournalEntry]:
        """Load every entry between two YYYY-MM-DD dates (inclusive).

        Timestamps are prefixed with their date so that entries only carrying
        a time stay distinguishable across files. A date that cannot be
        loaded is skipped.
        """
        dates = [d for d in self.store.list_dates() if start_date <= d <= end_date]
        logger.debug(f"[REPORT] {len(dates)} journal dates between {start_date} and {end_date}")

        all_entries = []
        for date in dates:
            if cancel_event is not None and cancel_event.is_set():
                raise ReportCancelledError(f"Report cancelled before loading {date}")

            try:
                content = self.store.load(date)
                entries = parse_entries(content)
            except Exception as e:
                logger.error(f"Skipping {date} in report: {e}")
                continue

            all_entries.extend(replace(entry, timestamp=f"{date} {entry.timestamp}") for entry in entries)

        return all_entries

    def generate_report(self, start_date: str, end_date: str,
                        cancel_event: Optional[threading.Event] = None) -> ActivityReport:
        """Generate the activity report for a closed date interval"""
        entries = self.collect_entries(start_date, end_date, cancel_event)
        report = aggregate_entries(entries, start_date, end_date)
        logger.info(f"[REPORT] {start_date} to {end_date}: {report.total_entries} entries, {report.total_hours:.2f}h")
        return report


def aggregate_entries(entries: List[JournalEntry], start_date: str, end_date: str) -> ActivityReport:
    """Fold date-prefixed entries into an ActivityReport"""
    total_hours = 0.0
    projects: Dict[str, Tuple[int, float]] = {}
    tag_counts: Dict[str, int] = defaultdict(int)
    activity_types: Dict[str, int] = defaultdict(int)
    daily_breakdown: Dict[str, float] = defaultdict(float)
    monthly_breakdown: Dict[str, float] = defaultdict(float)
    monthly: Dict[str, MonthlyDetail] = {}

    for entry in entries:
        hours = normalize_duration(entry.duration)
        total_hours += hours

        count, project_hours = projects.get(entry.project, (0, 0.0))
        projects[entry.project] = (count + 1, project_hours + hours)

        for tag in entry.tags:
            tag_counts[tag] += 1

        activity_types[entry.entry_type] += 1

        day = entry.timestamp.split(' ', 1)[0]
        month = day[:7]
        daily_breakdown[day] += hours
        monthly_breakdown[month] += hours

        detail = monthly.setdefault(month, MonthlyDetail(month=month))
        if entry.project not in detail.projects:
            detail.projects.append(entry.project)
        detail.project_hours[entry.project] = detail.project_hours.get(entry.project, 0.0) + hours
        for tag in entry.tags:
            if tag not in detail.tags:
                detail.tags.append(tag)
            detail.tag_hours[tag] = detail.tag_hours.get(tag, 0.0) + hours

    projects_summary = [
        ProjectSummary(name=name, entries=count, hours=hours)
        for name, (count, hours) in projects.items()
    ]
    projects_summary.sort(key=lambda p: p.hours, reverse=True)

    tags_summary = [TagSummary(name=name, count=count) for name, count in tag_counts.items()]
    tags_summary.sort(key=lambda t: t.count, reverse=True)

    return ActivityReport(
        period_start=start_date,
        period_end=end_date,
        total_entries=len(entries),
        total_hours=total_hours,
        projects_summary=projects_summary,
        tags_summary=tags_summary,
        activity_types=dict(activity_types),
        daily_breakdown=dict(daily_breakdown),
        monthly_breakdown=dict(monthly_breakdown),
        # Rendered chronologically downstream
        monthly_details=sorted(monthly.values(), key=lambda d: d.month),
    )
