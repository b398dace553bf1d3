"""
Main journal manager coordinating storage, reports and Jira
"""

import json
import logging
import threading
import time
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

import schedule

from .activity_report import ActivityAggregator
from .config_manager import ConfigurationError, load_config, setup_logging
from .entry_store import EntryStore
from .jira_client import IssueCatalog, JiraClient, JiraError
from .models import ActivityReport, Config, JiraTicket, JournalEntry, TicketChoice

logger = logging.getLogger(__name__)


def previous_week_range(today: date) -> Tuple[str, str]:
    """Monday and Sunday of the week before ``today``, as YYYY-MM-DD"""
    last_monday = today - timedelta(days=today.weekday() + 7)
    last_sunday = last_monday + timedelta(days=6)
    return last_monday.strftime('%Y-%m-%d'), last_sunday.strftime('%Y-%m-%d')


class JournalManager:
    """Main journal manager that coordinates all components"""

    def __init__(self, config_file: str = "config.json", config: Optional[Config] = None):
        try:
            if config is None:
                config = load_config(config_file)
                setup_logging(config)
            self.config = config

            self.store = EntryStore(
                self.config.journal_dir,
                jira_base_url=self.config.jira_url,
                timestamp_format=self.config.timestamp_format
            )
            self.aggregator = ActivityAggregator(self.store)
            self.jira_client = JiraClient(self.config) if self.config.jira_configured else None
            self.issue_catalog = IssueCatalog(self.jira_client)

            logger.debug(f"JournalManager initialized on {self.store.journal_dir}")

        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            raise

    def add_entry(self, entry_date: str, entry: JournalEntry) -> JournalEntry:
        return self.store.save(entry_date, entry)

    def list_dates(self) -> List[str]:
        return self.store.list_dates()

    def get_entries(self, entry_date: str, resolve_issues: bool = False) -> List[JournalEntry]:
        """Entries of a date, with Jira summaries when ``resolve_issues`` is set"""
        entries = self.store.get_entries(entry_date)
        if resolve_issues:
            self.issue_catalog.fill_summaries(entries)
        return entries

    def edit_entry(self, entry_date: str, index: int, entry: JournalEntry) -> bool:
        return self.store.update(entry_date, index, entry)

    def delete_entry(self, entry_date: str, index: int) -> bool:
        return self.store.delete(entry_date, index)

    def generate_report(self, start_date: str, end_date: str,
                        cancel_event: Optional[threading.Event] = None) -> ActivityReport:
        return self.aggregator.generate_report(start_date, end_date, cancel_event)

    def export_report(self, report: ActivityReport, output_path: Optional[str] = None) -> str:
        """Write a report as JSON for downstream rendering"""
        output_path = output_path or self.config.report_file_path
        report_data = {
            "metadata": {
                "generated_at": datetime.now().isoformat(),
                "journal_dir": str(self.store.journal_dir),
            },
            "report": report.to_dict()
        }

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)

        logger.info(f"Created report file: {output_path}")
        return output_path

    def export_previous_week(self) -> str:
        """Generate and export the report of last week (Monday to Sunday)"""
        start_date, end_date = previous_week_range(date.today())
        report = self.generate_report(start_date, end_date)
        return self.export_report(report)

    def search_tickets(self, jql: Optional[str] = None) -> List[JiraTicket]:
        if self.jira_client is None:
            raise JiraError("Jira is not configured. Set jira_url and jira_api_token.")
        return self.issue_catalog.refresh(jql or self.config.jira_default_jql)

    def tickets_for_entry(self, selected_keys: List[str]) -> List[TicketChoice]:
        return self.issue_catalog.tickets_for_entry(selected_keys)

    def start_scheduler(self):
        """Start the automated scheduler"""
        day = self.config.report_schedule_day
        at = self.config.report_schedule_time

        # Weekly report export, e.g. every monday at 08:00
        getattr(schedule.every(), day).at(at).do(self._scheduled_export)

        logger.info(f"Scheduler started. Weekly report every {day} at {at}")

        try:
            while True:
                schedule.run_pending()
                time.sleep(60)  # Check every minute
        except KeyboardInterrupt:
            logger.info("Scheduler stopped by user")

    def _scheduled_export(self):
        try:
            self.export_previous_week()
        except Exception as e:
            logger.error(f"Scheduled report export failed: {e}")

    def test_connections(self) -> bool:
        """Test access to the journal directory and to Jira"""
        logger.info("Testing connections...")

        try:
            dates = self.store.list_dates()
            logger.info(f"✓ Journal directory readable ({len(dates)} dates)")
        except Exception as e:
            logger.error(f"✗ Journal directory not accessible: {e}")
            return False

        if self.jira_client is None:
            logger.warning("Jira is not configured, skipping Jira test")
            return True

        if self.jira_client.test_connection():
            logger.info("✓ Jira connection successful")
        else:
            logger.error("✗ Jira connection failed")
            return False

        logger.info("All connections successful!")
        return True
