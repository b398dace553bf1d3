#!/usr/bin/env python3
"""
Developer journal
Command-line interface for the Markdown developer journal
"""

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .activity_report import ReportCancelledError
from .config_manager import ConfigurationError, update_config_files
from .duration import normalize_duration
from .entry_store import JournalStoreError
from .jira_client import JiraError
from .journal_manager import JournalManager
from .models import ActivityReport, IssueRef, JournalEntry, Link

# Configure basic logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ENTRY_TYPES = [
    "développement",
    "revue de code",
    "réunion",
    "debug",
    "documentation",
    "formation",
    "veille technologique",
]


def add_entry_arguments(parser: argparse.ArgumentParser, required: bool):
    """Options describing the fields of an entry"""
    parser.add_argument('--project', required=required, help='Project name')
    parser.add_argument('--type', dest='entry_type',
                        help=f"Activity type (e.g. {', '.join(ENTRY_TYPES)})")
    parser.add_argument('--description', required=required, help='What was done')
    parser.add_argument('--duration', required=required,
                        help='Duration, e.g. 3h, 2h30, 45min')
    parser.add_argument('--time-range', help='Time range, e.g. 09:00-11:30')
    parser.add_argument('--results', help='Results obtained')
    parser.add_argument('--blockers', help='Blocking points')
    parser.add_argument('--reflections', help='Thoughts and lessons learned')
    parser.add_argument('--tag', dest='tags', action='append', help='Tag (repeatable)')
    parser.add_argument('--link', dest='links', action='append', metavar='TEXT=URL',
                        help='Link as TEXT=URL (repeatable)')
    parser.add_argument('--issue', dest='issues', action='append', metavar='KEY',
                        help='Jira issue key, e.g. PROJ-123 (repeatable)')


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='devjournal',
        description="Markdown developer journal with activity reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Log an activity for today
  devjournal add --project Mandate --description "API review" --duration 2h30 --tag api

  # Show the entries of a date
  devjournal entries --date 2024-01-15

  # Fix the second entry of a date
  devjournal edit 2024-01-15 1 --duration 45min

  # Report for January, written as JSON
  devjournal report --start 2024-01-01 --end 2024-01-31 --output report.json

  # Start the weekly report scheduler
  devjournal scheduler

  # Update configuration file
  devjournal update-config
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config.json',
        help='Configuration file path (default: config.json)'
    )

    commands = parser.add_subparsers(dest='command')

    add = commands.add_parser('add', help='Append an entry to a date file')
    add.add_argument('--date', type=str, help='Date (YYYY-MM-DD format, default: today)')
    add_entry_arguments(add, required=True)

    entries = commands.add_parser('entries', help='Show the entries of a date')
    entries.add_argument('--date', type=str, help='Date (YYYY-MM-DD format, default: today)')
    entries.add_argument('--resolve-issues', action='store_true',
                         help='Fetch Jira summaries of referenced issues')

    commands.add_parser('dates', help='List dates that have entries, newest first')

    edit = commands.add_parser('edit', help='Modify an entry; omitted fields are kept')
    edit.add_argument('date', type=str, help='Date (YYYY-MM-DD format)')
    edit.add_argument('index', type=int, help='Entry position in the date file, from 0')
    add_entry_arguments(edit, required=False)
    edit.add_argument('--clear-tags', action='store_true', help='Remove all tags')
    edit.add_argument('--clear-links', action='store_true', help='Remove all links and issues')

    delete = commands.add_parser('delete', help='Delete an entry')
    delete.add_argument('date', type=str, help='Date (YYYY-MM-DD format)')
    delete.add_argument('index', type=int, help='Entry position in the date file, from 0')

    report = commands.add_parser('report', help='Activity report over a date range')
    report.add_argument('--start', type=str, required=True, help='First date (YYYY-MM-DD)')
    report.add_argument('--end', type=str, required=True, help='Last date (YYYY-MM-DD)')
    report.add_argument('--output', type=str, help='Write the report as JSON to this file')

    tickets = commands.add_parser('tickets', help='Search Jira tickets')
    tickets.add_argument('--jql', type=str, help='JQL query (default from configuration)')

    commands.add_parser('test-connection', help='Test the journal directory and Jira access')
    commands.add_parser('update-config', help='Merge new default settings into your configuration file')
    commands.add_parser('scheduler', help='Export last week report on a weekly schedule')

    return parser.parse_args(argv)


def validate_date(date_str: str) -> str:
    """Validate a date string and return it unchanged"""
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
    except ValueError:
        logger.error("Invalid date format. Use YYYY-MM-DD")
        sys.exit(1)
    return date_str


def parse_link(value: str) -> Link:
    text, sep, url = value.partition('=')
    if not sep or not text.strip() or not url.strip():
        raise ValueError(f"Invalid link '{value}'. Use TEXT=URL")
    return Link(text=text.strip(), url=url.strip())


def entry_from_args(args, base: Optional[JournalEntry] = None) -> JournalEntry:
    """Build an entry from command options, on top of ``base`` when editing"""
    entry = base if base is not None else JournalEntry()
    changes = {}

    for name in ('project', 'entry_type', 'description', 'duration', 'time_range',
                 'results', 'blockers', 'reflections'):
        value = getattr(args, name, None)
        if value is not None:
            changes[name] = value

    if getattr(args, 'clear_tags', False):
        changes['tags'] = []
    if args.tags:
        changes['tags'] = [tag.lstrip('#') for tag in args.tags if tag.lstrip('#')]

    if getattr(args, 'clear_links', False):
        changes['links'] = []
        changes['issue_refs'] = []
    if args.links:
        changes['links'] = [parse_link(value) for value in args.links]
    if args.issues:
        changes['issue_refs'] = [IssueRef(key=key.strip().upper()) for key in args.issues]

    return replace(entry, **changes)


def print_entries(entry_date: str, entries: List[JournalEntry]):
    if not entries:
        print(f"No entries for {entry_date}")
        return

    for index, entry in enumerate(entries):
        print(f"[{index}] {entry.timestamp} - {entry.project} ({entry.entry_type}) "
              f"{entry.duration} = {normalize_duration(entry.duration):.2f}h")
        if entry.time_range:
            print(f"    Time range: {entry.time_range}")
        for line in entry.description.splitlines():
            print(f"    {line}")
        if entry.results:
            print(f"    Results: {entry.results}")
        if entry.blockers:
            print(f"    Blockers: {entry.blockers}")
        if entry.reflections:
            print(f"    Reflections: {entry.reflections}")
        for ref in entry.issue_refs:
            print(f"    Issue: {ref.key}" + (f" - {ref.summary}" if ref.summary else ""))
        for link in entry.links:
            print(f"    Link: {link.text} <{link.url}>")
        if entry.tags:
            print(f"    Tags: {' '.join('#' + tag for tag in entry.tags)}")


def print_report(report: ActivityReport):
    print(f"Activity from {report.period_start} to {report.period_end}")
    print(f"  {report.total_entries} entries, {report.total_hours:.2f}h")

    print("Projects:")
    for project in report.projects_summary:
        print(f"  {project.name or '(none)'}: {project.entries} entries, {project.hours:.2f}h")

    if report.tags_summary:
        print("Tags:")
        for tag in report.tags_summary:
            print(f"  #{tag.name}: {tag.count}")

    print("Activity types:")
    for entry_type, count in sorted(report.activity_types.items()):
        print(f"  {entry_type}: {count}")

    print("Months:")
    for detail in report.monthly_details:
        print(f"  {detail.month}: {report.monthly_breakdown.get(detail.month, 0.0):.2f}h "
              f"({len(detail.projects)} projects, {len(detail.tags)} tags)")


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    args = parse_arguments(argv)

    # Handle configuration updates first
    if args.command == 'update-config' or not Path(args.config).exists():
        try:
            update_config_files(args.config)
            if args.command == 'update-config':
                logger.info("Configuration file updated successfully")
                return
        except Exception as e:
            logger.error(f"Failed to update configuration file: {e}")
            sys.exit(1)

    # Initialize journal manager
    try:
        manager = JournalManager(args.config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Please run 'devjournal update-config' to create the configuration file")
        sys.exit(1)

    today = datetime.now().strftime('%Y-%m-%d')

    try:
        if args.command == 'add':
            entry_date = validate_date(args.date) if args.date else today
            saved = manager.add_entry(entry_date, entry_from_args(args))
            logger.info(f"Entry added to {entry_date} at {saved.timestamp}")

        elif args.command == 'entries':
            entry_date = validate_date(args.date) if args.date else today
            print_entries(entry_date, manager.get_entries(entry_date, args.resolve_issues))

        elif args.command == 'dates':
            for entry_date in manager.list_dates():
                print(entry_date)

        elif args.command == 'edit':
            entry_date = validate_date(args.date)
            entries = manager.get_entries(entry_date)
            if not 0 <= args.index < len(entries):
                logger.error(f"No entry #{args.index} for {entry_date}")
                sys.exit(1)
            manager.edit_entry(entry_date, args.index, entry_from_args(args, entries[args.index]))
            logger.info(f"Entry #{args.index} of {entry_date} updated")

        elif args.command == 'delete':
            entry_date = validate_date(args.date)
            if not manager.delete_entry(entry_date, args.index):
                logger.error(f"No entry #{args.index} for {entry_date}")
                sys.exit(1)
            logger.info(f"Entry #{args.index} of {entry_date} deleted")

        elif args.command == 'report':
            start_date = validate_date(args.start)
            end_date = validate_date(args.end)
            report = manager.generate_report(start_date, end_date)
            print_report(report)
            if args.output:
                manager.export_report(report, args.output)

        elif args.command == 'tickets':
            for ticket in manager.search_tickets(args.jql):
                print(f"{ticket.key} [{ticket.status}] {ticket.summary}")

        elif args.command == 'test-connection':
            success = manager.test_connections()
            sys.exit(0 if success else 1)

        elif args.command == 'scheduler':
            logger.info("Starting scheduler...")
            manager.start_scheduler()

        else:
            # Default behavior - show today's entries
            print_entries(today, manager.get_entries(today))

    except (JournalStoreError, JiraError, ReportCancelledError, ValueError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
