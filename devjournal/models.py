"""
Data models for the developer journal
"""

import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

DEFAULT_ENTRY_TYPE = "développement"
ISSUE_KEY_PATTERN = r"[A-Z]+-\d+"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']
SCHEDULE_TIME_PATTERN = r"([01]\d|2[0-3]):[0-5]\d"


@dataclass
class Link:
    """A plain Markdown link attached to an entry"""
    text: str
    url: str


@dataclass
class IssueRef:
    """Reference to a Jira issue; summary is filled in from Jira, never stored on disk"""
    key: str
    summary: Optional[str] = None

    def __post_init__(self):
        if not re.fullmatch(ISSUE_KEY_PATTERN, self.key):
            raise ValueError(f"Invalid issue key: {self.key!r}")


@dataclass
class JournalEntry:
    """One logged activity, i.e. one heading block in a date file"""
    timestamp: str = ""
    project: str = ""
    entry_type: str = DEFAULT_ENTRY_TYPE
    description: str = ""
    duration: str = "0"
    time_range: str = ""
    results: str = ""
    blockers: str = ""
    reflections: str = ""
    tags: List[str] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    issue_refs: List[IssueRef] = field(default_factory=list)


@dataclass
class JiraTicket:
    """A Jira issue as returned by a search"""
    key: str
    summary: str
    status: str = ""
    issue_type: str = ""


@dataclass
class TicketChoice:
    """A ticket offered for an entry, flagged when already linked to it"""
    key: str
    summary: str
    status: str
    is_selected: bool
    is_available: bool


@dataclass
class Config:
    """Configuration settings"""
    journal_dir: str = "~/Documents/DevJournal"
    jira_url: str = ""
    jira_email: str = ""
    jira_api_token: str = ""
    jira_default_jql: str = "assignee = currentUser() ORDER BY updated DESC"
    timestamp_format: str = "%d/%m/%Y %H:%M"
    log_level: str = "INFO"
    log_file: str = "devjournal.log"
    report_file_path: str = "activity_report.json"
    # Weekly report export
    report_schedule_day: str = "monday"
    report_schedule_time: str = "08:00"

    def __post_init__(self):
        """Validate configuration after initialization"""
        if self.jira_url and not self.jira_url.startswith(('http://', 'https://')):
            raise ValueError("Invalid Jira URL format. Must start with http:// or https://")

        self.jira_url = self.jira_url.rstrip('/')

        if not self.journal_dir:
            raise ValueError("Journal directory cannot be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of: {', '.join(LOG_LEVELS)}")

        if self.report_schedule_day not in WEEKDAYS:
            raise ValueError("Invalid day of week")

        if not re.fullmatch(SCHEDULE_TIME_PATTERN, self.report_schedule_time):
            raise ValueError(f"Invalid report schedule time: {self.report_schedule_time!r}. Use HH:MM")

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_url and self.jira_api_token)


@dataclass
class ProjectSummary:
    name: str
    entries: int = 0
    hours: float = 0.0


@dataclass
class TagSummary:
    name: str
    count: int = 0


@dataclass
class MonthlyDetail:
    """Projects and tags touched during one month, with their hours"""
    month: str
    projects: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    project_hours: Dict[str, float] = field(default_factory=dict)
    tag_hours: Dict[str, float] = field(default_factory=dict)


@dataclass
class ActivityReport:
    """Aggregated activity over a closed date interval"""
    period_start: str
    period_end: str
    total_entries: int = 0
    total_hours: float = 0.0
    projects_summary: List[ProjectSummary] = field(default_factory=list)
    tags_summary: List[TagSummary] = field(default_factory=list)
    activity_types: Dict[str, int] = field(default_factory=dict)
    daily_breakdown: Dict[str, float] = field(default_factory=dict)
    monthly_breakdown: Dict[str, float] = field(default_factory=dict)
    monthly_details: List[MonthlyDetail] = field(default_factory=list)

    def project(self, name: str) -> Optional[ProjectSummary]:
        return next((p for p in self.projects_summary if p.name == name), None)

    def tag_count(self, name: str) -> int:
        return next((t.count for t in self.tags_summary if t.name == name), 0)

    def to_dict(self) -> dict:
        return asdict(self)
