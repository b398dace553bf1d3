"""
Jira API integration for issue lookup
"""

import logging
import threading
from typing import Dict, List, Optional

import requests

from .models import Config, JiraTicket, JournalEntry, TicketChoice

logger = logging.getLogger(__name__)

TICKET_NOT_FOUND_SUMMARY = "Ticket not found in current search"
UNKNOWN_STATUS = "Unknown"


class JiraError(Exception):
    """Raised when there's an issue with the Jira integration"""
    pass


class JiraClient:
    """Reads issues from Jira. The journal only needs summaries and searches."""

    def __init__(self, config: Config):
        self.config = config
        self.base_url = config.jira_url
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        })
        if config.jira_email:
            self.session.auth = (config.jira_email, config.jira_api_token)
        else:
            self.session.headers['Authorization'] = f'Bearer {config.jira_api_token}'

    @property
    def is_configured(self) -> bool:
        return self.config.jira_configured

    def _make_request(self, method: str, url: str, **kwargs):
        """Make HTTP request with proper error handling"""
        try:
            response = self.session.request(method, url, timeout=30, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout:
            raise JiraError(f"Request timeout for {method} {url}")
        except requests.exceptions.ConnectionError:
            raise JiraError(f"Connection error for {method} {url}")
        except requests.exceptions.HTTPError as e:
            if e.response.status_code == 401:
                raise JiraError("Authentication failed. Please check your Jira email and API token.")
            elif e.response.status_code == 403:
                raise JiraError("Access denied. Please check your Jira permissions.")
            elif e.response.status_code == 404:
                raise JiraError(f"Resource not found: {url}")
            else:
                raise JiraError(f"HTTP error {e.response.status_code}: {e.response.text}")
        except requests.exceptions.RequestException as e:
            raise JiraError(f"Request failed: {e}")

    def _require_configuration(self):
        if not self.is_configured:
            raise JiraError("Jira is not configured. Set jira_url and jira_api_token.")

    def search_tickets(self, jql: str, max_results: int = 50) -> List[JiraTicket]:
        """Search issues with a JQL query"""
        self._require_configuration()

        response = self._make_request(
            'POST',
            f"{self.base_url}/rest/api/3/search/jql",
            json={
                "jql": jql,
                "maxResults": max_results,
                "fields": ["summary", "status", "issuetype"]
            }
        )

        tickets = []
        for issue in response.json().get('issues', []):
            fields = issue.get('fields') or {}
            tickets.append(JiraTicket(
                key=issue['key'],
                summary=fields.get('summary', ''),
                status=(fields.get('status') or {}).get('name', ''),
                issue_type=(fields.get('issuetype') or {}).get('name', '')
            ))

        logger.info(f"Found {len(tickets)} Jira tickets for '{jql}'")
        return tickets

    def get_issue_summary(self, key: str) -> Optional[str]:
        """Summary of a single issue, None when it cannot be retrieved"""
        if not self.is_configured:
            return None

        try:
            response = self._make_request(
                'GET',
                f"{self.base_url}/rest/api/2/issue/{key}",
                params={'fields': 'summary'}
            )
            return (response.json().get('fields') or {}).get('summary')
        except JiraError as e:
            logger.warning(f"Could not retrieve summary of {key}: {e}")
            return None

    def get_current_user(self) -> Optional[Dict]:
        try:
            self._require_configuration()
            response = self._make_request('GET', f"{self.base_url}/rest/api/2/myself")
            return response.json()
        except JiraError as e:
            logger.error(f"Failed to get current user: {e}")
            return None

    def test_connection(self) -> bool:
        """Test the connection to Jira"""
        user_info = self.get_current_user()
        if not user_info:
            logger.error("Failed to connect to Jira API")
            return False

        logger.info(f"Connected to Jira as {user_info.get('displayName', 'Unknown')}")
        return True


class IssueCatalog:
    """Owns the tickets fetched from Jira and the known issue summaries.

    The cache is only touched under the lock, and never while a request to
    Jira is in flight: data is copied out first, the request runs, then the
    result is stored back.
    """

    def __init__(self, client: Optional[JiraClient] = None):
        self.client = client
        self._lock = threading.Lock()
        self._tickets: List[JiraTicket] = []
        self._summaries: Dict[str, str] = {}

    def refresh(self, jql: str) -> List[JiraTicket]:
        """Replace the available tickets with the result of a search"""
        if self.client is None:
            raise JiraError("No Jira client available")

        tickets = self.client.search_tickets(jql)

        with self._lock:
            self._tickets = list(tickets)
            self._summaries.update({t.key: t.summary for t in tickets})
        return list(tickets)

    def available_tickets(self) -> List[JiraTicket]:
        with self._lock:
            return list(self._tickets)

    def tickets_for_entry(self, selected_keys: List[str]) -> List[TicketChoice]:
        """Tickets to offer for an entry: the current search first, then the
        selected keys that the search did not return."""
        tickets = self.available_tickets()
        available_keys = {t.key for t in tickets}

        choices = [
            TicketChoice(
                key=t.key,
                summary=t.summary,
                status=t.status,
                is_selected=t.key in selected_keys,
                is_available=True
            )
            for t in tickets
        ]
        for key in selected_keys:
            if key not in available_keys:
                choices.append(TicketChoice(
                    key=key,
                    summary=TICKET_NOT_FOUND_SUMMARY,
                    status=UNKNOWN_STATUS,
                    is_selected=True,
                    is_available=False
                ))
        return choices

    def resolve_summary(self, key: str) -> Optional[str]:
        with self._lock:
            cached = self._summaries.get(key)
        if cached is not None or self.client is None:
            return cached

        summary = self.client.get_issue_summary(key)
        if summary is not None:
            with self._lock:
                self._summaries[key] = summary
        return summary

    def fill_summaries(self, entries: List[JournalEntry]) -> List[JournalEntry]:
        """Set the summary of every issue reference that Jira knows about"""
        for entry in entries:
            for ref in entry.issue_refs:
                if ref.summary is None:
                    ref.summary = self.resolve_summary(ref.key)
        return entries
