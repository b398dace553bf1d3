"""
Tests for the Jira client and the issue catalog
"""

import threading

import pytest
import requests

from devjournal.jira_client import IssueCatalog, JiraClient, JiraError
from devjournal.models import Config, IssueRef, JiraTicket, JournalEntry


class DummyResponse:
    def __init__(self, status_code=200, data=None):
        self.status_code = status_code
        self._data = data or {}
        self.text = str(self._data)

    def json(self):
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(response=self)


@pytest.fixture
def config():
    return Config(jira_url="https://jira.example.com", jira_email="me@example.com", jira_api_token="token")


def install_responses(monkeypatch, client, responses):
    calls = []

    def fake_request(method, url, timeout=None, **kwargs):
        calls.append((method, url, kwargs))
        return responses.pop(0)

    monkeypatch.setattr(client.session, "request", fake_request)
    return calls


def test_basic_auth_with_email(config):
    client = JiraClient(config)
    assert client.session.auth == ("me@example.com", "token")
    assert "Authorization" not in client.session.headers


def test_bearer_auth_without_email():
    client = JiraClient(Config(jira_url="https://jira.example.com", jira_api_token="pat"))
    assert client.session.headers["Authorization"] == "Bearer pat"


def test_search_tickets(monkeypatch, config):
    client = JiraClient(config)
    calls = install_responses(monkeypatch, client, [DummyResponse(data={"issues": [
        {"key": "PROJ-1", "fields": {"summary": "Fix login", "status": {"name": "Done"},
                                     "issuetype": {"name": "Bug"}}},
        {"key": "PROJ-2", "fields": {"summary": "Add export"}},
    ]})])

    tickets = client.search_tickets("project = PROJ")

    assert tickets == [
        JiraTicket(key="PROJ-1", summary="Fix login", status="Done", issue_type="Bug"),
        JiraTicket(key="PROJ-2", summary="Add export"),
    ]
    method, url, kwargs = calls[0]
    assert method == "POST"
    assert url == "https://jira.example.com/rest/api/3/search/jql"
    assert kwargs["json"]["jql"] == "project = PROJ"


def test_http_errors_are_mapped(monkeypatch, config):
    client = JiraClient(config)
    install_responses(monkeypatch, client, [DummyResponse(status_code=401)])

    with pytest.raises(JiraError, match="Authentication failed"):
        client.search_tickets("project = PROJ")


def test_search_requires_configuration():
    client = JiraClient(Config())
    with pytest.raises(JiraError, match="not configured"):
        client.search_tickets("project = PROJ")


def test_issue_summary(monkeypatch, config):
    client = JiraClient(config)
    calls = install_responses(monkeypatch, client, [
        DummyResponse(data={"key": "PROJ-1", "fields": {"summary": "Fix login"}}),
        DummyResponse(status_code=404),
    ])

    assert client.get_issue_summary("PROJ-1") == "Fix login"
    assert client.get_issue_summary("PROJ-404") is None
    assert calls[0][1] == "https://jira.example.com/rest/api/2/issue/PROJ-1"


def test_test_connection(monkeypatch, config):
    client = JiraClient(config)
    install_responses(monkeypatch, client, [
        DummyResponse(data={"displayName": "Me"}),
        DummyResponse(status_code=500),
    ])

    assert client.test_connection() is True
    assert client.test_connection() is False


class FakeClient:
    def __init__(self, tickets=(), summaries=None):
        self.tickets = list(tickets)
        self.summaries = summaries or {}
        self.summary_calls = []

    def search_tickets(self, jql):
        return list(self.tickets)

    def get_issue_summary(self, key):
        self.summary_calls.append(key)
        return self.summaries.get(key)


def test_catalog_tickets_for_entry():
    catalog = IssueCatalog(FakeClient(tickets=[
        JiraTicket(key="PROJ-1", summary="Fix login", status="Done"),
        JiraTicket(key="PROJ-2", summary="Add export", status="To Do"),
    ]))
    catalog.refresh("project = PROJ")

    choices = catalog.tickets_for_entry(["PROJ-2", "OLD-9"])

    assert [(c.key, c.is_selected, c.is_available) for c in choices] == [
        ("PROJ-1", False, True),
        ("PROJ-2", True, True),
        ("OLD-9", True, False),
    ]
    assert choices[2].summary == "Ticket not found in current search"


def test_catalog_resolves_and_caches_summaries():
    client = FakeClient(tickets=[JiraTicket(key="PROJ-1", summary="Fix login")],
                        summaries={"PROJ-7": "Old issue"})
    catalog = IssueCatalog(client)
    catalog.refresh("project = PROJ")

    entries = [JournalEntry(issue_refs=[IssueRef(key="PROJ-1"), IssueRef(key="PROJ-7"), IssueRef(key="X-1")])]
    catalog.fill_summaries(entries)
    catalog.resolve_summary("PROJ-7")

    assert [ref.summary for ref in entries[0].issue_refs] == ["Fix login", "Old issue", None]
    # PROJ-1 came from the search, PROJ-7 is fetched once
    assert client.summary_calls == ["PROJ-7", "X-1"]


def test_catalog_without_client():
    catalog = IssueCatalog()
    assert catalog.resolve_summary("PROJ-1") is None
    with pytest.raises(JiraError):
        catalog.refresh("project = PROJ")


def test_catalog_lock_is_released_during_requests():
    """A slow lookup must not block readers of the cache"""
    started = threading.Event()
    release = threading.Event()

    class SlowClient(FakeClient):
        def get_issue_summary(self, key):
            started.set()
            release.wait(5)
            return "Slow"

    catalog = IssueCatalog(SlowClient())
    worker = threading.Thread(target=catalog.resolve_summary, args=("PROJ-1",))
    worker.start()
    try:
        assert started.wait(5)
        assert catalog.available_tickets() == []
    finally:
        release.set()
        worker.join(5)
    assert catalog.resolve_summary("PROJ-1") == "Slow"
