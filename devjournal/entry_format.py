"""
Markdown entry format: parsing and generation of journal entries

A date file is a sequence of blocks like::

    ## 14/03/2024 09:12
    **Projet**: Mandate
    **Type d'activité**: développement
    **Description**: first line
    second line
    **Durée**: 2h30 minutes
    **Tags**: #bug #api

The files are edited by hand, so parsing never fails: anything that is not
understood falls back to the field defaults.

A continuation line of a multi-line field that would read as a label
(`**Note**: ...`) or as a heading (`## ...`) is written with a leading
backslash, which the parser removes again. A hand-written continuation line
starting with a backslash therefore loses that first backslash.
"""

import logging
import re
from typing import Dict, List, Tuple

from .models import ISSUE_KEY_PATTERN, IssueRef, JournalEntry, Link

logger = logging.getLogger(__name__)

HEADING_MARKER = "## "
SEPARATOR_LINE = "---"
ENTRY_SEPARATOR = f"\n\n{SEPARATOR_LINE}\n\n"
ESCAPE = "\\"
NONE_SENTINEL = "Aucun"
DEFAULT_JIRA_BASE_URL = "https://votre-instance.atlassian.net"

# Changing these breaks compatibility with existing journal files
LABEL_PROJECT = "**Projet**:"
LABEL_DESCRIPTION = "**Description**:"
LABEL_DURATION = "**Durée**:"
LABEL_TAGS = "**Tags**:"
LABEL_TIME_RANGE = "**Plage horaire**:"
LABEL_ENTRY_TYPE = "**Type d'activité**:"
LABEL_RESULTS = "**Résultats**:"
LABEL_BLOCKERS = "**Blocages**:"
LABEL_REFLECTIONS = "**Réflexions**:"
LABEL_LINKS = "**Liens**:"

SINGLE_LINE_FIELDS: Dict[str, str] = {
    LABEL_PROJECT: "project",
    LABEL_DURATION: "duration",
    LABEL_TAGS: "tags",
    LABEL_TIME_RANGE: "time_range",
    LABEL_ENTRY_TYPE: "entry_type",
    LABEL_LINKS: "links",
}

MULTI_LINE_FIELDS: Dict[str, str] = {
    LABEL_DESCRIPTION: "description",
    LABEL_RESULTS: "results",
    LABEL_BLOCKERS: "blockers",
    LABEL_REFLECTIONS: "reflections",
}

_HEADING_RE = re.compile(r"^## ", re.MULTILINE)
_LABEL_LINE_RE = re.compile(r"^\*\*[^*\n]+\*\*:")
_ISSUE_LINK_RE = re.compile(r"\[(" + ISSUE_KEY_PATTERN + r")\]\([^)]*browse/([^)]+)\)")
_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(((?:[^()]|\([^()]*\))+)\)")
_ISSUE_KEY_RE = re.compile(ISSUE_KEY_PATTERN)


def is_label_line(line: str) -> bool:
    """True when the line starts a field (recognized or not)"""
    return bool(_LABEL_LINE_RE.match(line.strip()))


def match_label(line: str) -> Tuple[str, str]:
    """Return (label, value) for a recognized label line, ("", "") otherwise"""
    stripped = line.strip()
    for label in (*SINGLE_LINE_FIELDS, *MULTI_LINE_FIELDS):
        if stripped.startswith(label):
            return label, stripped[len(label):].strip()
    return "", ""


def collect_continuation(lines: List[str], start: int) -> Tuple[List[str], int]:
    """Collect the continuation lines of a multi-line field.

    Scans from ``start`` up to the next label line and returns the non-blank
    lines found plus the index where scanning stopped.
    """
    collected = []
    i = start
    while i < len(lines) and not is_label_line(lines[i]):
        if lines[i].strip():
            collected.append(unescape_line(lines[i].rstrip()))
        i += 1
    return collected, i


def escape_line(line: str) -> str:
    """Protect a continuation line that would otherwise read as a label or heading"""
    if is_label_line(line) or line.startswith(HEADING_MARKER) or line.startswith(ESCAPE):
        return ESCAPE + line
    return line


def unescape_line(line: str) -> str:
    return line[len(ESCAPE):] if line.startswith(ESCAPE) else line


def format_multi_line(value: str) -> str:
    first, *rest = value.split("\n")
    return "\n".join([first] + [escape_line(line) for line in rest])


def parse_tags(value: str) -> List[str]:
    if not value or value == NONE_SENTINEL:
        return []
    tags = []
    for token in value.split():
        tag = token.lstrip('#')
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def parse_links(value: str) -> Tuple[List[Link], List[IssueRef]]:
    """Split a links line into plain links and Jira issue references"""
    if not value or value == NONE_SENTINEL:
        return [], []

    issue_refs = [IssueRef(key=match.group(1)) for match in _ISSUE_LINK_RE.finditer(value)]

    links = []
    for match in _MARKDOWN_LINK_RE.finditer(value):
        text, url = match.group(1), match.group(2)
        # Issue links were already collected above
        if _ISSUE_KEY_RE.fullmatch(text):
            continue
        if text.strip() and url.strip():
            links.append(Link(text=text, url=url))

    return links, issue_refs


def _strip_blank_tail(lines: List[str]) -> List[str]:
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    return lines


def _strip_trailing_separator(lines: List[str]) -> List[str]:
    """Drop the ``---`` written between appended entries.

    The separator always follows a blank line; a ``---`` directly under
    text belongs to the field above it.
    """
    lines = _strip_blank_tail(lines)
    if len(lines) >= 2 and lines[-1].strip() == SEPARATOR_LINE and not lines[-2].strip():
        lines = _strip_blank_tail(lines[:-1])
    return lines


def parse_entry_block(block: str) -> JournalEntry:
    """Parse one block (the text following a heading marker)"""
    lines = _strip_trailing_separator(block.splitlines())
    entry = JournalEntry(timestamp=lines[0].strip() if lines else "")

    i = 1
    while i < len(lines):
        label, value = match_label(lines[i])

        if label in MULTI_LINE_FIELDS:
            continuation, i = collect_continuation(lines, i + 1)
            parts = ([value] if value else []) + continuation
            setattr(entry, MULTI_LINE_FIELDS[label], "\n".join(parts))
            continue

        if label == LABEL_DURATION:
            entry.duration = value.replace("minutes", "").strip()
        elif label == LABEL_TAGS:
            entry.tags = parse_tags(value)
        elif label == LABEL_LINKS:
            entry.links, entry.issue_refs = parse_links(value)
        elif label:
            setattr(entry, SINGLE_LINE_FIELDS[label], value)

        i += 1

    return entry


def parse_entries(content: str) -> List[JournalEntry]:
    """Parse the content of a date file into its entries, in file order"""
    if not content:
        return []

    # Whatever precedes the first heading is not an entry
    blocks = _HEADING_RE.split(content)[1:]

    entries = []
    for block in blocks:
        if not block.strip():
            continue
        entry = parse_entry_block(block)
        if not entry.timestamp:
            logger.debug("Skipping journal block without timestamp")
            continue
        entries.append(entry)

    return entries


def format_links(entry: JournalEntry, jira_base_url: str = DEFAULT_JIRA_BASE_URL) -> str:
    base_url = jira_base_url.rstrip('/')
    all_links = [f"[{ref.key}]({base_url}/browse/{ref.key})" for ref in entry.issue_refs]
    all_links.extend(
        f"[{link.text}]({link.url})" for link in entry.links if link.text and link.url
    )
    return ", ".join(all_links)


def format_entry(entry: JournalEntry, jira_base_url: str = DEFAULT_JIRA_BASE_URL) -> str:
    """Generate the Markdown block for an entry; the inverse of parse_entries"""
    lines = [f"{HEADING_MARKER}{entry.timestamp}"]
    lines.append(f"{LABEL_PROJECT} {entry.project}  ")

    if entry.time_range:
        lines.append(f"{LABEL_TIME_RANGE} {entry.time_range}  ")

    lines.append(f"{LABEL_ENTRY_TYPE} {entry.entry_type}  ")
    lines.append(f"{LABEL_DESCRIPTION} {format_multi_line(entry.description)}  ")
    lines.append(f"{LABEL_DURATION} {entry.duration} minutes  ")

    if entry.results:
        lines.append(f"{LABEL_RESULTS} {format_multi_line(entry.results)}  ")

    if entry.blockers:
        lines.append(f"{LABEL_BLOCKERS} {format_multi_line(entry.blockers)}  ")

    links = format_links(entry, jira_base_url)
    if links:
        lines.append(f"{LABEL_LINKS} {links}  ")

    tags = [tag for tag in entry.tags if tag]
    tags_str = " ".join(f"#{tag}" for tag in tags) if tags else NONE_SENTINEL
    lines.append(f"{LABEL_TAGS} {tags_str}  ")

    if entry.reflections:
        lines.append(f"{LABEL_REFLECTIONS} {format_multi_line(entry.reflections)}  ")

    return "\n".join(lines) + "\n"


def format_entries(entries: List[JournalEntry], jira_base_url: str = DEFAULT_JIRA_BASE_URL) -> str:
    """Generate the content of a whole date file"""
    return ENTRY_SEPARATOR.join(format_entry(entry, jira_base_url) for entry in entries)
