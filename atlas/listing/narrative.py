"""Human-readable narrative renderers.

One pure function per entity kind, each taking the projected records plus
pagination metadata and returning plain text. Status and priority indicators
come from one shared glyph table.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from .models import PaginationInfo, ProjectedPage, Record

UNKNOWN_GLYPH = "[?]"

STATUS_GLYPHS: dict[str, str] = {
    "backlog": "[B]",
    "todo": "[T]",
    "pending": "[W]",
    "in_progress": "[P]",
    "in-progress": "[P]",
    "active": "[A]",
    "completed": "[C]",
    "archived": "[X]",
}

PRIORITY_GLYPHS: dict[str, str] = {
    "critical": "[!!!]",
    "high": "[!!]",
    "medium": "[!]",
    "low": "[-]",
}

SEPARATOR = "\n\n----------\n\n"


def glyph(table: Mapping[str, str], value: Any) -> str:
    """Look up an indicator glyph, falling back to the unknown glyph."""
    if not isinstance(value, str):
        return UNKNOWN_GLYPH
    return table.get(value, UNKNOWN_GLYPH)


def format_timestamp(value: Any, fallback: str = "Unknown Date") -> str:
    """Render an ISO-8601 timestamp as ``YYYY-MM-DD HH:MM:SS``.

    Values that do not parse are returned unchanged.
    """
    if not value:
        return fallback
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    text = str(value)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def _join_tags(tags: Any) -> str:
    if isinstance(tags, list) and tags:
        return ", ".join(str(t) for t in tags)
    return "None"


def _format_urls(urls: Any) -> str:
    if not isinstance(urls, list) or not urls:
        return "None"
    entries = []
    for entry in urls:
        if isinstance(entry, Mapping):
            entries.append(f"{entry.get('title', '')}: {entry.get('url', '')}")
        else:
            entries.append(str(entry))
    return "\n      ".join(entries)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def _render_nested_tasks(tasks: list[Record]) -> str:
    blocks = []
    for index, task in enumerate(tasks, start=1):
        status = task.get("status") or "Unknown Status"
        priority = task.get("priority") or "Unknown Priority"
        blocks.append(
            f"  {index}. {glyph(STATUS_GLYPHS, task.get('status'))} "
            f"{glyph(PRIORITY_GLYPHS, task.get('priority'))} "
            f"{task.get('title') or 'Unnamed Task'}\n"
            f"     ID: {task.get('id') or 'Unknown ID'}\n"
            f"     Status: {status}\n"
            f"     Priority: {priority}"
        )
    return f"\nTasks ({len(tasks)}):\n" + "\n\n".join(blocks) + "\n"


def _render_nested_knowledge(items: list[Record]) -> str:
    blocks = []
    for index, item in enumerate(items, start=1):
        blocks.append(
            f"  {index}. {item.get('domain') or 'Uncategorized'} "
            f"(ID: {item.get('id') or 'N/A'})\n"
            f"     Tags: {_join_tags(item.get('tags'))}"
        )
    return f"\nKnowledge Items ({len(items)}):\n" + "\n\n".join(blocks) + "\n"


def _render_project(index: int, project: Record) -> str:
    lines = [
        f"{index}. {glyph(STATUS_GLYPHS, project.get('status'))} "
        f"{project.get('name') or 'Unnamed Project'}",
        "",
        f"ID: {project.get('id') or 'Unknown ID'}",
        f"Status: {project.get('status') or 'Unknown Status'}",
        f"Type: {project.get('taskType') or 'Unknown Type'}",
        f"Created: {format_timestamp(project.get('createdAt'))}",
    ]
    if project.get("description"):
        lines.append(f"Description: {project['description']}")
    if "urls" in project:
        lines.append(f"URLs: {_format_urls(project['urls'])}")
    if project.get("completionRequirements"):
        lines.append(f"Completion Requirements: {project['completionRequirements']}")
    if project.get("outputFormat"):
        lines.append(f"Output Format: {project['outputFormat']}")
    if project.get("updatedAt"):
        lines.append(f"Updated: {format_timestamp(project['updatedAt'])}")
    stats = project.get("stats")
    if isinstance(stats, Mapping):
        lines.append(
            f"Progress: {stats.get('completedTasks', 0)}/{stats.get('totalTasks', 0)} tasks "
            f"({stats.get('completionPercentage', 0)}%), "
            f"{stats.get('totalKnowledge', 0)} knowledge item(s)"
        )

    section = "\n".join(lines) + "\n"
    if project.get("tasks"):
        section += _render_nested_tasks(project["tasks"])
    if project.get("knowledge"):
        section += _render_nested_knowledge(project["knowledge"])
    return section


def render_projects(page: ProjectedPage, pagination: PaginationInfo) -> str:
    """Render a project page as a portfolio overview."""
    summary = (
        "Project Portfolio\n\n"
        f"Total Entities: {pagination.total}\n"
        f"Page: {pagination.page} of {pagination.total_pages}\n"
        f"Displaying: {min(pagination.limit, len(page.items))} project(s) per page\n"
    )
    if not page.items:
        return f"{summary}\nNo project entities matched the specified criteria"

    sections = SEPARATOR.join(
        _render_project(index, project) for index, project in enumerate(page.items, start=1)
    )
    hint = ""
    if pagination.total_pages > 1:
        hint = (
            "\n\nPagination Controls:\n"
            f"Viewing page {pagination.page} of {pagination.total_pages}.\n"
            + (
                "Use 'page' parameter to navigate to additional results."
                if pagination.page < pagination.total_pages
                else "You are on the last page."
            )
        )
    return f"{summary}\n{sections}{hint}"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def _render_task(index: int, task: Record) -> str:
    lines = [
        f"{index}. {glyph(STATUS_GLYPHS, task.get('status'))} "
        f"{glyph(PRIORITY_GLYPHS, task.get('priority'))} "
        f"{task.get('title') or 'Unnamed Task'}",
        f"   ID: {task.get('id') or 'Unknown ID'}",
        f"   Status: {task.get('status') or 'Unknown Status'}",
        f"   Priority: {task.get('priority') or 'Unknown Priority'}",
    ]
    if task.get("assignedTo"):
        lines.append(f"   Assigned To: {task['assignedTo']}")
    if isinstance(task.get("tags"), list) and task["tags"]:
        lines.append(f"   Tags: {_join_tags(task['tags'])}")
    if task.get("taskType"):
        lines.append(f"   Type: {task['taskType']}")
    if task.get("createdAt"):
        lines.append(f"   Created: {format_timestamp(task['createdAt'])}")
    if task.get("description"):
        lines.append(f"   Description: {task['description']}")
    return "\n".join(lines) + "\n"


def render_tasks(page: ProjectedPage, pagination: PaginationInfo) -> str:
    """Render a task page as a prioritized list."""
    summary = (
        "Task List\n\n"
        f"Found {pagination.total} task(s)\n"
        f"Page {pagination.page} of {pagination.total_pages} "
        f"({pagination.limit} per page)\n"
        f"Displaying: {len(page.items)} task(s)\n"
    )
    if not page.items:
        return f"{summary}\nNo tasks found matching the specified criteria."

    body = "Tasks:\n\n" + "\n".join(
        _render_task(index, task) for index, task in enumerate(page.items, start=1)
    )
    hint = ""
    if pagination.total_pages > 1:
        hint = (
            "\nTo view more tasks, use 'page' parameter "
            f"(current: {pagination.page}, total pages: {pagination.total_pages})."
        )
    return f"{summary}\n{body}{hint}"


# ---------------------------------------------------------------------------
# Knowledge
# ---------------------------------------------------------------------------


def _render_knowledge_item(index: int, item: Record) -> str:
    domain = item.get("domain") or "Uncategorized"
    lines = [
        f"{index}. {domain} Knowledge",
        "",
        f"ID: {item.get('id') or 'Unknown ID'}",
    ]
    project = item.get("projectName") or item.get("projectId")
    if project:
        lines.append(f"Project: {project}")
    lines.append(f"Domain: {domain}")
    if isinstance(item.get("tags"), list) and item["tags"]:
        lines.append(f"Tags: {_join_tags(item['tags'])}")
    if "createdAt" in item:
        lines.append(f"Created: {format_timestamp(item['createdAt'])}")
    if "updatedAt" in item:
        lines.append(f"Updated: {format_timestamp(item['updatedAt'])}")
    if "text" in item:
        lines.extend(["", "Content:", item.get("text") or "No content available"])
    citations = item.get("citations")
    if isinstance(citations, list) and citations:
        lines.extend(["", "Citations:"])
        lines.extend(f"{n}. {citation}" for n, citation in enumerate(citations, start=1))
    return "\n".join(lines) + "\n"


def render_knowledge(page: ProjectedPage, pagination: PaginationInfo) -> str:
    """Render a knowledge page as a repository listing."""
    summary = (
        "Knowledge Repository\n\n"
        f"Total Items: {pagination.total}\n"
        f"Page: {pagination.page} of {pagination.total_pages}\n"
        f"Displaying: {min(pagination.limit, len(page.items))} item(s) per page\n"
    )
    if not page.items:
        return f"{summary}\nNo knowledge items matched the specified criteria"

    sections = SEPARATOR.join(
        _render_knowledge_item(index, item) for index, item in enumerate(page.items, start=1)
    )
    hint = ""
    if pagination.total_pages > 1:
        hint = (
            "\n\nPagination Controls:\n"
            f"Viewing page {pagination.page} of {pagination.total_pages}."
        )
        if pagination.page < pagination.total_pages:
            hint += "\nUse 'page' parameter to navigate to additional results."
    return f"{summary}\n{sections}{hint}"


RENDERERS: dict[str, Callable[[ProjectedPage, PaginationInfo], str]] = {
    "project": render_projects,
    "task": render_tasks,
    "knowledge": render_knowledge,
}


def render_narrative(page: ProjectedPage, pagination: PaginationInfo) -> str:
    """Render a page with the renderer registered for its kind.

    Raises:
        KeyError: If the page kind has no renderer.
    """
    return RENDERERS[page.kind](page, pagination)
