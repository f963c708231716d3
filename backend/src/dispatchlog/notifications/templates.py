"""HTML email rendering for task notifications.

Every interpolated value is HTML-escaped. Templates return ``(subject, html)``
and never touch the transport.
"""

import math
from datetime import datetime
from html import escape
from typing import List, Optional, Tuple

from ..models.base import as_utc

DEFAULT_SUBTITLE = "Receive & Dispatch Logging System"
DEFAULT_FOOTER = "Automated message from the Receive & Dispatch Logging System."

_BOX_NEUTRAL = "background-color:#f8fafc;border:1px solid #e5e7eb;"
_BOX_MESSAGE = "background-color:#fff7ed;border:1px solid #fed7aa;"
_BOX_NOTICE = "background-color:#eff6ff;border:1px solid #bfdbfe;"
_BOX_REJECTION = "background-color:#fee2e2;border:1px solid #fecaca;"


def render_email_template(
    title: str,
    body: str,
    subtitle: Optional[str] = None,
    button_label: Optional[str] = None,
    button_url: Optional[str] = None,
    footer_note: str = DEFAULT_FOOTER,
) -> str:
    """Wrap an already-escaped body in the common layout."""
    subtitle_html = (
        f'<p style="margin:8px 0 0 0;font-size:14px;color:#6b7280;">{escape(subtitle)}</p>'
        if subtitle else ""
    )
    button_html = ""
    if button_label and button_url:
        button_html = (
            '<div style="margin-top:24px;text-align:center;">'
            f'<a href="{escape(button_url, quote=True)}" style="display:inline-block;'
            'background-color:#1e3a8a;color:#ffffff;padding:12px 28px;border-radius:6px;'
            f'text-decoration:none;font-weight:600;">{escape(button_label)}</a></div>'
        )

    return (
        '<!DOCTYPE html><html lang="en"><head><meta charset="UTF-8" />'
        f'<title>{escape(title)}</title></head>'
        '<body style="margin:0;padding:20px 0;background-color:#f5f5f5;'
        'font-family:Arial,Helvetica,sans-serif;color:#111827;">'
        '<div style="max-width:600px;margin:0 auto;background-color:#ffffff;'
        'border:1px solid #e5e7eb;border-radius:8px;">'
        f'<div style="padding:24px 24px 16px 24px;text-align:center;">'
        f'<h1 style="margin:0;font-size:20px;">{escape(title)}</h1>{subtitle_html}</div>'
        f'<div style="padding:0 24px 24px 24px;font-size:14px;line-height:1.6;">{body}{button_html}</div>'
        '<div style="padding:16px;text-align:center;font-size:12px;color:#9ca3af;'
        f'border-top:1px solid #e5e7eb;">{escape(footer_note)}</div>'
        '</div></body></html>'
    )


def task_url(base_url: str, task_id) -> str:
    return f"{base_url.rstrip('/')}/tasks/{task_id}"


def format_due_date(due: datetime) -> str:
    return as_utc(due).strftime("%A, %B %d, %Y %H:%M UTC")


def urgency_note(due: Optional[datetime], now: datetime) -> str:
    """Human label for how close a due date is.

    Examples:
        "Overdue by 2 day(s)", "Due today", "Due in 1 day", "Due in 3 day(s)"
    """
    if due is None:
        return "Scheduled task"

    days_left = math.ceil((as_utc(due) - as_utc(now)).total_seconds() / 86400)
    if days_left < 0:
        return f"Overdue by {abs(days_left)} day(s)"
    if days_left == 0:
        return "Due today"
    if days_left == 1:
        return "Due in 1 day"
    return f"Due in {days_left} day(s)"


def _paragraph(text: str) -> str:
    return f"<p>{escape(text)}</p>"


def _heading(text: str) -> str:
    return f"<p><strong>{escape(text)}</strong></p>"


def _box(text: str, style: str) -> str:
    return (
        f'<div style="margin:8px 0;padding:12px;{style}border-radius:6px;">'
        f'{escape(text)}</div>'
    )


def _summary(items: List[Tuple[str, str]]) -> str:
    rows = "".join(
        f"<li><strong>{escape(label)}:</strong> {escape(value)}</li>"
        for label, value in items
    )
    return f'<ul style="padding-left:18px;margin:12px 0;color:#374151;">{rows}</ul>'


def _reference_name(row) -> str:
    return row.name if row is not None else "Unknown"


def task_assigned_email(
    task,
    creator_name: str,
    base_url: str,
    now: datetime,
    lead_message: Optional[str] = None,
) -> Tuple[str, str]:
    """New-task email sent to the holder.

    ``lead_message`` replaces the issuance message box; reminders use it to
    prepend their own text.
    """
    sections = [
        _paragraph("Hello,"),
        f"<p>A new task <strong>{escape(task.record_number)}</strong> has been assigned to you.</p>",
        _heading("Summary"),
        _summary([
            ("Priority", _reference_name(task.priority)),
            ("Complexity", _reference_name(task.complexity)),
            ("Due date", format_due_date(task.assigned_completion_date)),
            ("Urgency", urgency_note(task.assigned_completion_date, now)),
            ("Assigned by", creator_name),
        ]),
        _heading("Description"),
        _box(task.description_of_work, _BOX_NEUTRAL),
    ]

    message = lead_message or task.issuance_message
    if message:
        sections += [_heading("Issuance message"), _box(message, _BOX_MESSAGE)]

    if task.attachments:
        sections.append(_paragraph("An attachment is available with this task inside the system."))

    sections.append(_paragraph("Please review the task and update the status once your action is complete."))

    html = render_email_template(
        title="New Task Assigned",
        subtitle=DEFAULT_SUBTITLE,
        body="".join(sections),
        button_label="Open Task",
        button_url=task_url(base_url, task.id),
    )
    return f"New Task Assigned: {task.record_number}", html


def task_forwarded_email(
    task,
    forwarded_by_name: str,
    forwarded_by_email: str,
    message: Optional[str],
    base_url: str,
    now: datetime,
) -> Tuple[str, str]:
    sections = [
        _paragraph("Hello,"),
        f"<p>The task <strong>{escape(task.record_number)}</strong> has been forwarded to you "
        f"by {escape(forwarded_by_name)} ({escape(forwarded_by_email)}).</p>",
        _heading("Summary"),
        _summary([
            ("Priority", _reference_name(task.priority)),
            ("Complexity", _reference_name(task.complexity)),
            ("Due date", format_due_date(task.assigned_completion_date)),
            ("Urgency", urgency_note(task.assigned_completion_date, now)),
        ]),
        _heading("Description"),
        _box(task.description_of_work, _BOX_NEUTRAL),
    ]
    if message:
        sections += [_heading("Forward message"), _box(message, _BOX_MESSAGE)]
    sections.append(_paragraph(
        "Please continue the work on this task and update the status once action is completed."
    ))

    html = render_email_template(
        title="Task Forwarded",
        subtitle=DEFAULT_SUBTITLE,
        body="".join(sections),
        button_label="Open Task",
        button_url=task_url(base_url, task.id),
    )
    return f"Task Forwarded: {task.record_number}", html


def task_rejected_email(
    task,
    rejected_by_name: str,
    rejected_by_email: str,
    reason: str,
    base_url: str,
) -> Tuple[str, str]:
    sections = [
        _paragraph("Hello,"),
        f"<p>The task <strong>{escape(task.record_number)}</strong> has been rejected "
        f"by {escape(rejected_by_name)} ({escape(rejected_by_email)}).</p>",
        _heading("Rejection reason"),
        _box(reason, _BOX_REJECTION),
        _heading("Summary"),
        _summary([
            ("Priority", _reference_name(task.priority)),
            ("Complexity", _reference_name(task.complexity)),
            ("Original due date", format_due_date(task.assigned_completion_date)),
        ]),
        _heading("Description"),
        _box(task.description_of_work, _BOX_NEUTRAL),
        _paragraph("Please review the feedback, make the necessary updates, and resubmit the task."),
    ]

    html = render_email_template(
        title="Task Rejected",
        subtitle="Action required",
        body="".join(sections),
        button_label="Review Task",
        button_url=task_url(base_url, task.id),
    )
    return f"Task Rejected: {task.record_number}", html


def notice_email(task, creator_name: str, base_url: str) -> Tuple[str, str]:
    sections = [
        _paragraph("Hello,"),
        f"<p>The notice <strong>{escape(task.record_number)}</strong> has been issued "
        f"by {escape(creator_name)}.</p>",
    ]
    if task.issuance_message:
        sections += [_heading("Notice message"), _box(task.issuance_message, _BOX_NOTICE)]
    if task.description_of_work:
        sections += [_heading("Details"), _box(task.description_of_work, _BOX_NEUTRAL)]
    if task.attachments:
        sections.append(_paragraph("An attachment is available with this notice."))
    sections.append(_paragraph("Please review and acknowledge this notice within the system."))

    html = render_email_template(
        title="Notice Issued",
        subtitle=task.record_number,
        body="".join(sections),
        button_label="View Notice",
        button_url=task_url(base_url, task.id),
    )
    return f"Notice: {task.record_number}", html
