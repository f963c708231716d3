"""Prometheus metrics for the dispatch backend.

Counters for the task lifecycle and notification side effects, plus request
latency for the HTTP surface.
"""

from prometheus_client import Counter, Histogram

# Task creation
tasks_created_total = Counter(
    "dispatchlog_tasks_created_total",
    "Total task rows created",
    ["kind"]  # kind: standard|notice
)

# Lifecycle actions
task_actions_total = Counter(
    "dispatchlog_task_actions_total",
    "Task lifecycle actions processed",
    ["action_type", "outcome"]  # outcome: committed|validation_error|permission_denied|not_found
)

# Best-effort side effects
notification_failures_total = Counter(
    "dispatchlog_notification_failures_total",
    "Notification dispatches that failed and were swallowed",
    ["event"]  # event: assigned|forwarded|rejected|notice|submitted|reminder|deadline
)

reminders_sent_total = Counter(
    "dispatchlog_reminders_sent_total",
    "Reminder emails sent (unread notifications and approaching deadlines)"
)

# HTTP surface
http_request_duration_seconds = Histogram(
    "dispatchlog_http_request_duration_seconds",
    "Request latency by route template",
    ["method", "route", "status"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
