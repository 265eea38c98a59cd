from prometheus_client import Counter


cron_runs_total = Counter(
    "reminder_cron_runs_total",
    "Total cron invocations per reminder job",
    ["job"],
)

reminders_sent_total = Counter(
    "reminders_sent_total",
    "Total reminders delivered to the messaging gateway",
    ["job"],
)

reminders_failed_total = Counter(
    "reminders_failed_total",
    "Total reminders recorded as failed",
    ["job"],
)

reminders_skipped_duplicate_total = Counter(
    "reminders_skipped_duplicate_total",
    "Total reminders skipped because the event key was already reserved",
    ["job"],
)

gateway_requests_total = Counter(
    "reminder_gateway_requests_total",
    "Messaging gateway requests by outcome",
    ["channel", "outcome"],
)
