"""Reminder scheduling and delivery service for the planner app.

Exposes the cron endpoints an external scheduler calls to send task-start
and weekly-review WhatsApp reminders, plus the notification settings sync
used by the web client.
"""
