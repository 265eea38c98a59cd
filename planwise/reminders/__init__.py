"""Reminder engine (cron processors, delivery ledger, templates, gateway).

An external scheduler calls the cron endpoints every few minutes; each
invocation decides which WhatsApp reminders are due right now and sends
each logical event at most once, using the notification_deliveries table
as the idempotency ledger.
"""
