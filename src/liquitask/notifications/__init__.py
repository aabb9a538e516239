"""
Notification subsystem.

Components:
- reminders.py: due-soon/due-now timers and the overdue polling loop
- console_notifier.py: Notifier that prints notices to the console
"""
