"""
Discord integration for Modguard.

- **cogs/message_listener.py**: Feeds guild messages into the moderation service.
- **cogs/cases_cmds.py**: ``/cases view`` and ``/cases remove`` for staff.
- **cogs/events_listener.py**: Ready/presence logging and the command error boundary.
"""
