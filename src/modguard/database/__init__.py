"""
Persistence for Modguard.

Three independent JSON documents, each wrapped by a :class:`JsonDocumentStore`
that serializes every read-modify-write under its own lock:

- **case_log.py**: ``cases.json``, the append-only list of moderation cases.
- **violation_store.py**: ``violations.json``, escalation counters per user.
- **message_history.py**: ``message_history.json``, bounded message windows
  per tracker scope and user.
"""
