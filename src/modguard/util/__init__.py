"""
Utility functions and helpers for Modguard.

- **logger.py**: Centralized logging configuration with colored console output
  and a rotating log file. Suppresses noise from verbose libraries (py-cord,
  openai, httpx). Uses prompt_toolkit for console output.

- **discord_utils.py**: Stateless Discord helpers: staff role checks, message
  deletion (single and by time window), temporary warnings, reply context
  lookup, and the incident embeds posted to the staff channel.
"""
