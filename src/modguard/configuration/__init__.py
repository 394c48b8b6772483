"""
Configuration management for Modguard.

- **app_configuration.py**: File-locked YAML loader for ``config/app_config.yml``.
  Exposes the staff role and channel, server rules, the data directory and the
  typed moderation sections.

- **ai_settings.py**: Accessors for the OpenAI-compatible endpoint (base URL,
  model, timeout). The API key is read from the environment.

- **moderation_settings.py**: Frozen dataclasses for the spam, keyword filter,
  escalation, AI moderation and behaviour detection sections, with defaults.
"""
