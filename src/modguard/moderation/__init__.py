"""
Core moderation logic for Modguard.

- **keyword_filter.py**: Leetspeak-aware banned term matching.
- **spam_detector.py**: Repetition checks over a per-user sliding window.
- **moderation_parsing.py**: Parsing of AI verdict replies (fails open to SAFE).
- **escalation.py**: Warning → timeout/kick → ban recommendation ladder.
- **action_executor.py**: Discord side effects and case recording.
- **moderation_service.py**: Per-message pipeline tying the pieces together.
"""
