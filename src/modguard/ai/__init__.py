"""
AI classification for Modguard.

- **llm_engine.py**: AsyncOpenAI wrapper for any OpenAI-compatible endpoint
  (Groq, Gemini, vLLM, LM Studio). Returns None instead of raising.
- **prompts.py**: Prompt templates for rule violations and bot-like behaviour.
- **ai_classifier.py**: ``AIClassifier`` (single message, with optional reply
  context) and ``BehaviourClassifier`` (a user's recent message sequence).
  Both fail open to SAFE.
"""
