"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Send chat completions and return the raw response text.
- Translate Groq SDK failures (rate limit, timeout, connection) into typed errors.
"""
