"""Text completion through CLI agents (claude, codex, gemini)."""
