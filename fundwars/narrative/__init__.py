"""Narrative text generation boundary (AI provider and canned fallbacks)."""
