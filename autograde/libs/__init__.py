"""Shared libraries: configuration, LLM agents and the submission store."""
