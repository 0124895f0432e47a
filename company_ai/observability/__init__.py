"""
Observability module for the Company AI engine.

Structured logging with JSON output in production and a per-request id
carried through every log line.
"""
