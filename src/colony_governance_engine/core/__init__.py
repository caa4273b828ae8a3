"""Core domain types and helpers for the governance engine.

Modules:
- models: immutable input entities (activity snapshot, proposals, PRs, comments)
- temporal: timestamp parsing, hour arithmetic, median and rounding
"""
