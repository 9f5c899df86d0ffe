"""
TaskHub — Project and task tracking core.

Members create projects, assign teammates and track tasks whose weighted
progress rolls up into each project's progress. Reads for the dashboard go
through a two-tier (memory + Redis) TTL cache that writers invalidate after
every persisted change.
"""

__version__ = "1.0.0"
