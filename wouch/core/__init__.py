"""Wouch – core infrastructure (configuration, logging, database, ids)."""
