"""Shared utilities for sqbind."""
