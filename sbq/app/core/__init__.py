"""Shared core values for the sbq application."""

SERVICE_NAME = "sbq"
