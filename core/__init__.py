"""
Core utilities and configuration for the Zendesk to Tender exporter.

This package provides foundational components used throughout the export:

Modules:
    config: Application configuration and environment variable management
    exceptions: Exception hierarchy for fatal errors
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.exceptions import APIExtractionError, ArchiveError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()
"""
