"""
Export pipeline components: Zendesk API -> Tender import archive.

Modules:
    base: Abstract text extraction and archiving capabilities
    runner: Export orchestrator (users, categories, tickets, packaging)

Subpackages:
    extractors: Zendesk API client with pagination and throttle handling
    transformers: Record mapping and HTML body conversion
    loaders: Key generation, validation, archive store and packaging

Architecture:
    1. Extract - Walk the paginated remote API, waiting out 503 throttles
    2. Transform - Map remote records onto canonical entity fields
    3. Load - Validate, key and write each entity into the export tree

Usage:
    from exporter.extractors.zendesk_client import ZendeskClient
    from exporter.loaders.archive_store import ArchiveStore, ExportSession
    from exporter.runner import ZendeskExporter
    from exporter.transformers.text_extraction import MarkdownifyTextExtractor

Example:
    session = ExportSession.create("tacotown")
    async with ZendeskClient("tacotown", email, password) as client:
        exporter = ZendeskExporter(client, ArchiveStore(session), MarkdownifyTextExtractor())
        archive = await exporter.run()

Error Handling:
    Data quality problems are collected in ``ArchiveStore.report``.
    Everything in core.exceptions is fatal and aborts the run.
"""
