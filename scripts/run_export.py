"""
Produce a Tender import archive from a Zendesk site.

Usage:
    python scripts/run_export.py -e <email> -p <password> -s <subdomain>
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from core.config import settings
from core.exceptions import ExportException
from core.logging import setup_logging
from exporter.extractors.zendesk_client import ZendeskClient
from exporter.loaders.archive_store import ArchiveStore, ExportSession
from exporter.runner import ZendeskExporter, format_results
from exporter.transformers.text_extraction import build_text_extractor

logger = logging.getLogger(__name__)


async def _export(exporter: ZendeskExporter) -> Path:
    async with exporter.client:
        return await exporter.run()


@click.command()
@click.option("--email", "-e", required=True, help="user email address")
@click.option("--password", "-p", required=True, help="user password")
@click.option("--subdomain", "-s", required=True, help="subdomain")
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory the archive is written to (default: OUTPUT_DIR)",
)
@click.option("--buffer/--no-buffer", default=None, help="Keep entities in memory until the archive is written")
@click.option(
    "--text-extractor",
    type=click.Choice(["markdownify", "html2text"]),
    default=None,
    help="How HTML bodies are converted to text (default: TEXT_EXTRACTOR)",
)
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def main(
    email: str,
    password: str,
    subdomain: str,
    output_dir: Optional[Path],
    buffer: Optional[bool],
    text_extractor: Optional[str],
    log_level: Optional[str],
):
    """Export users, forums and open tickets into export_<subdomain>.tgz"""
    setup_logging(log_level)

    store = None
    exporter = None
    try:
        extractor = build_text_extractor(
            text_extractor or settings.TEXT_EXTRACTOR,
            settings.HTML2TEXT_COMMAND,
        )
        client = ZendeskClient(subdomain, email, password)
        session = ExportSession.create(
            subdomain,
            output_dir or settings.OUTPUT_DIR,
            settings.BUFFER_ENTITIES if buffer is None else buffer,
        )
        store = ArchiveStore(session)
        exporter = ZendeskExporter(client, store, extractor)

        export_file = asyncio.run(_export(exporter))
        click.echo(f"your import file is {export_file}")

    except ExportException as e:
        logger.error(f"Export failed: {e.message}", extra={"error_context": e.to_dict()})
        click.echo("FAILED WITH AN ERROR", err=True)
        click.echo(str(e), err=True)
        sys.exit(1)

    finally:
        # the runner discards its own working directory once it exists
        if exporter is None and store is not None:
            store.discard()
        if exporter is not None:
            click.echo(format_results(exporter.stats, exporter.report))


if __name__ == "__main__":
    main()
