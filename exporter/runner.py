# ============================================================================
# File: exporter/runner.py
# Description: Export orchestrator, Zendesk API -> Tender import archive
# ============================================================================
"""
Export Runner - drives one Zendesk site into a Tender import archive.

Stages run strictly in sequence, each completing before the next starts:

1. Users - fill the author id -> email cache
2. Categories - one per forum, with its entries as discussions
3. Open tickets - collected in a synthetic "Tickets" category
4. Packaging - the archive store writes ``export_<site>.tgz``

Records that fail validation end up in the store's report; any
ExportException aborts the run and removes the working directory.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.exceptions import APIExtractionError
from exporter.base import TextExtractor
from exporter.extractors.zendesk_client import ZendeskClient
from exporter.loaders.archive_store import ArchiveStore
from exporter.transformers.zendesk_mapper import ZendeskMapper

logger = logging.getLogger(__name__)


class ZendeskExporter:
    """
    Export orchestrator

    Responsibilities:
    - Pull users, forums, entries, posts and open tickets
    - Map them onto canonical entities
    - Resolve author ids to emails
    - Hand everything to the archive store
    """

    def __init__(self, client: ZendeskClient, store: ArchiveStore, text_extractor: TextExtractor):
        self.client = client
        self.store = store
        self.text_extractor = text_extractor
        self.mapper = ZendeskMapper()
        self._author_email: Dict[str, Optional[str]] = {}

    def __str__(self) -> str:
        return f"{self.__class__.__name__} ({self.client.subdomain})"

    @property
    def stats(self) -> Dict[str, int]:
        return self.store.stats

    @property
    def report(self) -> List[str]:
        return self.store.report

    async def run(self) -> Path:
        """
        Run every stage and package the archive.

        Returns:
            Path of the written archive

        Raises:
            ExportException: Any fatal error; no archive is left behind
        """
        try:
            await self.export_users()
            await self.export_categories()
            await self.export_tickets()
            return self.create_archive()
        except Exception:
            logger.error(f"{self}: export aborted, discarding {self.store.session.work_dir}")
            self.store.discard()
            raise

    async def export_users(self):
        logger.info(f"{self}: exporting users")
        for user in await self.client.users():
            self._author_email[str(user.get("id"))] = user.get("email")
            logger.info(f"{self}: exporting user {user.get('email')}")
            self.store.add_user(self.mapper.user(user))

    async def export_categories(self):
        logger.info(f"{self}: exporting categories")
        for forum in await self.client.forums():
            logger.info(f"{self}: exporting category {forum.get('name')}")
            category = self.store.add_category(self.mapper.category(forum))
            if category is None:
                logger.warning(f"{self}: skipping discussions of rejected forum {forum.get('id')}")
                continue
            await self.export_discussions(forum.get("id"), category)

    async def export_discussions(self, forum_id, category_key: str):
        for entry in await self.client.entries(forum_id):
            entry_author = await self.author_email(entry.get("submitter_id"))
            comments = [
                self.mapper.comment(entry, self.text_extractor.extract_plain_text(entry.get("body")), entry_author)
            ]
            for post in await self.client.posts(entry.get("id")):
                comments.append(
                    self.mapper.comment(
                        post,
                        self.text_extractor.extract_plain_text(post.get("body")),
                        await self.author_email(post.get("user_id")),
                    )
                )

            logger.info(f"{self}: exporting discussion {entry.get('title')}")
            self.store.add_discussion(category_key, self.mapper.discussion(entry, entry_author, comments))

    async def export_tickets(self):
        logger.info(f"{self}: exporting open tickets")
        tickets = await self.client.open_tickets()
        if not tickets:
            return

        logger.info(f"{self}: creating ticket category")
        category = self.store.add_category(self.mapper.ticket_category())
        for ticket in tickets:
            comments = [
                self.mapper.comment(post, post.get("value"), await self.author_email(post.get("author_id")))
                for post in ticket.get("comments") or []
            ]
            logger.info(f"{self}: exporting ticket {ticket.get('nice_id')}")
            self.store.add_discussion(
                category,
                self.mapper.ticket(ticket, await self.author_email(ticket.get("submitter_id")), comments),
            )

    def create_archive(self) -> Path:
        export_file = self.store.write_archive()
        logger.info(f"{self}: created {export_file}")
        return export_file

    async def author_email(self, user_id: Any) -> Optional[str]:
        """
        Resolve a Zendesk user id to an email.

        The cache is filled while exporting users; unknown ids (deleted
        accounts and the like) are fetched once. A failed lookup yields None,
        which later fails validation instead of aborting the export.
        """
        if user_id is None:
            return None

        key = str(user_id)
        if key not in self._author_email:
            try:
                user = await self.client.user(user_id)
                self._author_email[key] = user.get("email") if isinstance(user, dict) else None
            except APIExtractionError as e:
                logger.warning(f"{self}: could not resolve author {user_id}: {e.message}")
                self._author_email[key] = None
        return self._author_email[key]


def format_results(stats: Dict[str, int], report: List[str]) -> str:
    """Render the RESULTS block shown to the operator at the end of a run."""
    lines = ["RESULTS", json.dumps(stats, sort_keys=True)]
    lines.extend(report)
    return "\n".join(lines)
