"""
Archive store: validates, keys and persists Tender import entities.

The store owns every entity of one export run. Entities are either written
to the session's working directory as soon as they are accepted
(write-through, the default) or kept in memory and written by
``write_archive()`` (buffered). Both modes produce the same tree:

    users/<normalized-email>.json
    categories/<category-id>.json
    categories/<category-id>/<n>.json
    sections/<section-id>.json
    sections/<section-id>/<n>.json

Example:
    session = ExportSession.create("tacotown")
    archive = ArchiveStore(session)

    archive.add_user({"email": "frank@tacotown.com", "state": "support"})
    category = archive.add_category({"name": "Tacos"})
    archive.add_discussion(category, {
        "title": "your tacos",
        "author_email": "frank@tacotown.com",
        "comments": [{"author_email": "frank@tacotown.com", "body": "Good day, sir."}],
    })

    path = archive.write_archive()
    if archive.report:
        print("Problems reported:", *archive.report, sep="\\n")
"""

import logging
import shutil
import tempfile
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from core.exceptions import ArchiveError
from exporter.base import Archiver
from exporter.loaders import keys
from exporter.loaders.packaging import TarGzArchiver
from exporter.loaders.validator import validate
from schemas.entities import EntityType, ImportEntity

logger = logging.getLogger(__name__)

_PARENT_DIRS = {
    keys.CATEGORY_PREFIX: "categories",
    keys.SECTION_PREFIX: "sections",
}


@dataclass(frozen=True)
class ExportSession:
    """
    Working directory and write mode of one export run.

    Attributes:
        site: Site name; names the archive ``export_<site>.tgz``
        work_dir: Directory the export tree is assembled in
        buffered: Keep entities in memory until ``write_archive()``
    """

    site: str
    work_dir: Path
    buffered: bool = False

    @classmethod
    def create(
        cls,
        site: str,
        base_dir: Union[str, Path] = ".",
        buffered: bool = False
    ) -> "ExportSession":
        """Create a fresh, uniquely named working directory under ``base_dir``."""
        if not site:
            raise ArchiveError("A site name is required to start an export")

        base = Path(base_dir)
        try:
            base.mkdir(parents=True, exist_ok=True)
            work_dir = Path(tempfile.mkdtemp(prefix=f".{site}-export-", dir=base))
        except OSError as e:
            raise ArchiveError(
                f"Cannot create a working directory in {base}",
                context={"base_dir": str(base)},
                original_exception=e
            )
        return cls(site=site, work_dir=work_dir, buffered=buffered)

    @property
    def archive_name(self) -> str:
        return f"export_{self.site}.tgz"

    def path(self, relative: str) -> Path:
        return self.work_dir / relative


class ArchiveStore:
    """
    Canonical representation of one export.

    Validation problems are data-quality issues: they are appended to
    ``report``, counted under ``invalid:<type>`` in ``stats`` and the entity
    is dropped. Contract violations (a discussion without a known category)
    raise ArchiveError.
    """

    def __init__(self, session: ExportSession, archiver: Optional[Archiver] = None):
        self.session = session
        self.archiver = archiver or TarGzArchiver(session.work_dir.parent)
        self._report: List[str] = []
        self._stats: Dict[str, int] = {}
        # "user" / "category" / "section" and every parent key -> [(path, entity)]
        self._buffer: Dict[str, List[Tuple[str, ImportEntity]]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)
        self._parent_keys = set()
        self._closed = False

    @property
    def site(self) -> str:
        return self.session.site

    @property
    def buffered(self) -> bool:
        return self.session.buffered

    @property
    def report(self) -> List[str]:
        return list(self._report)

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    # ------------------------------------------------------------------
    # Adding entities
    # ------------------------------------------------------------------

    def add_user(self, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Returns the stored fields, or None when the user was rejected."""
        entity = self._validate_and_store(EntityType.USER, {"state": "user", **fields})
        return self._fields(entity)

    def add_category(self, fields: Mapping[str, Any]) -> Optional[str]:
        """Returns the category key needed to add discussions."""
        entity = self._validate_and_store(EntityType.CATEGORY, fields)
        return keys.category_key(fields) if entity else None

    def add_section(self, fields: Mapping[str, Any]) -> Optional[str]:
        """Returns the section key needed to add kb articles."""
        entity = self._validate_and_store(EntityType.SECTION, fields)
        return keys.section_key(fields) if entity else None

    def add_discussion(self, category_key: Optional[str], fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        self._check_parent_key("add_discussion", keys.CATEGORY_PREFIX, category_key)
        entity = self._validate_and_store(EntityType.DISCUSSION, fields, parent_key=category_key)
        return self._fields(entity)

    def add_kb(self, section_key: Optional[str], fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        self._check_parent_key("add_kb", keys.SECTION_PREFIX, section_key)
        entity = self._validate_and_store(EntityType.KB, fields, parent_key=section_key)
        return self._fields(entity)

    # ------------------------------------------------------------------
    # Buffered contents
    # ------------------------------------------------------------------

    @property
    def users(self) -> List[Dict[str, Any]]:
        return self._buffered_fields(EntityType.USER.value)

    @property
    def categories(self) -> List[Dict[str, Any]]:
        return self._buffered_fields(EntityType.CATEGORY.value)

    @property
    def sections(self) -> List[Dict[str, Any]]:
        return self._buffered_fields(EntityType.SECTION.value)

    def discussions(self, category_key: Optional[str]) -> List[Dict[str, Any]]:
        if not category_key:
            raise ArchiveError("discussions: missing category key")
        return self._buffered_fields(category_key)

    def kbs(self, section_key: Optional[str]) -> List[Dict[str, Any]]:
        if not section_key:
            raise ArchiveError("kbs: missing section key")
        return self._buffered_fields(section_key)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def write_archive(self) -> Path:
        """
        Flush buffered entities, package the tree and remove it.

        Returns:
            Path of ``export_<site>.tgz``
        """
        self._ensure_open()
        try:
            if self.buffered:
                self._flush()
            archive = self.archiver.package(self.session.work_dir, self.session.archive_name)
        finally:
            self.discard()

        logger.info(f"Created {archive} ({self._stats})")
        return archive

    def discard(self):
        """Remove the working directory; the store accepts nothing afterwards."""
        self._closed = True
        if self.session.work_dir.exists():
            shutil.rmtree(self.session.work_dir)
            logger.debug(f"Removed {self.session.work_dir}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self):
        if self._closed:
            raise ArchiveError(
                "Archive already written or discarded",
                context={"site": self.site}
            )

    def _check_parent_key(self, operation: str, prefix: str, key: Optional[str]):
        if not key:
            raise ArchiveError(f"{operation}: missing {prefix} key")
        if keys.split_key(key)[0] != prefix or key not in self._parent_keys:
            raise ArchiveError(
                f"{operation}: unknown {prefix} key {key!r}",
                context={"key": key}
            )

    def _validate_and_store(
        self,
        entity_type: EntityType,
        fields: Mapping[str, Any],
        parent_key: Optional[str] = None
    ) -> Optional[ImportEntity]:
        self._ensure_open()

        result = validate(entity_type, fields)
        if not result.ok:
            self._report.extend(result.problems)
            self._count(f"invalid:{entity_type.value}")
            logger.warning(f"Rejected {entity_type.value}: {'; '.join(result.problems)}")
            return None

        entity = result.entity
        if parent_key is None:
            relative_path = self._top_level_path(entity_type, fields)
            buffer_key = entity_type.value
        else:
            self._counters[parent_key] += 1
            prefix, parent_id = keys.split_key(parent_key)
            relative_path = f"{_PARENT_DIRS[prefix]}/{parent_id}/{self._counters[parent_key]}.json"
            buffer_key = parent_key

        if entity_type is EntityType.CATEGORY:
            self._parent_keys.add(keys.category_key(fields))
        elif entity_type is EntityType.SECTION:
            self._parent_keys.add(keys.section_key(fields))

        if self.buffered:
            self._buffer[buffer_key].append((relative_path, entity))
        else:
            self._write(relative_path, entity)

        self._count(entity_type.value)
        return entity

    @staticmethod
    def _top_level_path(entity_type: EntityType, fields: Mapping[str, Any]) -> str:
        if entity_type is EntityType.USER:
            return f"users/{keys.user_filename(fields['email'])}.json"
        if entity_type is EntityType.CATEGORY:
            return f"categories/{keys.category_id(fields)}.json"
        return f"sections/{keys.section_id(fields)}.json"

    def _write(self, relative_path: str, entity: ImportEntity):
        path = self.session.path(relative_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(entity.to_json(), encoding="utf-8")
        except OSError as e:
            raise ArchiveError(
                f"Failed to write {relative_path}",
                context={"path": str(path)},
                original_exception=e
            )
        logger.debug(f"wrote {relative_path}")

    def _flush(self):
        for relative_path, entity in self._buffer[EntityType.USER.value]:
            self._write(relative_path, entity)

        for kind, prefix in ((EntityType.CATEGORY, keys.CATEGORY_PREFIX), (EntityType.SECTION, keys.SECTION_PREFIX)):
            # colliding ids overwrite the parent file; children are written once per key
            parent_keys = []
            for relative_path, entity in self._buffer[kind.value]:
                self._write(relative_path, entity)
                parent_key = f"{prefix}:{Path(relative_path).stem}"
                if parent_key not in parent_keys:
                    parent_keys.append(parent_key)
            for parent_key in parent_keys:
                for relative_path, entity in self._buffer[parent_key]:
                    self._write(relative_path, entity)

    def _buffered_fields(self, buffer_key: str) -> List[Dict[str, Any]]:
        if buffer_key not in self._buffer:
            return []
        return [entity.model_dump(exclude_unset=True) for _, entity in self._buffer[buffer_key]]

    def _count(self, key: str):
        self._stats[key] = self._stats.get(key, 0) + 1

    @staticmethod
    def _fields(entity: Optional[ImportEntity]) -> Optional[Dict[str, Any]]:
        return entity.model_dump(exclude_unset=True) if entity is not None else None
