"""
Package an export tree as a gzipped tar archive
"""

import logging
import tarfile
from pathlib import Path
from typing import Union

from core.exceptions import PackagingError
from exporter.base import Archiver

logger = logging.getLogger(__name__)


class TarGzArchiver(Archiver):
    """
    Write ``<output_dir>/<archive_name>`` with the tree's contents at the root.

    Members are stored relative to the tree ("./users/...") so the archive
    unpacks into the current directory, like ``tar -zcf name -C dir .``.
    """

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def package(self, directory: Path, archive_name: str) -> Path:
        target = self.output_dir / archive_name

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with tarfile.open(target, "w:gz") as tar:
                tar.add(str(directory), arcname=".")
        except (OSError, tarfile.TarError) as e:
            # never leave a half-written archive behind
            if target.is_file():
                target.unlink()
            raise PackagingError(
                "Failed to package export directory",
                context={"directory": str(directory), "archive": str(target)},
                original_exception=e
            )

        logger.info(f"Packaged {directory} into {target}")
        return target
