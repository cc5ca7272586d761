"""
Abstract capabilities the export pipeline is wired with
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional


class TextExtractor(ABC):
    """Converts rich HTML bodies into the plain text stored in comments."""

    @abstractmethod
    def extract_plain_text(self, html: Optional[str]) -> str:
        """
        Convert one HTML body.

        Args:
            html: Body as returned by the remote API (may be empty)

        Returns:
            Plain text, "" for an empty body
        """
        pass


class Archiver(ABC):
    """Packages a finished export tree into a single archive file."""

    @abstractmethod
    def package(self, directory: Path, archive_name: str) -> Path:
        """
        Package ``directory`` into ``archive_name``.

        Returns:
            Path of the written archive
        """
        pass
