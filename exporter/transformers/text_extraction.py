"""
HTML to plain text conversion for discussion and comment bodies
"""

import logging
import os
import re
import shutil
import subprocess
import tempfile
from typing import Optional

from markdownify import ATX, markdownify

from core.exceptions import PrerequisiteError, TextExtractionError
from exporter.base import TextExtractor

logger = logging.getLogger(__name__)


class MarkdownifyTextExtractor(TextExtractor):
    """In-process conversion to Markdown-flavoured plain text."""

    def __init__(self, heading_style: str = ATX):
        self.heading_style = heading_style

    def extract_plain_text(self, html: Optional[str]) -> str:
        if not html:
            return ""
        result = markdownify(
            html,
            heading_style=self.heading_style,
            bullets="-",
            strip=["script", "style"],
        )
        # block elements leave runs of blank lines behind
        return re.sub(r"\n{3,}", "\n\n", result).strip()


class Html2TextCommandExtractor(TextExtractor):
    """
    Convert bodies with an external ``html2text`` executable.

    Each body is written to a scratch file, converted, and the scratch file
    is removed straight after the command returns.
    """

    def __init__(self, command: str = "html2text", scratch_dir: Optional[str] = None):
        executable = shutil.which(command)
        if executable is None:
            raise PrerequisiteError(
                f"missing prerequisite: {command} is not in your PATH",
                context={"command": command}
            )
        self.command = command
        self.executable = executable
        self.scratch_dir = scratch_dir

    def extract_plain_text(self, html: Optional[str]) -> str:
        if not html:
            return ""

        fd, scratch_path = tempfile.mkstemp(suffix="_body.html", dir=self.scratch_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as scratch:
                scratch.write(html)
            completed = subprocess.run(
                [self.executable, scratch_path],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise TextExtractionError(
                f"Could not run {self.command}",
                context={"command": self.command},
                original_exception=e
            )
        finally:
            if os.path.exists(scratch_path):
                os.unlink(scratch_path)

        if completed.returncode != 0:
            raise TextExtractionError(
                f"{self.command} exited with status {completed.returncode}",
                context={"command": self.command, "returncode": completed.returncode, "stderr": completed.stderr[:500]}
            )
        return completed.stdout


def build_text_extractor(name: str, command: str = "html2text") -> TextExtractor:
    """
    Build the configured extractor.

    Raises:
        PrerequisiteError: If ``name`` is "html2text" and the command is missing
        ValueError: For an unknown extractor name
    """
    if name == "markdownify":
        return MarkdownifyTextExtractor()
    if name == "html2text":
        return Html2TextCommandExtractor(command)
    raise ValueError(f"Unknown text extractor: {name}")
