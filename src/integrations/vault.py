"""
Vault Integration

Reads and writes project notes in an Obsidian vault via direct file access.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml

from taskline.errors import IOFailure
from taskline.frontmatter import is_project

from .base import DocumentHandle, DocumentStore


class VaultIntegration(DocumentStore):
    """Filesystem-backed document store rooted at an Obsidian vault"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize vault integration

        Args:
            config: 'vault' section of the main config file
        """
        self.config = config
        self.logger = logging.getLogger("TaskView.Vault")

        self.vault_path = Path(config['path']).expanduser()
        self.project_type = config.get('project_type', 'Project')
        self.ignore_dirs = set(config.get('ignore_dirs', ['.obsidian', '.trash']))

        if not self.vault_path.exists():
            self.logger.warning(f"Obsidian vault not found: {self.vault_path}")

    async def list_documents(self) -> List[DocumentHandle]:
        """
        List every markdown note in the vault

        Returns:
            Handles sorted by vault-relative path
        """
        return await asyncio.to_thread(self._scan_markdown_files)

    async def list_eligible_documents(self) -> List[DocumentHandle]:
        """
        List notes whose frontmatter declares 'type: Project'

        Notes with unreadable or malformed frontmatter are skipped with a
        warning.
        """
        handles = await self.list_documents()
        contents = await asyncio.gather(
            *(self._read_quietly(handle) for handle in handles)
        )

        eligible = []
        for handle, content in zip(handles, contents):
            if content is None:
                continue
            try:
                if is_project(content, self.project_type):
                    eligible.append(handle)
            except yaml.YAMLError as e:
                self.logger.warning(f"Skipping {handle.path}: invalid frontmatter ({e})")

        self.logger.debug(f"Found {len(eligible)} project notes out of {len(handles)}")
        return eligible

    async def read_document(self, handle: DocumentHandle) -> str:
        path = self._resolve(handle)
        try:
            return await asyncio.to_thread(path.read_text, encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(f"Failed to read {handle.path}: {e}") from e

    async def write_document(self, handle: DocumentHandle, text: str) -> None:
        path = self._resolve(handle)
        try:
            await asyncio.to_thread(self._write_atomic, path, text)
        except (OSError, UnicodeError) as e:
            raise IOFailure(f"Failed to write {handle.path}: {e}") from e
        self.logger.debug(f"Wrote {handle.path} ({len(text)} chars)")

    def _resolve(self, handle: DocumentHandle) -> Path:
        return self.vault_path / handle.path

    def _write_atomic(self, path: Path, text: str) -> None:
        """
        Replace the note with text via a sibling temp file

        Notes read with universal newlines; a note that used '\\r\\n' on
        disk is written back with '\\r\\n'.
        """
        newline = '\r\n' if path.exists() and b'\r\n' in path.read_bytes() else '\n'
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8', newline=newline) as f:
                f.write(text)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    async def _read_quietly(self, handle: DocumentHandle):
        try:
            return await self.read_document(handle)
        except IOFailure as e:
            self.logger.warning(str(e))
            return None

    def _scan_markdown_files(self) -> List[DocumentHandle]:
        if not self.vault_path.exists():
            return []

        handles = []
        for path in self.vault_path.rglob('*.md'):
            relative = path.relative_to(self.vault_path)
            if any(part in self.ignore_dirs for part in relative.parts[:-1]):
                continue
            handles.append(DocumentHandle(path=relative.as_posix(), name=path.stem))

        handles.sort(key=lambda h: h.path)
        return handles
