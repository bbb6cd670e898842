"""ChatHistoryStore: durable archive of complete conversations.

The archive is a manifest file indexing every session plus one JSON file per
session:

    <data_dir>/chat-histories.json        {"histories": [...], "version": "1.0"}
    <data_dir>/chat-histories/<id>.json   {"id", "name", "createdAt", "modifiedAt", "contents"}

Reads fail soft (None / False / empty manifest); writes raise. Every mutation
re-reads the manifest before changing it, so entries written by other stores
in the meantime are kept. The store does no locking and assumes a single
writer per session id.
"""

import json
import logging
import random
import string
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from parley_server.sessions.types import (
    MANIFEST_VERSION,
    ChatHistory,
    HistoryManifest,
    HistorySummary,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChatHistoryStore:
    """Manifest + per-session file archive with age-based eviction."""

    def __init__(self, manifest_path: Path, histories_dir: Path) -> None:
        """Initialize the store. Call load_manifest() before use.

        Args:
            manifest_path: Path of the manifest JSON file
            histories_dir: Directory holding one JSON file per session
        """
        self.manifest_path = manifest_path
        self.histories_dir = histories_dir
        self.manifest = HistoryManifest()

    # --- Manifest ---

    def load_manifest(self) -> None:
        """Load the manifest from disk.

        A missing file starts an empty archive and an unreadable one is reset
        to empty. A different version is only logged.
        """
        if not self.manifest_path.exists():
            logger.debug("No manifest file found, starting fresh")
            self.manifest = HistoryManifest()
            return

        try:
            with open(self.manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            manifest = HistoryManifest.from_dict(data)
        except Exception as e:
            logger.error(f"Error loading manifest: {e}")
            self.manifest = HistoryManifest()
            return

        if manifest.version != MANIFEST_VERSION:
            logger.warning(
                f"Manifest version {manifest.version!r} differs from {MANIFEST_VERSION!r}"
            )

        self.manifest = manifest
        logger.debug(f"Loaded manifest with {len(self.manifest.histories)} histories")

    def save_manifest(self) -> None:
        """Write the manifest to disk.

        Raises:
            OSError: If the file cannot be written
        """
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(self.manifest.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"Saved manifest with {len(self.manifest.histories)} histories")

    # --- Session files ---

    def _history_path(self, history_id: str) -> Path:
        return self.histories_dir / f"{history_id}.json"

    def _ensure_histories_dir(self) -> None:
        try:
            self.histories_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.debug(f"Could not create history directory, writing anyway: {e}")

    def load_history(self, history_id: str) -> ChatHistory | None:
        """Load one session file.

        Returns:
            The session, or None if the file is missing or unreadable
        """
        file_path = self._history_path(history_id)
        if not file_path.exists():
            logger.debug(f"History file not found: {history_id}")
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                history = ChatHistory.from_dict(json.load(f))
        except Exception as e:
            logger.error(f"Error loading history {history_id}: {e}")
            return None

        logger.debug(f"Loaded history: {history_id}")
        return history

    def save_history(self, history: ChatHistory) -> None:
        """Write one session file.

        Raises:
            OSError: If the file cannot be written
        """
        self._ensure_histories_dir()
        file_path = self._history_path(history.id)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(history.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"Saved history: {history.id}")

    # --- Operations ---

    @staticmethod
    def generate_history_id() -> str:
        """Generate a new session id: "chat-<epoch ms>-<7 base36 chars>"."""
        suffix = "".join(random.choices(_ID_ALPHABET, k=7))
        return f"chat-{_now_ms()}-{suffix}"

    @staticmethod
    def generate_default_name() -> str:
        return datetime.now().strftime("Chat - %Y-%m-%d %H:%M")

    def create_history(
        self, name: str | None, contents: list[dict[str, Any]]
    ) -> ChatHistory:
        """Archive a new session and index it in the manifest.

        Args:
            name: Display name; defaults to the current local date and time
            contents: Conversation turns

        Returns:
            The created session
        """
        now = _now_ms()
        history = ChatHistory(
            id=self.generate_history_id(),
            name=name or self.generate_default_name(),
            created_at=now,
            modified_at=now,
            contents=contents,
        )

        self.save_history(history)
        self.load_manifest()
        self.manifest.histories.append(history.to_summary())
        self.save_manifest()

        logger.info(f"Created new history: {history.id} ({history.name})")
        return history

    def update_history(self, history_id: str, contents: list[dict[str, Any]]) -> bool:
        """Replace a session's contents.

        Returns:
            True if updated, False if the session does not exist
        """
        history = self.load_history(history_id)
        if history is None:
            logger.warning(f"History not found for update: {history_id}")
            return False

        history.contents = contents
        history.modified_at = _now_ms()
        self.save_history(history)

        self.load_manifest()

        entry = self.manifest.find(history_id)
        if entry is not None:
            entry.modified_at = history.modified_at
            self.save_manifest()

        logger.debug(f"Updated history: {history_id}")
        return True

    def rename_history(self, history_id: str, new_name: str) -> bool:
        """Rename a session.

        Returns:
            True if renamed, False if the session does not exist
        """
        history = self.load_history(history_id)
        if history is None:
            logger.warning(f"History not found for rename: {history_id}")
            return False

        history.name = new_name.strip()
        history.modified_at = _now_ms()
        self.save_history(history)

        self.load_manifest()

        entry = self.manifest.find(history_id)
        if entry is not None:
            entry.name = history.name
            entry.modified_at = history.modified_at
            self.save_manifest()

        logger.debug(f"Renamed history {history_id} to {history.name!r}")
        return True

    def delete_history(self, history_id: str) -> bool:
        """Delete a session file and its manifest entry.

        A session file that is already gone is not an error.

        Returns:
            True if a manifest entry was removed
        """
        file_path = self._history_path(history_id)
        if file_path.exists():
            file_path.unlink()
            logger.debug(f"Deleted history file: {history_id}")

        self.load_manifest()
        initial_count = len(self.manifest.histories)
        self.manifest.histories = [
            entry for entry in self.manifest.histories if entry.id != history_id
        ]

        if len(self.manifest.histories) < initial_count:
            self.save_manifest()
            logger.info(f"Deleted history: {history_id}")
            return True

        return False

    def get_history(self, history_id: str) -> ChatHistory | None:
        return self.load_history(history_id)

    def get_all_histories(self) -> list[HistorySummary]:
        """Get all manifest entries, most recently modified first."""
        return sorted(self.manifest.histories, key=lambda entry: entry.modified_at, reverse=True)

    def get_history_count(self) -> int:
        return len(self.manifest.histories)

    def cleanup_old_histories(self, max_count: int) -> int:
        """Delete the least recently modified sessions beyond max_count.

        Returns:
            Number of sessions deleted
        """
        self.load_manifest()
        if len(self.manifest.histories) <= max_count:
            return 0

        oldest_first = sorted(self.manifest.histories, key=lambda entry: entry.modified_at)
        to_delete = oldest_first[: len(oldest_first) - max_count]

        deleted_count = 0
        for entry in to_delete:
            if self.delete_history(entry.id):
                deleted_count += 1

        logger.info(f"Cleaned up {deleted_count} old histories (max: {max_count})")
        return deleted_count

    def repair_manifest(self) -> int:
        """Drop manifest entries whose session file no longer exists.

        Returns:
            Number of entries removed
        """
        self.load_manifest()
        kept = [
            entry for entry in self.manifest.histories if self._history_path(entry.id).exists()
        ]
        removed = len(self.manifest.histories) - len(kept)

        if removed:
            self.manifest.histories = kept
            self.save_manifest()
            logger.warning(f"Removed {removed} manifest entries without session files")

        return removed
