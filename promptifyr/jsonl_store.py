"""
Purpose: Durable store backed by two append-only JSONL files.
Description: Extends the in-memory store by appending every committed version to versions.jsonl and
every user write to users.jsonl (last snapshot per id wins). Several processes may share one data
directory: each operation takes an exclusive lock file in that directory, applies whatever other
writers appended since its last read, and only then allocates, compares or appends.
Key Functions/Classes: JsonlStore.

AIDEV-NOTE: Lock order is file lock, then the in-memory locks. Never take the file lock while
holding _users_lock or _versions_lock.
"""

from __future__ import annotations

import functools
from pathlib import Path

from filelock import FileLock

from .errors import ValidationError
from .io_jsonl import append_model_jsonl, read_jsonl_from
from .models import PromptVersion, User
from .store import MemoryStore

USERS_FILE = "users.jsonl"
VERSIONS_FILE = "versions.jsonl"
LOCK_FILE = ".promptifyr.lock"


def _synced(method):
    @functools.wraps(method)
    def wrapper(self: "JsonlStore", *args, **kwargs):
        with self._file_lock:
            self._refresh()
            return method(self, *args, **kwargs)

    return wrapper


class JsonlStore(MemoryStore):
    def __init__(self, data_dir: str | Path) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.users_path = self.data_dir / USERS_FILE
        self.versions_path = self.data_dir / VERSIONS_FILE
        self._file_lock = FileLock(str(self.data_dir / LOCK_FILE))
        # Byte offsets up to which each file has been applied to memory.
        self._users_offset = 0
        self._versions_offset = 0
        with self._file_lock:
            self._refresh()

    def _refresh(self) -> None:
        """Apply lines appended since the last read. Caller holds the file lock."""
        users, self._users_offset = read_jsonl_from(self.users_path, self._users_offset)
        versions, self._versions_offset = read_jsonl_from(self.versions_path, self._versions_offset)
        with self._users_lock:
            for obj in users:
                user = User.model_validate(obj)
                self._users[user.id] = user
        with self._versions_lock:
            for obj in versions:
                version = PromptVersion.model_validate(obj)
                expected = self._max_version_locked((version.user_id, version.challenge_id)) + 1
                if version.version != expected:
                    raise ValidationError(
                        f"{self.versions_path}: version {version.version} for user={version.user_id} "
                        f"challenge={version.challenge_id} breaks the sequence (expected {expected})"
                    )
                self._index_locked(version)

    def _on_user_written(self, user: User) -> None:
        append_model_jsonl(self.users_path, user)
        self._users_offset = self.users_path.stat().st_size

    def _on_version_appended(self, version: PromptVersion) -> None:
        append_model_jsonl(self.versions_path, version)
        self._versions_offset = self.versions_path.stat().st_size

    create_user = _synced(MemoryStore.create_user)
    get_user = _synced(MemoryStore.get_user)
    list_users = _synced(MemoryStore.list_users)
    compare_and_set_user = _synced(MemoryStore.compare_and_set_user)
    append_version = _synced(MemoryStore.append_version)
    append_next_version = _synced(MemoryStore.append_next_version)
    max_version = _synced(MemoryStore.max_version)
    versions = _synced(MemoryStore.versions)
    versions_for_user = _synced(MemoryStore.versions_for_user)
