"""
MemoryPersistence interface for pluggable memory storage backends.

Three implementations are included:
1. InMemoryPersistence - dict-based storage, data lost on exit (tests, dry runs)
2. SqlitePersistence - one local SQLite file per run (default)
3. JsonPersistence - append-only JSON Lines file, human-readable

Every backend enforces ``unique_id`` as a primary key: inserting a duplicate
raises StorageError and leaves the stored records untouched. There is no
update or delete; records persist for the lifetime of the storage target.

All blocking I/O runs in a worker thread (``asyncio.to_thread``) so the
receive/decide/send cycle is never blocked by disk writes.

Usage pattern:
    persistence = SqlitePersistence()      # AgentMemory_<epoch>.db
    await persistence.initialize()
    await persistence.insert_memory(memory)
    await persistence.close()
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from agentworld.schemas import Memory


class StorageError(RuntimeError):
    """Raised when a memory cannot be written (I/O failure or duplicate id)."""


def default_memory_path(prefix: str = "AgentMemory", suffix: str = ".db") -> Path:
    """Return a freshly named per-run storage file, e.g. ``AgentMemory_1718000000.db``."""
    return Path(f"{prefix}_{int(time.time())}{suffix}")


class MemoryPersistence(ABC):
    """Abstract base class for memory record storage."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open files/connections and create schema. Called once before use."""

    @abstractmethod
    async def close(self) -> None:
        """Release files/connections. Safe to call more than once."""

    @abstractmethod
    async def insert_memory(self, memory: Memory) -> None:
        """Persist one memory.

        Raises:
            StorageError: On write failure or if ``memory.unique_id`` already exists
        """

    @abstractmethod
    async def get_memory(self, unique_id: str) -> Optional[Memory]:
        """Return the memory with ``unique_id``, or None."""

    @abstractmethod
    async def list_memories(self, limit: Optional[int] = None) -> List[Memory]:
        """Return stored memories, newest first."""

    async def count(self) -> int:
        return len(await self.list_memories())


class InMemoryPersistence(MemoryPersistence):
    """Dict-backed storage keyed by ``unique_id``. Nothing survives the process."""

    def __init__(self) -> None:
        self.memories: Dict[str, Memory] = {}

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def insert_memory(self, memory: Memory) -> None:
        if memory.unique_id in self.memories:
            raise StorageError(f"Duplicate memory id: {memory.unique_id}")
        self.memories[memory.unique_id] = memory.model_copy(deep=True)

    async def get_memory(self, unique_id: str) -> Optional[Memory]:
        return self.memories.get(unique_id)

    async def list_memories(self, limit: Optional[int] = None) -> List[Memory]:
        # dicts keep insertion order; newest first means reversed insertion order
        ordered = list(reversed(list(self.memories.values())))
        return ordered if limit is None else ordered[:limit]

    async def count(self) -> int:
        return len(self.memories)


class SqlitePersistence(MemoryPersistence):
    """Local SQLite storage, one ``Memories`` table keyed by ``unique_id``.

    Each process opens its own file (a freshly named one unless ``path`` is
    given), so memories are not shared across runs unless the same path is
    reused on purpose. ``initialize()`` only opens a file that already
    exists; a new file is created by the first ``insert_memory``. Reads
    against a file that was never created see an empty store.
    """

    CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS Memories (
            unique_id TEXT PRIMARY KEY,
            memory_type TEXT NOT NULL,
            timestamp INTEGER NOT NULL,
            text_content TEXT NOT NULL,
            links TEXT NOT NULL DEFAULT ''
        )
    """
    INSERT_SQL = (
        "INSERT INTO Memories (unique_id, memory_type, timestamp, text_content, links) "
        "VALUES (?, ?, ?, ?, ?)"
    )
    SELECT_COLUMNS = "unique_id, memory_type, timestamp, text_content, links"

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_memory_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._initialized = False

    async def initialize(self) -> None:
        self._initialized = True
        if self._conn is None and self.path.exists():
            await self._open()

    async def close(self) -> None:
        self._initialized = False
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await asyncio.to_thread(conn.close)

    async def _open(self) -> sqlite3.Connection:
        def _connect() -> sqlite3.Connection:
            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            # Calls are serialized by the event loop but hop between worker threads.
            conn = sqlite3.connect(str(self.path), check_same_thread=False)
            conn.execute(self.CREATE_TABLE_SQL)
            conn.commit()
            return conn

        try:
            self._conn = await asyncio.to_thread(_connect)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open memory database {self.path}: {exc}") from exc
        return self._conn

    async def _connection(self, create: bool) -> Optional[sqlite3.Connection]:
        """Return the open connection, opening the file on demand.

        With ``create=False`` a missing file yields None instead of a new file.
        """
        if not self._initialized:
            raise StorageError("SqlitePersistence used before initialize()")
        if self._conn is None and (create or self.path.exists()):
            await self._open()
        return self._conn

    async def insert_memory(self, memory: Memory) -> None:
        conn = await self._connection(create=True)
        row = (
            memory.unique_id,
            memory.memory_type.value,
            memory.timestamp,
            memory.text_content,
            memory.links,
        )

        def _insert() -> None:
            with conn:
                conn.execute(self.INSERT_SQL, row)

        try:
            await asyncio.to_thread(_insert)
        except sqlite3.IntegrityError as exc:
            raise StorageError(f"Duplicate memory id: {memory.unique_id}") from exc
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to save memory {memory.unique_id}: {exc}") from exc

    async def get_memory(self, unique_id: str) -> Optional[Memory]:
        conn = await self._connection(create=False)
        if conn is None:
            return None
        query = f"SELECT {self.SELECT_COLUMNS} FROM Memories WHERE unique_id = ?"
        rows = await asyncio.to_thread(lambda: conn.execute(query, (unique_id,)).fetchall())
        return self._row_to_memory(rows[0]) if rows else None

    async def list_memories(self, limit: Optional[int] = None) -> List[Memory]:
        conn = await self._connection(create=False)
        if conn is None:
            return []
        query = f"SELECT {self.SELECT_COLUMNS} FROM Memories ORDER BY timestamp DESC, rowid DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        rows = await asyncio.to_thread(lambda: conn.execute(query, params).fetchall())
        return [self._row_to_memory(row) for row in rows]

    async def count(self) -> int:
        conn = await self._connection(create=False)
        if conn is None:
            return 0
        (total,) = await asyncio.to_thread(
            lambda: conn.execute("SELECT COUNT(*) FROM Memories").fetchone()
        )
        return int(total)

    @staticmethod
    def _row_to_memory(row: tuple) -> Memory:
        unique_id, memory_type, timestamp, text_content, links = row
        return Memory(
            unique_id=unique_id,
            memory_type=memory_type,
            timestamp=timestamp,
            text_content=text_content,
            links=links or "",
        )


class JsonPersistence(MemoryPersistence):
    """Append-only JSON Lines storage: one memory per line, wire field names.

    Ids already on disk are loaded at ``initialize()`` so duplicates are
    rejected across reopen as well.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_memory_path(suffix=".jsonl")
        self._ids: set[str] = set()

    async def initialize(self) -> None:
        def _load_ids() -> set[str]:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                return set()
            ids = set()
            for line in self.path.read_text("utf-8").splitlines():
                if line:
                    ids.add(json.loads(line)["uniqueId"])
            return ids

        try:
            self._ids = await asyncio.to_thread(_load_ids)
        except (OSError, ValueError, KeyError) as exc:
            raise StorageError(f"Could not open memory file {self.path}: {exc}") from exc

    async def close(self) -> None:
        return None

    async def insert_memory(self, memory: Memory) -> None:
        if memory.unique_id in self._ids:
            raise StorageError(f"Duplicate memory id: {memory.unique_id}")
        payload = json.dumps(memory.to_wire_dict())

        def _append() -> None:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(payload)
                handle.write("\n")

        try:
            await asyncio.to_thread(_append)
        except OSError as exc:
            raise StorageError(f"Failed to save memory {memory.unique_id}: {exc}") from exc
        self._ids.add(memory.unique_id)

    async def get_memory(self, unique_id: str) -> Optional[Memory]:
        for memory in await self._read_all():
            if memory.unique_id == unique_id:
                return memory
        return None

    async def list_memories(self, limit: Optional[int] = None) -> List[Memory]:
        memories = list(reversed(await self._read_all()))
        return memories if limit is None else memories[:limit]

    async def count(self) -> int:
        return len(self._ids)

    async def _read_all(self) -> List[Memory]:
        if not self.path.exists():
            return []
        lines = await asyncio.to_thread(lambda: self.path.read_text("utf-8").splitlines())
        return [Memory.model_validate_json(line) for line in lines if line]


__all__ = [
    "StorageError",
    "MemoryPersistence",
    "InMemoryPersistence",
    "SqlitePersistence",
    "JsonPersistence",
    "default_memory_path",
]
