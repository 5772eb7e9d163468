from __future__ import annotations

import base64
import json
import logging
import os
import shutil
import threading
import uuid
from collections.abc import AsyncIterator, Iterator, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast
from urllib.parse import quote, unquote

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import (
    WRITES_IDX_MAP,
    BaseCheckpointSaver,
    ChannelVersions,
    Checkpoint,
    CheckpointMetadata,
    CheckpointTuple,
    get_checkpoint_id,
    get_checkpoint_metadata,
)
from langgraph.checkpoint.memory import InMemorySaver

from .config import Settings

logger = logging.getLogger(__name__)

_DEFAULT_NAMESPACE_DIR = "__default__"


class FileCheckpointSaver(BaseCheckpointSaver):
    """Store checkpoints as JSON documents on the local filesystem.

    Layout::

        <root>/<thread>/<namespace>/checkpoints/<checkpoint_id>.json
        <root>/<thread>/<namespace>/writes/<checkpoint_id>.json

    Payloads go through the saver's serde protocol, so LangChain messages round
    trip with their type. Every file is replaced atomically and all writes are
    serialized, so concurrent turns never leave a truncated document behind.
    """

    def __init__(self, root: str | Path) -> None:
        super().__init__()
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Encoding helpers

    def _serialize(self, data: Any) -> list[str]:
        type_str, payload = self.serde.dumps_typed(data)
        return [type_str, base64.b64encode(payload).decode("ascii")]

    def _deserialize(self, data: Sequence[str]) -> Any:
        type_str, payload = data
        return self.serde.loads_typed((type_str, base64.b64decode(payload)))

    @staticmethod
    def _segment(value: str) -> str:
        return quote(value, safe="") if value else _DEFAULT_NAMESPACE_DIR

    @staticmethod
    def _unsegment(value: str) -> str:
        return "" if value == _DEFAULT_NAMESPACE_DIR else unquote(value)

    def _namespace_dir(self, thread_id: str, checkpoint_ns: str) -> Path:
        return self.root / quote(thread_id, safe="") / self._segment(checkpoint_ns)

    @staticmethod
    def _thread_and_namespace(config: RunnableConfig) -> tuple[str, str]:
        configurable = config.get("configurable") or {}
        thread_id = configurable.get("thread_id")
        if not thread_id:
            raise ValueError("thread_id missing from RunnableConfig.configurable")
        return str(thread_id), configurable.get("checkpoint_ns", "")

    def _write_json(self, path: Path, payload: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_text(json.dumps(payload), encoding="utf-8")
        os.replace(tmp, path)

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any] | None:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None

    # ------------------------------------------------------------------
    # Reading

    def _load_tuple(self, thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> CheckpointTuple | None:
        ns_dir = self._namespace_dir(thread_id, checkpoint_ns)
        record = self._read_json(ns_dir / "checkpoints" / f"{checkpoint_id}.json")
        if record is None:
            return None

        checkpoint = cast(Checkpoint, self._deserialize(record["checkpoint"]))
        metadata = cast(CheckpointMetadata, self._deserialize(record["metadata"]))

        writes_record = self._read_json(ns_dir / "writes" / f"{checkpoint_id}.json") or {}
        pending_writes = [
            (entry["task_id"], entry["channel"], self._deserialize(entry["value"]))
            for entry in writes_record.get("writes", [])
        ]

        parent_id = record.get("parent_checkpoint_id")
        parent_config: RunnableConfig | None = None
        if parent_id:
            parent_config = {
                "configurable": {
                    "thread_id": thread_id,
                    "checkpoint_ns": checkpoint_ns,
                    "checkpoint_id": parent_id,
                }
            }

        return CheckpointTuple(
            config={
                "configurable": {
                    "thread_id": thread_id,
                    "checkpoint_ns": checkpoint_ns,
                    "checkpoint_id": checkpoint_id,
                }
            },
            checkpoint=checkpoint,
            metadata=metadata,
            parent_config=parent_config,
            pending_writes=pending_writes,
        )

    def _checkpoint_ids(self, thread_id: str, checkpoint_ns: str) -> list[str]:
        directory = self._namespace_dir(thread_id, checkpoint_ns) / "checkpoints"
        if not directory.is_dir():
            return []
        # Checkpoint ids are uuid6 values, so lexical order is creation order
        return sorted((p.stem for p in directory.glob("*.json")), reverse=True)

    def get_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        thread_id, checkpoint_ns = self._thread_and_namespace(config)
        with self._lock:
            checkpoint_id = get_checkpoint_id(config)
            if not checkpoint_id:
                ids = self._checkpoint_ids(thread_id, checkpoint_ns)
                if not ids:
                    return None
                checkpoint_id = ids[0]
            return self._load_tuple(thread_id, checkpoint_ns, checkpoint_id)

    def _targets(self, config: RunnableConfig | None) -> list[tuple[str, str]]:
        if config is not None:
            return [self._thread_and_namespace(config)]
        targets: list[tuple[str, str]] = []
        for thread_dir in sorted(p for p in self.root.iterdir() if p.is_dir()):
            for ns_dir in sorted(p for p in thread_dir.iterdir() if p.is_dir()):
                targets.append((unquote(thread_dir.name), self._unsegment(ns_dir.name)))
        return targets

    def list(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> Iterator[CheckpointTuple]:
        before_id = get_checkpoint_id(before) if before else None
        wanted_id = get_checkpoint_id(config) if config else None
        matches: list[CheckpointTuple] = []
        # Collected under the lock, yielded after releasing it
        with self._lock:
            for thread_id, checkpoint_ns in self._targets(config):
                for checkpoint_id in self._checkpoint_ids(thread_id, checkpoint_ns):
                    if limit is not None and len(matches) >= limit:
                        break
                    if wanted_id and checkpoint_id != wanted_id:
                        continue
                    if before_id and checkpoint_id >= before_id:
                        continue
                    item = self._load_tuple(thread_id, checkpoint_ns, checkpoint_id)
                    if item is None:
                        continue
                    if filter and not all(item.metadata.get(k) == v for k, v in filter.items()):
                        continue
                    matches.append(item)
        yield from matches

    # ------------------------------------------------------------------
    # Writing

    def put(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        thread_id, checkpoint_ns = self._thread_and_namespace(config)
        record = {
            "checkpoint": self._serialize(checkpoint),
            "metadata": self._serialize(get_checkpoint_metadata(config, metadata or {})),
            "parent_checkpoint_id": get_checkpoint_id(config),
            "written_at": datetime.now(timezone.utc).isoformat(),
        }
        path = self._namespace_dir(thread_id, checkpoint_ns) / "checkpoints" / f"{checkpoint['id']}.json"
        with self._lock:
            self._write_json(path, record)
        return {
            "configurable": {
                "thread_id": thread_id,
                "checkpoint_ns": checkpoint_ns,
                "checkpoint_id": checkpoint["id"],
            }
        }

    def put_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        thread_id, checkpoint_ns = self._thread_and_namespace(config)
        checkpoint_id = get_checkpoint_id(config)
        if not checkpoint_id:
            raise ValueError("checkpoint_id missing from RunnableConfig.configurable")
        path = self._namespace_dir(thread_id, checkpoint_ns) / "writes" / f"{checkpoint_id}.json"

        with self._lock:
            existing = (self._read_json(path) or {}).get("writes", [])
            by_key = {(entry["task_id"], entry["idx"]): entry for entry in existing}
            for idx, (channel, value) in enumerate(writes):
                key = (task_id, WRITES_IDX_MAP.get(channel, idx))
                # Regular writes are recorded once; special channels overwrite
                if key[1] >= 0 and key in by_key:
                    continue
                by_key[key] = {
                    "task_id": task_id,
                    "idx": key[1],
                    "channel": channel,
                    "value": self._serialize(value),
                    "task_path": task_path,
                }
            self._write_json(path, {"writes": list(by_key.values())})

    def delete_thread(self, thread_id: str) -> None:
        with self._lock:
            shutil.rmtree(self.root / quote(thread_id, safe=""), ignore_errors=True)

    # ------------------------------------------------------------------
    # Async API: local file I/O is short, so the sync implementation is reused

    async def aget_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        return self.get_tuple(config)

    async def alist(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        for item in self.list(config, filter=filter, before=before, limit=limit):
            yield item

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        return self.put(config, checkpoint, metadata, new_versions)

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        self.put_writes(config, writes, task_id, task_path)

    async def adelete_thread(self, thread_id: str) -> None:
        self.delete_thread(thread_id)


def create_checkpointer(settings: Settings) -> BaseCheckpointSaver:
    """Build a checkpointer based on ``AGENT_MEMORY_TYPE``.

    Unknown backends fall back to the in-memory saver instead of failing startup.
    """

    backend = settings.agent_memory_type.strip().lower()
    if backend == "memory":
        logger.info("[CHECKPOINT] Using in-memory checkpointer (state is lost on restart)")
        return InMemorySaver()

    if backend == "file":
        logger.info("[CHECKPOINT] Using file checkpointer at %s", settings.checkpoint_dir)
        return FileCheckpointSaver(settings.checkpoint_dir)

    logger.warning("[CHECKPOINT] Unknown memory type: %s, using in-memory checkpointer", backend)
    return InMemorySaver()
