"""Durable key-value storage for client-side job markers."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
  """Minimal string store; mirrors what a browser's local storage offers."""

  def get(self, key: str) -> str | None: ...

  def set(self, key: str, value: str) -> None: ...

  def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore(KeyValueStore):
  def __init__(self, initial: dict[str, str] | None = None) -> None:
    self._data: dict[str, str] = dict(initial or {})

  def get(self, key: str) -> str | None:
    return self._data.get(key)

  def set(self, key: str, value: str) -> None:
    self._data[key] = value

  def delete(self, key: str) -> None:
    self._data.pop(key, None)

  def snapshot(self) -> dict[str, str]:
    return dict(self._data)


class JsonFileKeyValueStore(KeyValueStore):
  """Store backed by one JSON object on disk, rewritten atomically on every change."""

  def __init__(self, path: str | Path) -> None:
    self._path = Path(path)

  def _load(self) -> dict[str, str]:
    try:
      raw = self._path.read_text(encoding="utf-8")
    except FileNotFoundError:
      return {}
    try:
      data = json.loads(raw)
    except json.JSONDecodeError:
      logger.warning("Ignoring unreadable client state file %s", self._path)
      return {}
    if not isinstance(data, dict):
      return {}
    return {str(key): str(value) for key, value in data.items()}

  def _save(self, data: dict[str, str]) -> None:
    self._path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp")
    try:
      with os.fdopen(fd, "w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=False, sort_keys=True)
      os.replace(tmp_name, self._path)
    except OSError:
      Path(tmp_name).unlink(missing_ok=True)
      raise

  def get(self, key: str) -> str | None:
    return self._load().get(key)

  def set(self, key: str, value: str) -> None:
    data = self._load()
    data[key] = value
    self._save(data)

  def delete(self, key: str) -> None:
    data = self._load()
    if data.pop(key, None) is not None:
      self._save(data)
