"""
External collaborators of the verification core.

``RootRegistry`` supplies the latest root per subject (course or source
contract); ``TokenMinter`` issues the cross-ledger token. The in-memory
implementations back tests, the CLI demo and local integration.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol, Tuple, Union

import yaml

from .config import SMT_HASH_SIZE_BYTES
from .exceptions import CollaboratorFailureError, MalformedInputError
from .types import RootRecord

logger = logging.getLogger(__name__)


class RootRegistry(Protocol):
    def get_last_data(self, subject: str) -> RootRecord:
        ...


class TokenMinter(Protocol):
    def mint_token(self, recipient: str, token_uri: str) -> int:
        ...


def _parse_root(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        try:
            value = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        except ValueError as e:
            raise MalformedInputError(f"root is not hex: {e}") from e
    if not isinstance(value, bytes) or len(value) != SMT_HASH_SIZE_BYTES:
        raise MalformedInputError(f"root must be {SMT_HASH_SIZE_BYTES} bytes")
    return value


class InMemoryRootRegistry:
    """
    Latest-root feed keyed by subject.

    Heights must strictly increase per subject; reads never mutate.
    """

    def __init__(self) -> None:
        self._records: Dict[str, RootRecord] = {}
        self._lock = threading.Lock()

    def update(self, subject: str, root: Union[str, bytes], height: int) -> RootRecord:
        record = RootRecord(root=_parse_root(root), height=height)
        with self._lock:
            current = self._records.get(subject)
            if current is not None and height <= current.height:
                raise MalformedInputError(
                    f"height {height} does not advance past {current.height} "
                    f"for {subject}"
                )
            self._records[subject] = record
        logger.debug("root for %s updated at height %d", subject, height)
        return record

    def get_last_data(self, subject: str) -> RootRecord:
        with self._lock:
            record = self._records.get(subject)
        if record is None:
            raise CollaboratorFailureError(f"no root recorded for {subject}")
        return record

    def subjects(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._records)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Mapping]) -> "InMemoryRootRegistry":
        """
        Build from ``{subject: {"root": hex, "height": int}}``.

        Raises:
            MalformedInputError: If an entry is missing fields or malformed
        """
        registry = cls()
        for subject, entry in data.items():
            if not isinstance(entry, Mapping) or "root" not in entry or "height" not in entry:
                raise MalformedInputError(f"root entry for {subject} needs root and height")
            registry.update(str(subject), entry["root"], entry["height"])
        return registry

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "InMemoryRootRegistry":
        """
        Load a snapshot file::

            roots:
              "0xCourse":
                root: "ab12..."
                height: 12

        Raises:
            MalformedInputError: If the file is not UTF-8 YAML of that shape
        """
        try:
            with open(path, "r", encoding="utf-8") as fh:
                document = yaml.safe_load(fh) or {}
        except (yaml.YAMLError, UnicodeDecodeError) as e:
            raise MalformedInputError(f"root snapshot is not valid YAML: {e}") from e
        if not isinstance(document, dict) or not isinstance(
            document.get("roots", {}), dict
        ):
            raise MalformedInputError("root snapshot must map 'roots' to subjects")
        return cls.from_mapping(document.get("roots", {}))


class InMemoryTokenMinter:
    """
    Sequential token issuer. ``fail_next`` makes the next call raise.
    """

    def __init__(self, start_id: int = 1) -> None:
        self._next_id = start_id
        self._owners: Dict[int, str] = {}
        self._uris: Dict[int, str] = {}
        self._lock = threading.Lock()
        self.fail_next: Optional[Exception] = None
        self.calls = 0

    def mint_token(self, recipient: str, token_uri: str) -> int:
        with self._lock:
            self.calls += 1
            if self.fail_next is not None:
                error, self.fail_next = self.fail_next, None
                raise error
            token_id = self._next_id
            self._next_id += 1
            self._owners[token_id] = recipient
            self._uris[token_id] = token_uri
        return token_id

    def owner_of(self, token_id: int) -> str:
        return self._owners[token_id]

    def token_uri(self, token_id: int) -> str:
        return self._uris[token_id]

    def __len__(self) -> int:
        return len(self._owners)
