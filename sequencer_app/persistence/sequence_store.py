"""Sequence repositories the engine loads runs from."""

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import orjson
import structlog

from ..errors import SequenceNotFound
from ..sequence.models import Sequence
from ..sequence.parsers import ParseError, parse_json_payload, parse_sequence, sequence_to_dict


class SequenceRepository(ABC):
    """Read access to stored sequences."""

    @abstractmethod
    def get_sequence_by_id(self, sequence_id: str) -> Sequence:
        """
        Look up a sequence.

        Raises:
            SequenceNotFound: If no sequence has that id
        """
        pass

    def list_sequences(self) -> list[Sequence]:
        """All stored sequences; repositories that cannot enumerate return []."""
        return []


class InMemorySequenceRepository(SequenceRepository):
    """Dictionary-backed repository."""

    def __init__(self, sequences: Optional[Iterable[Sequence]] = None):
        self._lock = threading.Lock()
        self._sequences: dict[str, Sequence] = {}
        for sequence in sequences or ():
            self._sequences[sequence.id] = sequence

    def add(self, sequence: Sequence) -> None:
        """Store or replace a sequence."""
        with self._lock:
            self._sequences[sequence.id] = sequence

    def remove(self, sequence_id: str) -> bool:
        with self._lock:
            return self._sequences.pop(sequence_id, None) is not None

    def get_sequence_by_id(self, sequence_id: str) -> Sequence:
        with self._lock:
            sequence = self._sequences.get(sequence_id)

        if sequence is None:
            raise SequenceNotFound(f"Sequence {sequence_id} not found", sequence_id=sequence_id)
        return sequence

    def list_sequences(self) -> list[Sequence]:
        with self._lock:
            return list(self._sequences.values())


class FileSequenceRepository(SequenceRepository):
    """
    JSON file repository.

    Each ``*.json`` file in the directory holds either one sequence
    document or a saved configuration document whose ``sequences`` array
    carries several. Files are re-read on every lookup so edits made by
    the recorder are picked up by the next run.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.logger = structlog.get_logger("sequence.store")
        self._lock = threading.Lock()

    def get_sequence_by_id(self, sequence_id: str) -> Sequence:
        for sequence in self.list_sequences():
            if sequence.id == sequence_id:
                return sequence

        raise SequenceNotFound(
            f"Sequence {sequence_id} not found in {self.directory}",
            sequence_id=sequence_id
        )

    def list_sequences(self) -> list[Sequence]:
        sequences: list[Sequence] = []
        if not self.directory.is_dir():
            return sequences

        with self._lock:
            for path in sorted(self.directory.glob("*.json")):
                sequences.extend(self._read_file(path))

        return sequences

    def save_sequence(self, sequence: Sequence) -> Path:
        """Write a sequence as ``<id>.json``; returns the file path."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{sequence.id}.json"

        with self._lock:
            path.write_bytes(orjson.dumps(sequence_to_dict(sequence), option=orjson.OPT_INDENT_2))

        self.logger.info("Sequence saved", sequence_id=sequence.id, path=str(path))
        return path

    def _read_file(self, path: Path) -> list[Sequence]:
        try:
            document = parse_json_payload(path.read_bytes())
        except (OSError, ParseError) as e:
            self.logger.warning("Skipping unreadable sequence file", path=str(path), error=str(e))
            return []

        if isinstance(document, dict) and "sequences" in document:
            entries: list[Any] = document.get("sequences") or []
        else:
            entries = [document]

        sequences = []
        for entry in entries:
            try:
                sequences.append(parse_sequence(entry))
            except ParseError as e:
                self.logger.warning("Skipping malformed sequence", path=str(path), error=str(e))
        return sequences
