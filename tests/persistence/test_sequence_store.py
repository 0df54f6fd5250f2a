"""Tests for sequence repositories."""

import orjson
import pytest

from sequencer_app.errors import SequenceNotFound
from sequencer_app.persistence.sequence_store import FileSequenceRepository, InMemorySequenceRepository
from sequencer_app.sequence.parsers import parse_sequence


class TestInMemorySequenceRepository:
    """Test the dictionary-backed repository."""

    def test_lookup(self, delay_sequence):
        repository = InMemorySequenceRepository([delay_sequence])

        assert repository.get_sequence_by_id("seq_delays") is delay_sequence

    def test_missing_sequence(self):
        repository = InMemorySequenceRepository()

        with pytest.raises(SequenceNotFound) as exc_info:
            repository.get_sequence_by_id("nope")

        assert exc_info.value.sequence_id == "nope"

    def test_add_and_remove(self, delay_sequence, servo_sequence):
        repository = InMemorySequenceRepository([delay_sequence])
        repository.add(servo_sequence)

        assert {s.id for s in repository.list_sequences()} == {"seq_delays", "seq_servo"}
        assert repository.remove("seq_delays") is True
        assert repository.remove("seq_delays") is False


class TestFileSequenceRepository:
    """Test the JSON file repository."""

    def test_reads_single_sequence_file(self, tmp_path, sample_sequence_document):
        (tmp_path / "pick.json").write_bytes(orjson.dumps(sample_sequence_document))
        repository = FileSequenceRepository(tmp_path)

        sequence = repository.get_sequence_by_id("seq_pick_place")

        assert sequence.total_steps == 3

    def test_reads_configuration_document(self, tmp_path, sample_sequence_document):
        """Sequences saved inside a hardware configuration document."""
        second = dict(sample_sequence_document, id="seq_second", name="Second")
        config_document = {
            "name": "Bench rig",
            "servos": [],
            "sequences": [sample_sequence_document, second],
        }
        (tmp_path / "bench.json").write_bytes(orjson.dumps(config_document))
        repository = FileSequenceRepository(tmp_path)

        assert repository.get_sequence_by_id("seq_second").name == "Second"
        assert len(repository.list_sequences()) == 2

    def test_skips_malformed_files(self, tmp_path, sample_sequence_document):
        (tmp_path / "broken.json").write_text("{oops")
        (tmp_path / "no_id.json").write_bytes(orjson.dumps({"name": "anonymous"}))
        (tmp_path / "good.json").write_bytes(orjson.dumps(sample_sequence_document))
        repository = FileSequenceRepository(tmp_path)

        assert [s.id for s in repository.list_sequences()] == ["seq_pick_place"]

    def test_missing_directory(self, tmp_path):
        repository = FileSequenceRepository(tmp_path / "absent")

        assert repository.list_sequences() == []
        with pytest.raises(SequenceNotFound):
            repository.get_sequence_by_id("seq_pick_place")

    def test_save_then_load(self, tmp_path, sample_sequence_document):
        repository = FileSequenceRepository(tmp_path / "store")
        original = parse_sequence(sample_sequence_document)

        path = repository.save_sequence(original)

        assert path.name == "seq_pick_place.json"
        assert repository.get_sequence_by_id("seq_pick_place") == original
