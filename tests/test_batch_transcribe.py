"""
Tests for the batch transcription CLI.

This module tests:
- read_urls parsing
- transcribe_one reporting failures instead of raising
"""

import pytest
from unittest.mock import MagicMock

import batch_transcribe
from metagrabber.errors import NoKeyAvailableError
from metagrabber.services.transcription_service import TranscriptionResult


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(batch_transcribe, "OUTPUT_DIR", str(tmp_path))
    return tmp_path


class TestBatchTranscribe:
    """Test the CLI helpers."""

    def test_read_urls_skips_blanks_and_comments(self, tmp_path):
        path = tmp_path / "urls.txt"
        path.write_text("# ads\nhttps://a.example/1.mp4\n\n  https://a.example/2.mp4  \n")

        assert batch_transcribe.read_urls(str(path)) == [
            "https://a.example/1.mp4",
            "https://a.example/2.mp4",
        ]

    def test_transcribe_one_writes_transcript(self, output_dir):
        orchestrator = MagicMock()
        orchestrator.run_job.return_value = TranscriptionResult(
            text="hello world", language="en", segment_count=1, job_id="abc"
        )

        index, url, output_path, error = batch_transcribe.transcribe_one(
            orchestrator, "https://a.example/1.mp4", 1, None, None
        )

        assert error is None
        assert (output_dir / "001-abc.txt").read_text() == "hello world"

    def test_transcribe_one_typed_error(self, output_dir):
        orchestrator = MagicMock()
        orchestrator.run_job.side_effect = NoKeyAvailableError("No available API key")

        _, _, output_path, error = batch_transcribe.transcribe_one(
            orchestrator, "https://a.example/1.mp4", 1, None, None
        )

        assert output_path is None
        assert error == "No available API key"

    def test_transcribe_one_unexpected_error(self, output_dir):
        orchestrator = MagicMock()
        orchestrator.run_job.side_effect = RuntimeError("boom")

        _, _, output_path, error = batch_transcribe.transcribe_one(
            orchestrator, "https://a.example/2.mp4", 2, None, None
        )

        assert output_path is None
        assert error == "Error during transcription: boom"
