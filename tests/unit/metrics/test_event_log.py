"""Tests for the NDJSON event log writer."""

import json
import os
import time

import pytest

from art_rag.services.metrics import EventLogWriter
from art_rag.services.metrics.event_log import REQUEST_LOG, rotation_suffix


class TestAppend:

    @pytest.mark.asyncio
    async def test_append_writes_one_line_per_event(self, event_writer, log_dir):
        assert await event_writer.append(REQUEST_LOG, {"n": 1}) is True
        assert await event_writer.append(REQUEST_LOG, {"n": 2}) is True

        lines = (log_dir / REQUEST_LOG).read_text().splitlines()
        assert [json.loads(line) for line in lines] == [{"n": 1}, {"n": 2}]

    @pytest.mark.asyncio
    async def test_unwritable_directory_returns_false(self, tmp_path, caplog):
        """Test failures are reported, never raised."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        writer = EventLogWriter(str(blocker / "logs"))

        with caplog.at_level("WARNING"):
            assert await writer.append(REQUEST_LOG, {"n": 1}) is False

        record = next(r for r in caplog.records if "Failed to write event log" in r.getMessage())
        assert record.data["category"] == "log"
        assert record.data["details"] == {"path": str(blocker / "logs" / REQUEST_LOG)}

    @pytest.mark.asyncio
    async def test_unserializable_event_returns_false(self, event_writer):
        event = {}
        event["self"] = event
        assert await event_writer.append(REQUEST_LOG, event) is False


class TestRotation:

    @pytest.mark.asyncio
    async def test_rotates_when_file_exceeds_limit(self, log_dir):
        writer = EventLogWriter(str(log_dir), max_bytes=100)
        for n in range(5):
            await writer.append(REQUEST_LOG, {"n": n, "padding": "x" * 20})

        rotated = sorted(p for p in log_dir.iterdir() if p.name != REQUEST_LOG)
        assert rotated
        assert all(p.name.startswith(f"{REQUEST_LOG}.") for p in rotated)
        assert (log_dir / REQUEST_LOG).exists()
        assert (log_dir / REQUEST_LOG).stat().st_size <= 100

    @pytest.mark.asyncio
    async def test_no_events_lost_across_rotation(self, log_dir):
        writer = EventLogWriter(str(log_dir), max_bytes=100)
        for n in range(10):
            await writer.append(REQUEST_LOG, {"n": n, "padding": "x" * 20})

        seen = []
        for path in log_dir.iterdir():
            seen.extend(json.loads(line)["n"] for line in path.read_text().splitlines())
        assert sorted(seen) == list(range(10))

    def test_rotation_suffix_is_filename_safe(self):
        suffix = rotation_suffix()
        assert ":" not in suffix
        assert suffix.endswith("Z")


class TestRetention:

    @pytest.mark.asyncio
    async def test_prune_deletes_only_old_files(self, event_writer, log_dir):
        await event_writer.append(REQUEST_LOG, {"n": 1})
        old = log_dir / f"{REQUEST_LOG}.2020-01-01T00-00-00-000Z"
        old.write_text("{}\n")
        forty_days_ago = time.time() - 40 * 24 * 60 * 60
        os.utime(old, (forty_days_ago, forty_days_ago))

        assert await event_writer.prune_older_than(30) == 1
        assert not old.exists()
        assert (log_dir / REQUEST_LOG).exists()

    @pytest.mark.asyncio
    async def test_prune_missing_directory(self, event_writer):
        assert await event_writer.prune_older_than(30) == 0


class TestWriteJson:

    @pytest.mark.asyncio
    async def test_write_json_creates_directory(self, event_writer, log_dir):
        path = await event_writer.write_json("snapshot.json", {"metrics": {"totalRequests": 3}})
        assert path == log_dir / "snapshot.json"
        assert json.loads(path.read_text()) == {"metrics": {"totalRequests": 3}}
