import io
import zipfile

import pytest

from b2g_probe.application.exceptions import (
    ArchiveStateError,
    EntryNotFoundError,
    ExtractionError,
)
from b2g_probe.infrastructure.archive import (
    ArchiveEntry,
    ArchiveScan,
    ScanState,
    ZipArchiveExtractor,
)

from conftest import build_zip

ENTRIES = {
    "a.txt": b"A" * 4096,
    "target.txt": b"wanted\nsecond line\n",
    "b.txt": b"B" * 4096,
}


@pytest.fixture
def archive_path(tmp_path):
    path = tmp_path / "application.zip"
    path.write_bytes(build_zip(ENTRIES))
    return path


@pytest.fixture
def opened_entries(monkeypatch):
    """Records every entry whose content reader gets opened."""
    opened = []
    original_open = ArchiveEntry.open

    def recording_open(self):
        opened.append(self.path)
        return original_open(self)

    monkeypatch.setattr(ArchiveEntry, "open", recording_open)
    return opened


async def test_extracts_exact_content_of_target(archive_path, opened_entries):
    extractor = ZipArchiveExtractor()

    async with extractor.extract_entry(archive_path, "target.txt") as stream:
        content = await stream.read()

    assert content == b"wanted\nsecond line\n"
    assert opened_entries == ["target.txt"]


async def test_readline_stops_at_first_line(archive_path):
    extractor = ZipArchiveExtractor()

    async with extractor.extract_entry(archive_path, "target.txt") as stream:
        assert await stream.readline() == b"wanted\n"
        assert await stream.readline(3) == b"sec"


async def test_missing_entry_after_full_scan(archive_path, opened_entries):
    extractor = ZipArchiveExtractor()

    with pytest.raises(EntryNotFoundError) as excinfo:
        async with extractor.extract_entry(archive_path, "missing.txt"):
            pass

    assert excinfo.value.entries_scanned == 3
    assert opened_entries == []


async def test_not_an_archive(tmp_path):
    path = tmp_path / "application.zip"
    path.write_bytes(b"definitely not a zip")

    with pytest.raises(ExtractionError):
        async with ZipArchiveExtractor().extract_entry(path, "target.txt"):
            pass


def open_archive():
    return zipfile.ZipFile(io.BytesIO(build_zip(ENTRIES)))


def test_scan_exhausts_when_every_entry_is_discarded():
    scan = ArchiveScan(open_archive())
    assert scan.state is ScanState.NOT_STARTED

    for entry in scan.entries():
        assert scan.state is ScanState.SCANNING
        entry.discard()

    assert scan.state is ScanState.EXHAUSTED
    assert scan.entries_scanned == 3


def test_scan_ends_when_an_entry_is_claimed():
    scan = ArchiveScan(open_archive())
    seen = []

    for entry in scan.entries():
        seen.append(entry.path)
        if entry.path == "target.txt":
            with scan.claim(entry) as reader:
                assert reader.read() == ENTRIES["target.txt"]
        else:
            entry.discard()

    assert seen == ["a.txt", "target.txt"]
    assert scan.state is ScanState.FOUND


def test_scan_refuses_to_advance_past_unsettled_entry():
    scan = ArchiveScan(open_archive())
    entries = scan.entries()
    next(entries)

    with pytest.raises(ArchiveStateError, match="a.txt"):
        next(entries)


def test_scan_cannot_be_restarted_or_claim_stale_entries():
    scan = ArchiveScan(open_archive())
    entries = scan.entries()
    first = next(entries)
    first.discard()
    next(entries)

    with pytest.raises(ArchiveStateError):
        scan.claim(first)

    with pytest.raises(ArchiveStateError):
        next(scan.entries())
