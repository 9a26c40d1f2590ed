import pytest

from b2g_probe.application.cache import RevisionCache
from b2g_probe.application.domain import RevisionKind
from b2g_probe.application.exceptions import (
    EntryNotFoundError,
    FallbackExhaustedError,
    RevisionUnavailableError,
    ScanError,
)
from b2g_probe.application.service import ProbeService, RevisionResolver
from b2g_probe.infrastructure.archive import ZipArchiveExtractor
from b2g_probe.infrastructure.ini_scanner import ChunkedIniKeyScanner
from b2g_probe.infrastructure.retriever import TempDirRetriever
from b2g_probe.infrastructure.xml_scanner import PullXmlAttributeScanner

from conftest import FakeTransport, build_zip

SOURCES_XML = "/system/sources.xml"
APPLICATION_INI = "/system/b2g/application.ini"
PLATFORM_INI = "/system/b2g/platform.ini"
B2G_ZIP = "/system/b2g/webapps/settings.gaiamobile.org/application.zip"
DATA_LOCAL_ZIP = "/data/local/webapps/settings.gaiamobile.org/application.zip"

MANIFEST = b'<manifest><project name="gecko" revision="abc123"/></manifest>'
NO_GECKO_MANIFEST = b'<manifest><project name="gaia" revision="x"/></manifest>'


def make_resolver(transport, cache=None):
    return RevisionResolver(
        retriever=TempDirRetriever(transport, temp_prefix="probe-test-"),
        archive_extractor=ZipArchiveExtractor(),
        xml_scanner=PullXmlAttributeScanner(chunk_size=64),
        ini_scanner=ChunkedIniKeyScanner(chunk_size=64),
        cache=cache if cache is not None else RevisionCache(),
    )


async def test_gecko_from_sources_manifest(temp_root):
    transport = FakeTransport({SOURCES_XML: MANIFEST})

    assert await make_resolver(transport).gecko_revision() == "abc123"
    assert transport.pulls == [SOURCES_XML]
    assert list(temp_root.iterdir()) == []


async def test_gecko_falls_back_to_application_ini(temp_root):
    transport = FakeTransport({APPLICATION_INI: b"Name=B2G\nSourceStamp=cafef00d\n"})

    assert await make_resolver(transport).gecko_revision() == "cafef00d"
    assert transport.pulls == [SOURCES_XML, APPLICATION_INI]
    assert list(temp_root.iterdir()) == []


async def test_gecko_falls_back_when_manifest_lacks_gecko(temp_root):
    transport = FakeTransport({
        SOURCES_XML: NO_GECKO_MANIFEST,
        APPLICATION_INI: b"SourceStamp=cafef00d\n",
    })

    assert await make_resolver(transport).gecko_revision() == "cafef00d"


async def test_gecko_from_platform_ini(temp_root):
    transport = FakeTransport({PLATFORM_INI: b"SourceStamp=feedface\n"})

    assert await make_resolver(transport).gecko_revision() == "feedface"
    assert transport.pulls == [SOURCES_XML, APPLICATION_INI, PLATFORM_INI]


async def test_gecko_fails_when_every_source_fails(temp_root):
    transport = FakeTransport({APPLICATION_INI: b"Name=B2G\n"})
    cache = RevisionCache()

    with pytest.raises(RevisionUnavailableError, match="gecko") as excinfo:
        await make_resolver(transport, cache).gecko_revision()

    assert isinstance(excinfo.value.__cause__, FallbackExhaustedError)
    assert RevisionKind.GECKO not in cache
    assert list(temp_root.iterdir()) == []


async def test_gaia_from_secondary_archive_location(temp_root):
    archive = build_zip({
        "index.html": b"<html></html>",
        "resources/gaia_commit.txt": b"f00dcafe\nMon Jan 4 12:00:00 2016\n",
        "js/settings.js": b"// settings",
    })
    transport = FakeTransport({DATA_LOCAL_ZIP: archive})

    assert await make_resolver(transport).gaia_revision() == "f00dcafe"
    assert transport.pulls == [B2G_ZIP, DATA_LOCAL_ZIP]
    assert list(temp_root.iterdir()) == []


async def test_gaia_fails_without_commit_marker(temp_root):
    transport = FakeTransport({B2G_ZIP: build_zip({"index.html": b""})})

    with pytest.raises(RevisionUnavailableError) as excinfo:
        await make_resolver(transport).gaia_revision()

    assert isinstance(excinfo.value.__cause__, EntryNotFoundError)
    assert transport.pulls == [B2G_ZIP]


async def test_gaia_fails_on_empty_commit_marker(temp_root):
    transport = FakeTransport({
        B2G_ZIP: build_zip({"resources/gaia_commit.txt": b""}),
    })

    with pytest.raises(RevisionUnavailableError):
        await make_resolver(transport).gaia_revision()


async def test_cached_revision_skips_device(temp_root):
    transport = FakeTransport({SOURCES_XML: MANIFEST})
    resolver = make_resolver(transport)

    assert await resolver.gecko_revision() == "abc123"
    transport.files.clear()
    assert await resolver.gecko_revision() == "abc123"
    assert transport.pulls == [SOURCES_XML]


async def test_cache_is_shared_between_resolvers(temp_root):
    cache = RevisionCache()
    cache.store(RevisionKind.GAIA, "cached")
    transport = FakeTransport()

    assert await make_resolver(transport, cache).gaia_revision() == "cached"
    assert transport.calls == []


async def test_probe_service_reports_revisions_and_errors(temp_root):
    transport = FakeTransport({SOURCES_XML: MANIFEST})
    service = ProbeService(make_resolver(transport))

    revisions, errors = await service.run(
        [RevisionKind.GECKO, RevisionKind.GAIA]
    )

    assert revisions == {RevisionKind.GECKO: "abc123"}
    assert list(errors) == [RevisionKind.GAIA]
    assert "gaia" in errors[RevisionKind.GAIA]


async def test_gaia_rejects_overlong_first_line(temp_root):
    cache = RevisionCache()
    transport = FakeTransport({
        B2G_ZIP: build_zip({"resources/gaia_commit.txt": b"f" * 5000 + b"\n"}),
    })

    with pytest.raises(RevisionUnavailableError) as excinfo:
        await make_resolver(transport, cache).gaia_revision()

    assert isinstance(excinfo.value.__cause__, ScanError)
    assert RevisionKind.GAIA not in cache


async def test_gaia_marker_without_trailing_newline(temp_root):
    transport = FakeTransport({
        B2G_ZIP: build_zip({"resources/gaia_commit.txt": b"f00dcafe"}),
    })

    assert await make_resolver(transport).gaia_revision() == "f00dcafe"
