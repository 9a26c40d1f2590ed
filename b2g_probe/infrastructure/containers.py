"""
Dependency Injection container for the b2g_probe component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure
adapters, based on the application's configuration.
"""

from typing import Optional

from dependency_injector import containers, providers
from dynaconf import Dynaconf
from pydantic import ValidationError

from ..application.cache import RevisionCache
from ..application.device import DeviceUtilService
from ..application.domain import *
from ..application.exceptions import ConfigurationError
from ..application.service import ProbeService, RevisionResolver
from ..settings import settings

from .adb import AdbTransport
from .archive import ZipArchiveExtractor
from .ini_scanner import ChunkedIniKeyScanner
from .models import ProbeSettings
from .retriever import TempDirRetriever
from .xml_scanner import PullXmlAttributeScanner


def validate_settings(raw: Dynaconf) -> ProbeSettings:
    """Validates the Dynaconf tree against the settings contract."""
    # Dynaconf upper-cases top-level keys
    tree = {key.lower(): value for key, value in raw.as_dict().items()}
    try:
        return ProbeSettings.model_validate(tree)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def _override(cli_value: Optional[str], config_value: str) -> str:
    return cli_value or config_value


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Singleton(validate_settings, settings)

    revision_cache = providers.Singleton(RevisionCache)

    transport: providers.Factory[DeviceTransport] = providers.Factory(
        AdbTransport,
        adb_path=config.provided.adb.path,
        serial=providers.Callable(
            _override, cli_args.serial, config.provided.adb.serial
        ),
        timeout=config.provided.adb.timeout,
    )

    retriever: providers.Factory[Retriever] = providers.Factory(
        TempDirRetriever,
        transport=transport,
        temp_prefix=config.provided.retriever.temp_prefix,
    )

    archive_extractor: providers.Factory[ArchiveExtractor] = providers.Factory(
        ZipArchiveExtractor,
    )

    xml_scanner: providers.Factory[XmlAttributeScanner] = providers.Factory(
        PullXmlAttributeScanner,
        chunk_size=config.provided.scanner.chunk_size,
    )

    ini_scanner: providers.Factory[IniKeyScanner] = providers.Factory(
        ChunkedIniKeyScanner,
        chunk_size=config.provided.scanner.chunk_size,
    )

    revision_resolver = providers.Factory(
        RevisionResolver,
        retriever=retriever,
        archive_extractor=archive_extractor,
        xml_scanner=xml_scanner,
        ini_scanner=ini_scanner,
        cache=revision_cache,
    )

    probe_service = providers.Factory(
        ProbeService,
        resolver=revision_resolver,
    )

    device_util = providers.Factory(
        DeviceUtilService,
        transport=transport,
    )
