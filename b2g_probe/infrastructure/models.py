"""
Pydantic models for validating configuration and shaping the CLI report.

The settings models serve as a strict contract for the values loaded by
Dynaconf, so that a typo in a config file is caught at startup instead of
deep inside an adb invocation.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class LoggingSettings(BaseModel):
    """The 'logging' section of the settings file."""

    level: str = "INFO"


class AdbSettings(BaseModel):
    """The 'adb' section: how to reach the device."""

    path: str = Field(default="adb", min_length=1)
    serial: str = ""
    timeout: float = Field(default=120, gt=0)


class RetrieverSettings(BaseModel):
    """The 'retriever' section: local temporary storage."""

    temp_prefix: str = "b2g-probe-"


class ScannerSettings(BaseModel):
    """The 'scanner' section: streaming read sizes."""

    chunk_size: int = Field(default=65536, gt=0)


class ProbeSettings(BaseModel):
    """Represents the complete, validated settings tree."""

    logging: LoggingSettings = LoggingSettings()
    adb: AdbSettings = AdbSettings()
    retriever: RetrieverSettings = RetrieverSettings()
    scanner: ScannerSettings = ScannerSettings()


class RevisionReport(BaseModel):
    """The JSON document printed by the `revisions` command."""

    gecko: Optional[str] = None
    gaia: Optional[str] = None
    errors: Dict[str, str] = {}
