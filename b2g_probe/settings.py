"""
Initializes the Dynaconf settings object for the b2g_probe component.
This module is the single source of truth for all configuration.
"""

from pathlib import Path
from dynaconf import Dynaconf

PACKAGE_ROOT = Path(__file__).parent

settings = Dynaconf(
    root_path=PACKAGE_ROOT,
    settings_files=["config/settings.toml"],
    secrets=["config/.secrets.toml"],
    envvar_prefix="B2G_PROBE",
)
