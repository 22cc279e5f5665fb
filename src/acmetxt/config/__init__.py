"""Configuration subsystem for ACMETXT.

Public API::

    from acmetxt.config import AcmetxtConfig

    config = AcmetxtConfig(config_file="config.yaml")
    port = config.settings.api.port        # typed access
    raw = config.get("dns.udp_port")        # dynamic dot-path
"""

from acmetxt.config.acmetxt_config import AcmetxtConfig, ConfigValidationError
from acmetxt.config.settings import (
    AcmetxtSettings,
    ApiSettings,
    DnsSettings,
    LoggingSettings,
    RecordSettings,
    StoreSettings,
    ZoneSettings,
    build_settings,
)

__all__ = [
    # Core
    "AcmetxtConfig",
    # Root
    "AcmetxtSettings",
    # Sections
    "ApiSettings",
    "ConfigValidationError",
    "DnsSettings",
    "LoggingSettings",
    "RecordSettings",
    "StoreSettings",
    "ZoneSettings",
    "build_settings",
]
