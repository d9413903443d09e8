"""
Configuration loading for lanshare
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional

from .models import Config, ServerConfig, ShareConfig, LoggingConfig, ListingConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LANSHARE_CONFIG"


def _parse_config(data: Dict[str, Any]) -> Config:
    """Parse configuration data into Config object"""

    server_data = data.get('server') or {}
    server = ServerConfig(
        addr=server_data.get('addr', '0.0.0.0'),
        port=int(server_data.get('port', 8080))
    )

    share_data = data.get('share') or {}
    share = ShareConfig(
        path=str(share_data.get('path', './file'))
    )

    logging_data = data.get('logging') or {}
    logging_config = LoggingConfig(
        json=bool(logging_data.get('json', False)),
        file=str(logging_data.get('file') or ''),
        level=str(logging_data.get('level', 'INFO')),
        max_size_mb=int(logging_data.get('max_size_mb', 100)),
        backup_count=int(logging_data.get('backup_count', 5))
    )

    listing_data = data.get('listing') or {}
    listing = ListingConfig(
        watch=bool(listing_data.get('watch', False))
    )

    return Config(
        server=server,
        share=share,
        logging=logging_config,
        listing=listing
    )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from a YAML file

    The path defaults to $LANSHARE_CONFIG. Without a file, or when the file
    cannot be parsed, the built-in defaults are returned.
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR)

    if not config_path:
        return Config()

    path = Path(config_path).resolve()
    try:
        if not path.exists():
            logger.warning(f"Configuration file not found: {path}")
            return Config()

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            logger.error(f"Configuration file {path} must contain a mapping")
            return Config()

        config = _parse_config(data)
        logger.info(f"Configuration loaded from {path}")
        return config

    except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        return Config()


def apply_overrides(
    config: Config,
    port: Optional[int] = None,
    directory: Optional[str] = None
) -> Config:
    """Apply command line overrides on top of the loaded configuration"""
    if port is not None:
        config.server.port = port
    if directory is not None:
        config.share.path = directory
    return config
