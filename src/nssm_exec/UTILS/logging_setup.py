"""
Logging configuration for the command line tool.
"""
import logging
import logging.config
from typing import Optional

import yaml

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def configure_logging(verbose: bool = False, log_config_path: Optional[str] = None):
    """
    Configures logging from a YAML dictConfig file, or a plain stderr handler.

    :param verbose: Log at DEBUG instead of INFO; also applied on top of a config file.
    :param log_config_path: Optional YAML file in logging.config.dictConfig format.
    :raises OSError: If the config file cannot be read.
    :raises ValueError: If the config file is not a valid logging configuration.
    """
    if log_config_path:
        with open(log_config_path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
        if not isinstance(config, dict):
            raise ValueError(f"Logging configuration '{log_config_path}' must be a mapping")
        config.setdefault('version', 1)
        logging.config.dictConfig(config)
    else:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, force=True)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
