# File: icugenotypes/config.py
# Location: icugenotypes/icugenotypes/config.py

"""
Configuration management module.

This module handles loading configuration from a JSON file.
All study-defined constants (column names, locus level orders, grouping
maps, statistical defaults) reside in config.json, which is included in
the installed package directory.

If no config_file is provided, this module attempts to load the default
config.json from the package installation directory.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

logger = logging.getLogger("icugenotypes")

_REQUIRED_KEYS = ("outcome_levels", "patient_columns", "control_columns", "loci")


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    If no config_file is provided, the function attempts to load the
    'config.json' from the installed package directory. If it fails
    to find or parse the file, it raises an error.

    Parameters
    ----------
    config_file : str, optional
        Path to a configuration file in JSON format. If None, defaults to
        the package-installed 'config.json'.

    Returns
    -------
    dict
        Configuration dictionary loaded from the JSON file.

    Raises
    ------
    FileNotFoundError
        If the specified configuration file does not exist.
    ValueError
        If there is an error parsing the JSON configuration file, or a
        required top-level key is missing.
    """
    if not config_file:
        # Use the package's installed config.json
        config_file = os.path.join(os.path.dirname(__file__), "config.json")

    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file '{config_file}' not found.")

    with open(config_file, "r", encoding="utf-8") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing JSON configuration: {e}")

    missing = [key for key in _REQUIRED_KEYS if key not in config]
    if missing:
        raise ValueError(f"Configuration '{config_file}' is missing required keys: {missing}")

    logger.debug(f"Configuration loaded from {config_file}")
    return config


def get_locus(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Return the locus definition called ``name``."""
    for locus in config["loci"]:
        if locus["name"] == name:
            return locus
    raise KeyError(f"Locus '{name}' not defined in configuration")


def locus_names(config: Dict[str, Any]) -> List[str]:
    return [locus["name"] for locus in config["loci"]]
