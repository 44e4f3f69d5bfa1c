"""
Configuration loading utilities for the tree engine.

This module provides functionality to load and validate engine
configuration (id generation, default node names, tree settings and
logging) from config.yaml with fallback to defaults.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

from .exceptions import TreeValidationError
from .schema import TreeSettings, validate_settings

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("config.yaml")

LOGGING_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}

# Global configuration cache
_config_cache = None


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'Tree Engine',
            'version': '1.0.0',
            'debug': False
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        },
        'ids': {
            'prefix': 'node',
            'suffix_length': 7,
            'max_attempts': 10
        },
        'tree': {
            'root_name': 'Root Node',
            'sibling_name': 'New Sibling',
            'child_name': 'New Child'
        },
        'settings': {
            'selectable': True,
            'multiple': True,
            'parent_selection': False,
            'tree_lines': True,
            'highlight_active_node': False,
            'enable_search': True,
            'edit_icon': False,
            'title_editable': False,
            'enable_actions': False
        }
    }


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load engine configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary. Missing, empty or unreadable files
        fall back to the defaults.
    """
    if config_path is None:
        config_path = CONFIG_FILE

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return default_config

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return default_config

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return default_config

        config = deep_merge(default_config, user_config)

        if not validate_config(config):
            logger.warning(f"Invalid values in configuration file: {config_path}")
            logger.info("Using default configuration")
            return default_config

        logger.info(f"Successfully loaded configuration from {config_path}")
        return config

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return default_config


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and required fields.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'logging', 'ids', 'tree', 'settings']

    for section in required_sections:
        if section not in config:
            logger.warning(f"Missing required configuration section: {section}")
            return False
        if not isinstance(config[section], dict):
            logger.warning(f"Configuration section must be a mapping: {section}")
            return False

    ids = config['ids']
    prefix = ids.get('prefix')
    if not isinstance(prefix, str) or not prefix:
        logger.warning("ids.prefix must be a non-empty string")
        return False

    for key in ['suffix_length', 'max_attempts']:
        value = ids.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            logger.warning(f"ids.{key} must be a positive integer")
            return False

    tree = config['tree']
    for key in ['root_name', 'sibling_name', 'child_name']:
        name = tree.get(key)
        if not isinstance(name, str) or not 1 <= len(name) <= 100:
            logger.warning(f"tree.{key} must be a string of 1-100 characters")
            return False

    for key, value in config['settings'].items():
        if not isinstance(value, bool):
            logger.warning(f"settings.{key} must be true or false")
            return False

    level = config['logging'].get('level', 'INFO')
    if not isinstance(level, str) or level.upper() not in LOGGING_LEVELS:
        logger.warning(f"Unknown logging level: {level}")
        return False

    return True


def get_config() -> Dict[str, Any]:
    """Return the cached configuration, loading config.yaml on first use."""
    global _config_cache

    if _config_cache is None:
        _config_cache = load_config()

    return _config_cache


def reload_config():
    """
    Clear the configuration cache so the next access re-reads config.yaml.
    """
    global _config_cache
    _config_cache = None
    logger.debug("Configuration cache cleared")


def get_config_value(section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        section: Configuration section name
        key: Configuration key name
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    config = get_config()
    section_values = config.get(section)
    if not isinstance(section_values, dict):
        return default
    return section_values.get(key, default)


def get_tree_settings(config: Optional[Dict[str, Any]] = None) -> TreeSettings:
    """
    Build TreeSettings from the 'settings' section of a configuration.

    Args:
        config: Complete configuration dictionary (defaults to the cached config)

    Returns:
        TreeSettings instance; invalid settings fall back to the defaults
    """
    if config is None:
        config = get_config()

    try:
        return validate_settings(config.get('settings') or {})
    except TreeValidationError as e:
        logger.error(f"Invalid tree settings in configuration: {e}")
        logger.info("Using default tree settings")
        return TreeSettings()


def get_logging_level(level_str: str) -> int:
    """Map string logging level to logging constant."""
    return LOGGING_LEVELS.get(str(level_str).upper(), logging.INFO)


def configure_logging(config: Optional[Dict[str, Any]] = None) -> int:
    """
    Configure root logging from the 'logging' section of a configuration.

    Args:
        config: Complete configuration dictionary (defaults to the cached config)

    Returns:
        The numeric logging level that was applied
    """
    if config is None:
        config = get_config()

    logging_config = config.get('logging') or {}
    level_str = logging_config.get('level', 'INFO')
    log_level = get_logging_level(level_str)
    log_format = logging_config.get('format') or get_default_config()['logging']['format']

    logging.basicConfig(level=log_level, format=log_format)
    logger.info(f"Logging configured to level: {level_str}")
    return log_level

