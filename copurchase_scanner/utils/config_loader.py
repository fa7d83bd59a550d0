"""
Configuration loader for the co-purchase scanner

Reads config/config.yml (optional) and fills API keys and the base URL from
the environment when the file does not set them.
"""

import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from copurchase_scanner.core.models import ScanConfig


DEFAULT_BASE_URL = "https://data.solanatracker.io"

DEFAULT_OUTPUT = {
    'json_file': 'copurchase_signals.json',
    'csv_file': 'copurchase_signals.csv',
    'preview_rows': 30,
}

DEFAULT_LOGGING = {
    'level': 'INFO',
    'file': 'logs/copurchase_scan.log',
}


class ConfigurationError(ValueError):
    """Invalid or incomplete configuration; fatal before any work starts"""


def _default_config_path() -> Path:
    project_root = Path(__file__).parent.parent.parent
    return project_root / "config" / "config.yml"


def _substitute_env_vars(config: Any) -> Any:
    """
    Recursively substitute ${VAR_NAME} references with environment values

    Raises:
        ConfigurationError: If a referenced variable is not set
    """
    if isinstance(config, dict):
        return {k: _substitute_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [_substitute_env_vars(item) for item in config]
    elif isinstance(config, str):
        def replace_var(match):
            var_name = match.group(1)
            value = os.getenv(var_name)
            if value is None:
                raise ConfigurationError(f"Environment variable {var_name} not found")
            return value

        return re.sub(r'\$\{([^}]+)\}', replace_var, config)
    else:
        return config


def parse_api_keys(raw: Union[str, List[str], None]) -> List[str]:
    """Normalize a comma string or list of keys to a list of non-empty keys"""
    if not raw:
        return []
    if isinstance(raw, str):
        raw = raw.split(',')
    return [str(k).strip() for k in raw if k is not None and str(k).strip()]


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file and the environment

    Args:
        config_path: Explicit config file. Defaults to config/config.yml in the
            project root, which may be absent.

    Returns:
        Dictionary with 'solanatracker_keys', 'solanatracker_base', 'scan'
        (a ScanConfig), 'output' and 'logging'

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ConfigurationError: If the YAML is invalid or references unset variables
    """
    config_data: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at {path}")
    else:
        path = _default_config_path()

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {path}: {e}")
        config_data = _substitute_env_vars(config_data)

    # Normalize keys to always be a list, falling back to the environment
    keys = parse_api_keys(config_data.get('solanatracker_keys'))
    if not keys:
        keys = parse_api_keys(config_data.get('solanatracker_key'))
    if not keys:
        keys = parse_api_keys(
            os.getenv('SOLANATRACKER_API_KEYS') or os.getenv('SOLANATRACKER_API_KEY')
        )
    config_data['solanatracker_keys'] = keys
    config_data.pop('solanatracker_key', None)

    config_data['solanatracker_base'] = (
        config_data.get('solanatracker_base')
        or os.getenv('SOLANATRACKER_BASE')
        or DEFAULT_BASE_URL
    )

    config_data['scan'] = build_scan_config(config_data.get('scan') or {})
    config_data['output'] = {**DEFAULT_OUTPUT, **(config_data.get('output') or {})}
    config_data['logging'] = {**DEFAULT_LOGGING, **(config_data.get('logging') or {})}

    return config_data


def build_scan_config(scan_data: Dict[str, Any]) -> ScanConfig:
    """Build a ScanConfig from the 'scan' section, keeping defaults for gaps"""
    defaults = ScanConfig()
    try:
        return ScanConfig(
            top_traders_limit=int(scan_data.get('top_traders_limit', defaults.top_traders_limit)),
            lookback_ms=int(scan_data.get('lookback_ms', defaults.lookback_ms)),
            min_wallets_for_signal=int(
                scan_data.get('min_wallets_for_signal', defaults.min_wallets_for_signal)
            ),
            request_delay_ms=int(scan_data.get('request_delay_ms', defaults.request_delay_ms)),
            wallet_trades_limit=int(
                scan_data.get('wallet_trades_limit', defaults.wallet_trades_limit)
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid scan configuration: {e}")


def get_log_path(config: Dict[str, Any]) -> str:
    """Extract log path from config with proper defaults"""
    return config.get('logging', {}).get('file', DEFAULT_LOGGING['file'])


def get_log_level(config: Dict[str, Any]) -> str:
    """Extract log level from config with proper defaults"""
    return config.get('logging', {}).get('level', DEFAULT_LOGGING['level'])


def validate_required_keys(config: Dict[str, Any]) -> None:
    """
    Validate that the loaded configuration can drive a scan

    Raises:
        ConfigurationError: If keys are missing or scan values are out of range
    """
    problems = []

    if not config.get('solanatracker_keys'):
        problems.append('solanatracker_keys (or SOLANATRACKER_API_KEYS / SOLANATRACKER_API_KEY)')

    scan = config.get('scan')
    if not isinstance(scan, ScanConfig):
        problems.append('scan')
    else:
        for name in ('top_traders_limit', 'min_wallets_for_signal', 'wallet_trades_limit'):
            if getattr(scan, name) < 1:
                problems.append(f'scan.{name} must be >= 1')
        for name in ('lookback_ms', 'request_delay_ms'):
            if getattr(scan, name) < 0:
                problems.append(f'scan.{name} must be >= 0')

    if problems:
        raise ConfigurationError(f"Invalid configuration: {', '.join(problems)}")
