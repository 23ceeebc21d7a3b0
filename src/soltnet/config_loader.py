"""
Configuration loading and validation for soltnet.
"""

import logging
import os
from typing import Any

import yaml
from dotenv import load_dotenv

LOCAL_RPC_URL = "http://127.0.0.1:8899"
MAINNET_RPC_URL = "http://api.mainnet-beta.solana.com"

DEFAULT_CONFIG: dict[str, Any] = {
    "rpc_endpoint": LOCAL_RPC_URL,
    "mainnet_rpc_endpoint": MAINNET_RPC_URL,
    "commitment": "confirmed",
    "output_path": ".",
    "log_level": "INFO",
    "log_file": None,
    "max_retries": 3,
}

# Environment variables that override the file
ENV_OVERRIDES = {
    "SOLTNET_RPC_ENDPOINT": "rpc_endpoint",
    "SOLTNET_MAINNET_RPC_ENDPOINT": "mainnet_rpc_endpoint",
}

CONFIG_VALIDATION_RULES = [
    ("max_retries", int, 1, 10, "max_retries must be between 1 and 10"),
]

VALID_VALUES = {
    "commitment": ["processed", "confirmed", "finalized"],
    "log_level": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
}

ENDPOINT_FIELDS = ["rpc_endpoint", "mainnet_rpc_endpoint"]


def load_config(path: str | None = None) -> dict[str, Any]:
    """Load and validate the configuration.

    Args:
        path: YAML configuration file, or None to use defaults only

    Returns:
        Configuration dictionary with defaults applied
    """
    config = dict(DEFAULT_CONFIG)

    if path:
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ValueError(f"Configuration in {path} must be a mapping")

        env_file = file_config.get("env_file")
        if env_file:
            env_path = os.path.join(os.path.dirname(path), env_file)
            if os.path.exists(env_path):
                load_dotenv(env_path, override=True)
            else:
                load_dotenv(env_file, override=True)

        resolve_env_vars(file_config)
        config.update(file_config)

    for env_var, key in ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value:
            config[key] = value

    validate_config(config)
    return config


def resolve_env_vars(config: dict) -> None:
    """Recursively resolve ${VAR} environment references in the configuration."""
    def resolve_env(value):
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            env_value = os.getenv(env_var)
            if env_value is None:
                raise ValueError(f"Environment variable '{env_var}' not found")
            return env_value
        return value

    def resolve_all(d):
        for k, v in d.items():
            if isinstance(v, dict):
                resolve_all(v)
            else:
                d[k] = resolve_env(v)

    resolve_all(config)


def validate_config(config: dict) -> None:
    """Validate the configuration against defined rules."""
    for field in ENDPOINT_FIELDS:
        endpoint = config.get(field)
        if not isinstance(endpoint, str) or not endpoint.startswith(("http://", "https://")):
            raise ValueError(f"{field} must start with http:// or https://")

    for path, expected_type, min_val, max_val, error_msg in CONFIG_VALIDATION_RULES:
        value = config.get(path)
        if not isinstance(value, expected_type) or isinstance(value, bool):
            raise ValueError(f"Type error: {error_msg}")
        if not (min_val <= value <= max_val):
            raise ValueError(f"Range error: {error_msg}")

    for path, valid_values in VALID_VALUES.items():
        value = config.get(path)
        if isinstance(value, str) and path == "log_level":
            value = value.upper()
            config[path] = value
        if value not in valid_values:
            raise ValueError(f"{path} must be one of {valid_values}")


def get_log_level(config: dict) -> int:
    return logging.getLevelName(config["log_level"])
