"""
Configuration file I/O for saving and loading experiment configurations,
plus device credentials from the environment.
"""

import json
import os
from typing import Dict, Optional

from dotenv import find_dotenv, load_dotenv

from .experiment import ExperimentConfig


CREDENTIAL_KEYS = ('DEVICE_ID', 'EMAIL', 'PASSWORD')


def save_config(config: ExperimentConfig, filepath: str) -> bool:
    """
    Save experiment configuration to JSON file.

    Args:
        config: ExperimentConfig object to save
        filepath: Path where JSON file should be saved

    Returns:
        True if successful, False otherwise
    """
    try:
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(config.to_dict(), f, indent=2, ensure_ascii=False)

        print(f"Configuration saved successfully to {filepath}")
        return True

    except (OSError, TypeError, ValueError) as e:
        print(f"Error saving configuration: {str(e)}")
        return False


def load_config(filepath: str) -> Optional[ExperimentConfig]:
    """
    Load experiment configuration from JSON file.

    Args:
        filepath: Path to JSON configuration file

    Returns:
        ExperimentConfig object or None if loading fails
    """
    if not os.path.exists(filepath):
        print(f"Configuration file not found: {filepath}")
        return None

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            config_dict = json.load(f)

        config = ExperimentConfig.from_dict(config_dict)

        print(f"Configuration loaded successfully from {filepath}")
        return config

    except (OSError, ValueError, TypeError) as e:
        print(f"Error loading configuration: {str(e)}")
        return None


def load_credentials(env_file: Optional[str] = None) -> Dict[str, Optional[str]]:
    """
    Read headset credentials from the environment.

    A .env file (explicit path, or discovered from the working directory) is
    loaded first without overriding variables that are already set.

    Returns:
        Dictionary with 'device_id', 'email' and 'password' (None when missing)
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    return {key.lower(): os.environ.get(key) or None for key in CREDENTIAL_KEYS}


def missing_credentials(credentials: Dict[str, Optional[str]]) -> list:
    """Names of the credential variables that are not set."""
    return [key for key in CREDENTIAL_KEYS if not credentials.get(key.lower())]
