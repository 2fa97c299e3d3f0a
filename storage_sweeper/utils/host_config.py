"""
Host-specific configuration management utility.

Selects (and on first run creates) the hostname-specific settings file, so a
device profile can carry its own storage root and package list.
"""

import logging
import shutil
import socket
from pathlib import Path

BASE_SETTINGS_FILE = "settings.env"


def get_hostname() -> str:
    """Get the current hostname (without domain)."""
    return socket.gethostname().split(".")[0]


def get_hostname_settings_file() -> str:
    """
    Get the appropriate settings file for this host.

    Logic:
    1. Check if {hostname}-settings.env exists
    2. If not, create it by copying settings.env with a header
    3. Return the hostname-specific file path, or settings.env on any error

    Returns:
        str: Path to the settings file pydantic-settings should read
    """
    try:
        hostname = get_hostname()
        base_settings = Path(BASE_SETTINGS_FILE)
        host_settings = Path(f"{hostname}-settings.env")

        if host_settings.exists():
            logging.debug(f"Using existing host-specific configuration: {host_settings}")
            return str(host_settings)

        if not base_settings.exists():
            logging.debug("Base settings.env not found, using defaults and environment")
            return BASE_SETTINGS_FILE

        shutil.copy2(base_settings, host_settings)
        content = host_settings.read_text(encoding="utf-8")
        header = (
            f"# Host-specific storage sweeper configuration for: {hostname}\n"
            f"# Generated from {BASE_SETTINGS_FILE}; edit freely for this device\n\n"
        )
        host_settings.write_text(header + content, encoding="utf-8")
        logging.info(f"Created host-specific configuration: {host_settings}")
        return str(host_settings)

    except OSError as e:
        logging.error(f"Error handling host-specific settings: {e}")
        return BASE_SETTINGS_FILE


def list_all_settings_files() -> list[str]:
    """List all available settings files (base + host-specific)."""
    settings_files = []
    if Path(BASE_SETTINGS_FILE).exists():
        settings_files.append(BASE_SETTINGS_FILE)
    for file_path in Path(".").glob("*-settings.env"):
        settings_files.append(str(file_path))
    return settings_files
