from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.host_config import get_hostname_settings_file

MB = 1024 * 1024


class Settings(BaseSettings):
    # Storage layout
    external_storage_root: str = "/storage/emulated/0"

    # Device collaborators (static defaults, replaced by platform adapters)
    installed_packages: List[str] = []
    storage_permission_granted: bool = True

    # Traversal tuning
    batch_size: int = 32  # Entries stat'ed in parallel per batch (20-50)
    max_concurrent_batches: int = 3  # Batches in flight at once (2-3)
    progress_interval_ms: int = 120  # Minimum gap between progress emissions (50-120)

    # Junk thresholds
    min_file_size_bytes: int = 1024  # Files smaller than this are never junk
    junk_large_threshold_mb: int = 500
    junk_stale_days: int = 45

    # Feature thresholds (independent of the junk values)
    large_file_threshold_mb: int = 512
    old_file_age_days: int = 30
    duplicate_min_size_bytes: int = 10 * 1024
    media_min_size_bytes: int = 0

    # Hashing / deletion
    hash_concurrency: int = 1  # Hash batches (50 files each) in flight
    delete_concurrency: int = 8

    # Finished scan sessions kept for status lookups; stored results live in the repository
    session_history_size: int = 8

    # Logging
    log_level: str = "INFO"
    log_file_path: str = "logs/storage_sweeper.log"
    deletion_log_path: str = "logs/deletions.log"  # One line per removed path
    log_retention_days: int = 14

    model_config = SettingsConfigDict(
        env_file=get_hostname_settings_file(),
        env_prefix="SWEEPER_",
        extra="ignore",
    )

    @property
    def junk_large_threshold_bytes(self) -> int:
        return self.junk_large_threshold_mb * MB

    @property
    def large_file_threshold_bytes(self) -> int:
        return self.large_file_threshold_mb * MB

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files(),
        }
