"""Progress and size formatting helpers for the sweeper."""

from typing import Optional


def should_emit_progress(
    now: float,
    last_emitted_at: Optional[float],
    interval_seconds: float,
    stage_changed: bool = False,
    total_changed: bool = False,
    is_final: bool = False,
) -> bool:
    # Always deliver the terminal snapshot and structural changes
    if is_final or stage_changed or total_changed:
        return True

    if last_emitted_at is None:
        return True

    return now - last_emitted_at >= interval_seconds


def calculate_ratio(processed: int, total: int, cap: float = 0.99) -> float:
    if total <= 0:
        return 0.0
    return min(processed / total, cap)


def format_bytes_human_readable(bytes_value: int) -> str:
    if bytes_value < 1024:
        return f"{bytes_value} B"
    elif bytes_value < 1024 * 1024:
        return f"{bytes_value / 1024:.1f} KB"
    elif bytes_value < 1024 * 1024 * 1024:
        return f"{bytes_value / (1024 * 1024):.1f} MB"
    else:
        return f"{bytes_value / (1024 * 1024 * 1024):.1f} GB"
