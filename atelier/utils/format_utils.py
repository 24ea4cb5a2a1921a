"""
Formatting helpers for sizes and percentages shown in the admin UI.
"""


def format_megabytes(num_bytes) -> str:
    """Format a byte count as megabytes with two decimals, e.g. '2.50MB'.

    Returns an empty string for missing or zero sizes so gallery tiles
    without a recorded size show nothing.
    """
    if not num_bytes:
        return ""
    return f"{num_bytes / 1024 / 1024:.2f}MB"


def format_percentage(loaded: int, total: int) -> int:
    """Whole-number percentage of loaded over total, clamped to 0..100."""
    if not total or total <= 0:
        return 0
    # round half up, not banker's rounding
    percent = int(loaded * 100 / total + 0.5)
    return max(0, min(100, percent))


def truncate_string(text: str, max_length: int = 40, suffix: str = "...") -> str:
    """Shorten long file names for task rows."""
    if text is None:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= len(suffix):
        return text[:max_length]
    return text[:max_length - len(suffix)] + suffix
