"""Formatting utilities for domain logic."""


def status_to_color(status: str) -> str:
    """Map deletion status string to color name.

    Args:
        status: Status string ("Deleted", "AlreadyDeleted", "Failed" or "Summary")

    Returns:
        Color name string:
        - "Deleted" -> "green"
        - "AlreadyDeleted" -> "yellow"
        - "Failed" -> "red"
        - "Summary" -> "bold"
        - invalid -> empty string
    """
    color_map = {
        "Deleted": "green",
        "AlreadyDeleted": "yellow",
        "Failed": "red",
        "Summary": "bold",
    }
    return color_map.get(status, "")


def format_size_mb(size_mb: float) -> str:
    """Format a size in MiB with two decimals (e.g. "12.50 MB")."""
    return f"{size_mb:.2f} MB"
