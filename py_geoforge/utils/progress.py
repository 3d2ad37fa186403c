"""
Progress reporting hooks.

Generation phases report coarse progress through a Reporter callable. The
return value of a reporter is ignored; reporting never changes control flow.
"""

from typing import Callable, Optional

import structlog

logger = structlog.get_logger()

Reporter = Callable[[str, Optional[str]], None]


def log_reporter(message: str, progress_group_id: Optional[str] = None) -> None:
    """Default reporter writing progress messages to the structlog logger."""
    if progress_group_id:
        logger.info(message, progress_group=progress_group_id)
    else:
        logger.info(message)


def format_progress_bar(current: int, total: int, prefix: str = "", bar_width: int = 40) -> str:
    """
    Render a text progress bar.

    Args:
        current: Items processed
        total: Items overall
        prefix: Text placed before the bar
        bar_width: Number of characters in the bar

    Returns:
        String such as "Trunk [||||....] 50% (2/4)"
    """
    if total == 0:
        return f"{prefix} [{'-' * bar_width}] 0% (0/0)"

    percent = current * 100 // total
    filled = round(bar_width * percent / 100)
    bar = "|" * filled + "." * (bar_width - filled)
    return f"{prefix} [{bar}] {percent}% ({current}/{total})"
