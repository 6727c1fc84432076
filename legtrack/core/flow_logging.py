import logging

from legtrack.core.config import settings


def _category_enabled(category: str | None) -> bool:
    """
    `legs` covers leg writes made by the coordinator (add, update, delete,
    reassign); `repair` covers reference rebuilds. Both sit behind the
    global FLOW_LOGS_ENABLED switch. Uncategorised messages follow the
    global switch alone.
    """
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "legs":
        return settings.FLOW_LOGS_LEGS_ENABLED
    if category == "repair":
        return settings.FLOW_LOGS_REPAIR_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    """Info-level trace of a coordinator step, dropped when its category is switched off."""
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
