import logging
from fastapi import HTTPException

logger = logging.getLogger(__name__)


def load_panel(name: str, loader, *args, **kwargs) -> dict:
    """
    Run one dashboard panel's loader in isolation.

    Returns {"data": ..., "error": None} on success. A failure becomes an
    inline message for that panel only; sibling panels are unaffected.
    """
    try:
        return {"data": loader(*args, **kwargs), "error": None}
    except HTTPException as e:
        detail = e.detail.get("message") if isinstance(e.detail, dict) else e.detail
        return {"data": None, "error": str(detail)}
    except Exception as e:
        logger.error("Panel %s failed: %s", name, e)
        return {"data": None, "error": f"Could not load {name}."}
