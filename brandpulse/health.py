import logging
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from brandpulse import __version__
from brandpulse.clock import utcnow

logger = logging.getLogger(__name__)


def healthcheck(engine: Optional[Engine] = None) -> Dict:
    """Health check with timestamp. Pings the database when an engine is given."""
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "version": __version__,
    }
    if engine is None:
        return result

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        result["status"] = "error"
        result["database"] = "unreachable"
    return result
