# runtime settings, read once from the environment
# modules read these attributes at call time, so tests can patch them
import os


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


DB_PATH = os.getenv("LIVEMART_DB", "data/livemart.sqlite")
CACHE_PATH = os.getenv("LIVEMART_CACHE", "data/session-cache.sqlite")
LOAD_SEED_DATA = _flag("LIVEMART_SEED", True)

# days between order placement and the estimated delivery date
DELIVERY_DAYS = int(os.getenv("LIVEMART_DELIVERY_DAYS", "3"))

# "disabled": orders can never be cancelled
# "keep_stock": pending/processing orders can be cancelled, stock stays decremented
# "restore_stock": as above, and every line's quantity goes back on the shelf
CANCEL_POLICIES = ("disabled", "keep_stock", "restore_stock")
CANCEL_POLICY = os.getenv("LIVEMART_CANCEL_POLICY", "disabled")

FEEDBACK_ONE_PER_ORDER = _flag("LIVEMART_FEEDBACK_ONE_PER_ORDER", True)

# DEBUG in the environment still switches on debug output
LOG_LEVEL = os.getenv("LIVEMART_LOG_LEVEL", "DEBUG" if os.getenv("DEBUG") else "INFO")
