import secrets
import time


def new_id() -> str:
    """24 hex chars: a seconds timestamp followed by 8 random bytes."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"
