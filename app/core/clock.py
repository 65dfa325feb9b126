from datetime import datetime, timezone


def utcnow() -> datetime:
    """Agora em UTC, sem tzinfo (mesmo formato gravado no banco)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
