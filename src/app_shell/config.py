import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def validate_environment(data_dir: Path, migrations_dir: Path) -> list[str]:
    """
    Check operational requirements before startup.

    Returns the list of problems found. A missing JWT_SECRET is not fatal:
    public invitation routes keep working and every credential check reports
    a misconfigured secret until it is set.
    """
    problems: list[str] = []

    if not migrations_dir.is_dir():
        problems.append(f"Migrations directory not found: {migrations_dir}")

    data_dir.mkdir(parents=True, exist_ok=True)
    if not os.access(data_dir, os.W_OK):
        problems.append(f"Data directory is not writable: {data_dir}")

    if not os.environ.get("JWT_SECRET"):
        logger.error("JWT_SECRET is not set; authenticated requests will be refused")

    strict = os.environ.get("WS_AUTH_STRICT")
    if strict is not None and strict not in ("true", "false"):
        logger.warning("WS_AUTH_STRICT=%r is treated as permissive (only 'true' is strict)", strict)

    return problems
