import logging

from celine.keycloak_operator.config import settings


def resolve_level(raw_level: str | int) -> int:
    # Accept both standard level names (e.g. "INFO") and numeric values.
    if isinstance(raw_level, int):
        return raw_level
    level = getattr(logging, str(raw_level).upper(), None)
    if isinstance(level, int):
        return level
    try:
        return int(raw_level)
    except ValueError:
        return logging.INFO


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else resolve_level(settings.log_level)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # Quiet down httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
