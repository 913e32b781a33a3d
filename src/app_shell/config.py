import logging
from pathlib import Path

from src.rules.loader import load_rules
from src.rules.models import EngineRules

DEFAULT_RULES_PATH = Path("redirector_rules.yaml")

logger = logging.getLogger(__name__)


def load_engine_rules(path: Path | None = None) -> EngineRules:
    """
    Load engine rules, falling back to defaults when the default file is absent.
    An explicitly given path must exist.
    """
    if path is None:
        if not DEFAULT_RULES_PATH.exists():
            logger.info("No %s found, using default engine rules", DEFAULT_RULES_PATH)
            return EngineRules()
        path = DEFAULT_RULES_PATH
    return load_rules(path)


def configure_logging(rules: EngineRules) -> None:
    """
    Apply the logging section of the engine rules.

    With logging disabled only warnings and errors from the engine get
    through (loop warnings, rejected rules, registration failures).
    """
    level = logging.getLevelName(rules.logging.level) if rules.logging.enabled else logging.WARNING
    logging.getLogger("src").setLevel(level)
