import os
from functools import lru_cache
from pathlib import Path

from src.adapters.rule_store import InMemoryRuleStore
from src.adapters.static_registry import InMemoryStaticRuleRegistry
from src.app_shell.config import load_engine_rules
from src.components.engine import RedirectEngine, create_engine, initial_records
from src.rules.loader import load_rule_records
from src.rules.models import EngineRules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(
            os.environ.get("REDIRECTOR_RULES", self.base_dir / "redirector_rules.yaml")
        )
        redirects = os.environ.get("REDIRECTOR_REDIRECTS")
        self.redirects_path = Path(redirects) if redirects else None


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_engine_rules() -> EngineRules:
    settings = get_settings()
    return load_engine_rules(settings.rules_path if settings.rules_path.exists() else None)


# --- Adapters ---
@lru_cache
def get_rule_store() -> InMemoryRuleStore:
    settings = get_settings()
    records = load_rule_records(settings.redirects_path) if settings.redirects_path else []
    return InMemoryRuleStore(initial_records(records, get_engine_rules()))


@lru_cache
def get_static_registry() -> InMemoryStaticRuleRegistry:
    return InMemoryStaticRuleRegistry()


# --- Engine ---
@lru_cache
def get_engine() -> RedirectEngine:
    engine = create_engine(get_engine_rules(), registry=get_static_registry())
    engine.load(get_rule_store().get_all())
    return engine
