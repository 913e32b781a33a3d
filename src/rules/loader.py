import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.rules.models import EngineRules


def _strip_fences(content: str) -> str:
    """Return the first ```yaml fenced block, or the whole text if there is none."""
    lines = content.splitlines()
    yaml_lines = []
    in_block = False
    found_block = False

    for line in lines:
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            in_block = False
            break

        if in_block:
            yaml_lines.append(line)

    if found_block:
        return "\n".join(yaml_lines)
    return content


def load_rules(path: Path) -> EngineRules:
    """
    Load and validate the engine rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(_strip_fences(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return EngineRules.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def load_rule_records(path: Path) -> list[Any]:
    """
    Load raw redirect records from a Redirector export or a YAML list.

    Accepts either a bare list of records or a document with a
    "redirects" key (the export format). Individual records are not
    validated here; the engine rejects bad records one by one.
    """
    if not path.exists():
        raise FileNotFoundError(f"Redirects file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(_strip_fences(content))
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid syntax in redirects file: {e}") from e

    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("redirects", [])
    if not isinstance(data, list):
        raise ValueError("Redirects file must contain a list or a 'redirects' list")
    return data
