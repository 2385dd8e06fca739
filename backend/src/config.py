import os
import re
from pathlib import Path
from typing import Any

import toml

CONFIG_ENV_VAR = "NOTEBOOK_RAG_CONFIG"
DEFAULT_CONFIG_NAME = "config.toml"
DEFAULT_STORAGE_DIR = "storage"

# ${NAME} or ${NAME:-fallback}
ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def resolve_path(path: str | Path, config_path: Path) -> Path:
    """Anchor a relative path at the directory holding the config file.

    Absolute paths are returned unchanged.
    """
    path = Path(path)
    if path.is_absolute():
        return path
    return (config_path.parent / path).resolve()


def find_config_path(explicit_path: Path | None = None) -> Path:
    """Pick the config file to load.

    Order: the explicit path, ``$NOTEBOOK_RAG_CONFIG``, ``./config.toml``,
    then the ``config.toml`` at the repository root.

    Raises:
        FileNotFoundError: If no candidate exists.
    """
    if explicit_path:
        return explicit_path

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    repo_root = Path(__file__).resolve().parent.parent.parent
    for candidate in (Path(DEFAULT_CONFIG_NAME), repo_root / DEFAULT_CONFIG_NAME):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"No {DEFAULT_CONFIG_NAME} found; pass --config or set {CONFIG_ENV_VAR}"
    )


def load_config(config_path: Path = Path(DEFAULT_CONFIG_NAME)) -> dict[str, Any]:
    """Read a TOML config and expand ``${VAR}`` references in string values.

    Unset variables without a ``:-`` fallback expand to an empty string.
    """
    return _expand(toml.load(config_path))


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return ENV_PATTERN.sub(_env_lookup, value)
    if isinstance(value, dict):
        return {key: _expand(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item) for item in value]
    return value


def _env_lookup(match: re.Match) -> str:
    name, fallback = match.group(1), match.group(2)
    return os.environ.get(name, fallback or "")


def get_config_value(config: dict, key_path: str, default: Any = None) -> Any:
    """Look up a value by dotted path, e.g. ``"retrieval.top_k"``.

    Returns ``default`` as soon as any segment is missing.
    """
    node: Any = config
    for key in key_path.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def get_section(config: dict, name: str) -> dict[str, Any]:
    """Return a top-level section, or an empty dict when it is missing."""
    section = config.get(name, {})
    return section if isinstance(section, dict) else {}


def get_storage_dir(config: dict, config_path: Path) -> Path:
    """Directory holding the FAISS index, chunk records and source registry."""
    storage_dir = get_config_value(config, "storage.directory", DEFAULT_STORAGE_DIR)
    return resolve_path(storage_dir, config_path)
