"""Configuration management for shellask.

Settings are resolved from an ordered list of named sources (command-line
flags, environment, config file, .env file, built-in defaults); the first
non-empty value wins. The result is an immutable Settings value that is
passed explicitly to whatever needs it.
"""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from dotenv import dotenv_values, find_dotenv

DEFAULT_MODEL = "mistral-small-latest"
DEFAULT_MAX_TOKENS = 1000000
DEFAULT_CHARS_PER_TOKEN = 4
DEFAULT_EDITOR = "vi"

API_KEY_NAME = "mistral_api_key"

# Environment variables consulted for each setting, highest priority first.
ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "api_key": ("SHELLASK_API_KEY", "MISTRAL_API_KEY"),
    "model": ("SHELLASK_MODEL",),
    "max_tokens": ("SHELLASK_MAX_TOKENS",),
    "chars_per_token": ("SHELLASK_CHARS_PER_TOKEN",),
    "editor": ("VISUAL", "EDITOR"),
}

# Config file (and .env) keys for each setting.
FILE_KEYS: Dict[str, str] = {
    "api_key": API_KEY_NAME,
    "model": "llm_model",
    "max_tokens": "max_tokens",
    "chars_per_token": "chars_per_token",
    "editor": "editor",
}


def get_app_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Directory holding config.cfg, sessions/ and the pending context file."""
    environ = os.environ if environ is None else environ
    override = environ.get("SHELLASK_HOME", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "shellask"


def get_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    return get_app_dir(environ) / "config.cfg"


@dataclass(frozen=True)
class Settings:
    api_key: str
    model: str
    max_tokens: int
    chars_per_token: int
    editor: str
    app_dir: Path
    debug: bool = False

    @property
    def sessions_dir(self) -> Path:
        return self.app_dir / "sessions"

    @property
    def pending_context_path(self) -> Path:
        return self.app_dir / "pending_context.txt"

    @property
    def history_path(self) -> Path:
        return self.app_dir / "interactive_history.txt"


@dataclass(frozen=True)
class ConfigSource:
    """A named mapping of setting name -> raw value."""

    name: str
    values: Mapping[str, str]

    def get(self, key: str) -> Optional[str]:
        value = self.values.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


def resolve(key: str, sources: Sequence[ConfigSource]) -> Tuple[Optional[str], Optional[str]]:
    """
    Return (value, source_name) for the first source with a non-empty value.

    Returns (None, None) if no source defines the key.
    """
    for source in sources:
        value = source.get(key)
        if value is not None:
            return value, source.name
    return None, None


def load_raw_config(path: Optional[Path] = None) -> Dict[str, str]:
    """
    Load configuration values from the config file.
    Values are returned with lowercase keys for convenience.
    """
    path = path or get_config_path()
    cfg = configparser.ConfigParser()
    data: Dict[str, str] = {}

    if path.exists():
        cfg.read(path)
        if "DEFAULT" in cfg:
            data.update({k.lower(): v for k, v in cfg["DEFAULT"].items()})
        if "API_KEYS" in cfg:
            data.update({k.lower(): v for k, v in cfg["API_KEYS"].items()})

    return data


def save_raw_config(config: Mapping[str, str], path: Optional[Path] = None) -> Path:
    """Write config to disk, keeping credentials in their own section."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    cfg = configparser.ConfigParser()
    cfg["DEFAULT"] = {
        k: v for k, v in config.items() if not ("api_key" in k or "api_token" in k)
    }
    cfg["API_KEYS"] = {
        k: v for k, v in config.items() if "api_key" in k or "api_token" in k
    }

    with open(path, "w") as f:
        cfg.write(f)
    os.chmod(path, 0o600)
    return path


def update_config(key: str, value: str, path: Optional[Path] = None) -> Path:
    """Set a single key in the config file, preserving the others."""
    raw = load_raw_config(path)
    raw[key.lower()] = value
    return save_raw_config(raw, path)


def _env_source(environ: Mapping[str, str]) -> ConfigSource:
    values: Dict[str, str] = {}
    for key, names in ENV_KEYS.items():
        for name in names:
            if environ.get(name, "").strip():
                values[key] = environ[name]
                break
    return ConfigSource("environment", values)


def _file_source(name: str, raw: Mapping[str, Optional[str]]) -> ConfigSource:
    lowered = {k.lower(): v for k, v in raw.items() if v is not None}
    return ConfigSource(
        name, {key: lowered[fkey] for key, fkey in FILE_KEYS.items() if fkey in lowered}
    )


def _load_dotenv() -> Dict[str, Optional[str]]:
    path = find_dotenv(usecwd=True)
    if not path:
        return {}
    return dict(dotenv_values(path))


def build_sources(
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    dotenv: Optional[Mapping[str, Optional[str]]] = None,
) -> List[ConfigSource]:
    """Assemble the sources in priority order."""
    environ = os.environ if environ is None else environ
    flags = {k: v for k, v in (overrides or {}).items() if v is not None}
    config_path = config_path or get_config_path(environ)
    dotenv = _load_dotenv() if dotenv is None else dotenv

    return [
        ConfigSource("flags", flags),
        _env_source(environ),
        _file_source("config-file", load_raw_config(config_path)),
        _file_source("dotenv", dotenv),
        ConfigSource(
            "defaults",
            {
                "model": DEFAULT_MODEL,
                "max_tokens": str(DEFAULT_MAX_TOKENS),
                "chars_per_token": str(DEFAULT_CHARS_PER_TOKEN),
                "editor": DEFAULT_EDITOR,
            },
        ),
    ]


def _positive_int(key: str, raw: Optional[str]) -> int:
    try:
        value = int((raw or "").strip())
    except ValueError:
        raise ValueError(f"Invalid value for {key}: {raw!r}")
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def load_settings(
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
    dotenv: Optional[Mapping[str, Optional[str]]] = None,
    debug: bool = False,
    require_api_key: bool = True,
) -> Settings:
    """
    Build Settings from all sources.

    Raises ValueError if the API key is required but missing, or if a
    numeric setting is invalid.
    """
    sources = build_sources(overrides, environ, config_path, dotenv)

    api_key, _ = resolve("api_key", sources)
    if require_api_key and not api_key:
        raise ValueError(
            "No API key found. Set MISTRAL_API_KEY or run `shellask config set-key <KEY>`."
        )

    model, _ = resolve("model", sources)
    max_tokens, _ = resolve("max_tokens", sources)
    chars_per_token, _ = resolve("chars_per_token", sources)
    editor, _ = resolve("editor", sources)

    return Settings(
        api_key=api_key or "",
        model=model or DEFAULT_MODEL,
        max_tokens=_positive_int("max_tokens", max_tokens),
        chars_per_token=_positive_int("chars_per_token", chars_per_token),
        editor=editor or DEFAULT_EDITOR,
        app_dir=get_app_dir(environ),
        debug=debug,
    )
