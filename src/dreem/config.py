"""Configuration management for Dreem."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DREEM_HOME = Path(os.environ.get("DREEM_HOME", Path.home() / "dreem"))
CONFIG_FILE = DREEM_HOME / "config" / "dreem.conf"
DATA_DIR = DREEM_HOME / "data"

# Persisted namespaces. Names are part of the on-disk format.
ENTRIES_NAMESPACE = "DREEM_ENTRIES_V1"
DRAFTS_NAMESPACE = "DREEM_DRAFTS_V1"
CHATS_NAMESPACE = "DREEM_CHATS_V1"
THEME_NAMESPACE = "DREEM_THEME_PREF_V1"
API_KEY_NAMESPACE = "OPENAI_API_KEY"
API_KEY_ENV = "DREEM_OPENAI_API_KEY"


@dataclass
class Config:
    """Dreem configuration."""

    data_dir: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    ai_timeout: int = 60
    ai_temperature: float = 0.7
    ai_max_tokens: int = 400
    log_level: str = "WARNING"

    def resolve_data_dir(self) -> Path:
        """Directory holding the namespace files."""
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def load_config(path: Path | None = None) -> Config:
    """Load configuration from dreem.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = _unquote(value.strip())

        try:
            match key:
                case "data_dir":
                    config.data_dir = value
                case "openai_model":
                    config.openai_model = value
                case "openai_base_url":
                    config.openai_base_url = value.rstrip("/")
                case "ai_timeout":
                    config.ai_timeout = int(value)
                case "ai_temperature":
                    config.ai_temperature = float(value)
                case "ai_max_tokens":
                    config.ai_max_tokens = int(value)
                case "log_level":
                    config.log_level = value.upper()
        except ValueError:
            logger.warning(f"Ignoring invalid value for {key.upper()}: {value!r}")

    return config
