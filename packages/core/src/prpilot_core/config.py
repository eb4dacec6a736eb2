import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "groq",
    "max_diff_chars": 15000,
    "store_path": ".prpilot.db",
    "app_url": "",  # public base URL, used to advertise the webhook endpoint
    "log_level": "INFO",
}

SUPPORTED_MODELS = ("groq", "openai", "anthropic")


def load_config(config_path: str = ".prpilot.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prpilot.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["model"] not in SUPPORTED_MODELS:
        raise ValueError(f"Unknown model provider: {config['model']!r}. Choose one of {', '.join(SUPPORTED_MODELS)}.")

    # Resolve credentials from environment variables
    config["groq_api_key"] = os.environ.get("GROQ_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["app_url"] = os.environ.get("PRPILOT_APP_URL", config.get("app_url") or "")

    return config
