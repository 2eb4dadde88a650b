#!/usr/bin/env python3
"""First-run setup for Meal Logger local installs.

Asks for the OpenAI and Nutritionix credentials, checks them against the
live services and keeps them in ~/.meal_logger/config.json, so nothing
user-specific has to go into the project's .env.
"""

from __future__ import annotations

import getpass
import json
import os
import stat
from pathlib import Path

import requests

APP_DIR = Path.home() / ".meal_logger"
CONFIG_FILE = APP_DIR / "config.json"

OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
NUTRITIONIX_API_URL = "https://trackapi.nutritionix.com/v2/natural/nutrients"
CHECK_TIMEOUT = 12

# (env key, prompt label, read without echo, required)
FIELDS = (
    ("OPENAI_API_KEY", "OpenAI API key", True, True),
    ("OPENAI_MODEL", "OpenAI model", False, False),
    ("NUTRITIONIX_APP_ID", "Nutritionix app ID", False, True),
    ("NUTRITIONIX_APP_KEY", "Nutritionix app key", True, True),
)

DEFAULTS = {key: "" for key, _, _, _ in FIELDS}
DEFAULTS["OPENAI_MODEL"] = "gpt-4o"

REQUIRED_KEYS = tuple(key for key, _, _, required in FIELDS if required)


# ── Config file ────────────────────────────────────────────────────────────

def load_user_config() -> dict:
    """Saved config over DEFAULTS. A missing or unreadable file gives DEFAULTS."""
    config = dict(DEFAULTS)
    try:
        saved = json.loads(CONFIG_FILE.read_text())
    except (OSError, json.JSONDecodeError):
        return config
    if not isinstance(saved, dict):
        return config

    config.update({key: str(saved[key]) for key in DEFAULTS if saved.get(key) is not None})
    return config


def _owner_only(path: Path) -> None:
    # best effort, e.g. not supported on some mounted filesystems
    try:
        path.chmod(stat.S_IRUSR | stat.S_IWUSR)
    except OSError:
        pass


def save_user_config(config: dict) -> None:
    APP_DIR.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps({key: config.get(key, "") for key in DEFAULTS}, indent=2))
    _owner_only(CONFIG_FILE)


def missing_keys(config: dict) -> list[str]:
    return [key for key in REQUIRED_KEYS if not (config.get(key) or "").strip()]


def build_config_from_values(values: dict) -> tuple[dict, str | None]:
    """Clean user answers into a config. Returns (config, error or None)."""
    config = {key: (values.get(key) or "").strip() or default for key, default in DEFAULTS.items()}
    missing = missing_keys(config)
    if missing:
        return config, f"{missing[0]} is required."
    return config, None


# ── Credential checks ──────────────────────────────────────────────────────

def _probe(service: str, method: str, url: str, **kwargs) -> tuple[bool, str]:
    """One live request; 200 means the credentials work."""
    try:
        resp = requests.request(method, url, timeout=CHECK_TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        return False, f"Could not reach {service}: {exc}"

    if resp.status_code == 200:
        return True, f"{service} credentials work."
    if resp.status_code in (401, 403):
        return False, f"{service} rejected the credentials."
    return False, f"Unexpected {service} response: {resp.status_code}"


def validate_openai_key(api_key: str) -> tuple[bool, str]:
    api_key = (api_key or "").strip()
    if not api_key:
        return False, "OpenAI API key is required."
    if not api_key.startswith("sk-"):
        return False, "OpenAI API key should start with 'sk-'."
    return _probe("OpenAI", "GET", OPENAI_MODELS_URL, headers={"Authorization": f"Bearer {api_key}"})


def validate_nutritionix_keys(app_id: str, app_key: str) -> tuple[bool, str]:
    app_id, app_key = (app_id or "").strip(), (app_key or "").strip()
    if not app_id or not app_key:
        return False, "Nutritionix app ID and app key are both required."
    return _probe(
        "Nutritionix", "POST", NUTRITIONIX_API_URL,
        headers={"x-app-id": app_id, "x-app-key": app_key},
        json={"query": "1 apple"},
    )


# ── CLI ────────────────────────────────────────────────────────────────────

def run_setup_cli(input_func=input, secret_func=getpass.getpass) -> bool:
    """Prompt, check, save. Returns True once a working config is saved."""
    current = load_user_config()
    print("\nMeal Logger Setup")
    print(f"Config is stored in {CONFIG_FILE}\n")

    answers = {}
    for key, label, secret, _ in FIELDS:
        hint = " (Enter keeps the current value)" if current.get(key) else ""
        read = secret_func if secret else input_func
        answers[key] = read(f"{label}{hint}: ").strip() or current.get(key, "")

    config, error = build_config_from_values(answers)
    if error:
        print(f"\nSetup error: {error}\n")
        return False

    print("\nChecking credentials...")
    checks = (
        ("OpenAI", lambda: validate_openai_key(config["OPENAI_API_KEY"])),
        ("Nutritionix", lambda: validate_nutritionix_keys(config["NUTRITIONIX_APP_ID"], config["NUTRITIONIX_APP_KEY"])),
    )
    for service, check in checks:
        ok, message = check()
        print(f"  {service}: {message}")
        if not ok:
            return False

    save_user_config(config)
    print(f"\nSaved {CONFIG_FILE}\n")
    return True


def apply_user_config(env: dict | None = None) -> dict:
    """Copy of `env` (default os.environ) with non-empty saved values on top."""
    merged = dict(os.environ if env is None else env)
    merged.update({key: value for key, value in load_user_config().items() if value})
    return merged


def ensure_user_config() -> bool:
    missing = missing_keys(load_user_config())
    if not missing:
        return True
    print(f"Missing configuration: {', '.join(missing)}")
    return run_setup_cli()


def main() -> int:
    return 0 if run_setup_cli() else 1


if __name__ == "__main__":
    raise SystemExit(main())
