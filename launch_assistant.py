#!/usr/bin/env python3
"""Launcher for Meal Logger local installs.

- Runs first-time setup when credentials are missing.
- Applies per-user config from ~/.meal_logger/config.json to env.
- Starts the terminal chat in assistant.py.
"""

from __future__ import annotations

import os

from setup_wizard import apply_user_config, ensure_user_config


def main() -> int:
    if not ensure_user_config():
        print("Setup was not completed. Exiting.")
        return 1

    os.environ.update(apply_user_config())

    # imported late so .env / user config are in place before clients are built
    from assistant import main as run_assistant

    run_assistant()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
