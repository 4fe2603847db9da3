"""Utility script to write the development .env file for the story studio."""
from __future__ import annotations

import argparse
import shutil
from pathlib import Path
from typing import Dict

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_ENV_PATH = REPO_ROOT / ".env"
BACKUP_SUFFIX = ".bak"
SECRET_KEYS = {"SECRET_KEY", "OPENAI_API_KEY"}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create or update a .env file with the Flask and OpenAI settings used for local development."
    )
    parser.add_argument(
        "--flask-app",
        default="wsgi.py",
        help="Entry point used by Flask (default: wsgi.py)",
    )
    parser.add_argument(
        "--secret-key",
        required=False,
        help=(
            "Secret key for Flask sessions and CSRF tokens. If omitted, the current value in .env is "
            "preserved or the development default is used."
        ),
    )
    parser.add_argument(
        "--openai-api-key",
        help="API key for the hosted text-generation service.",
    )
    parser.add_argument(
        "--openai-model",
        help="Chat model used for extraction and story writing (default: gpt-3.5-turbo).",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        help="Token budget per extraction chunk (EXTRACTION_MAX_TOKENS).",
    )
    parser.add_argument(
        "--env-path",
        type=Path,
        default=DEFAULT_ENV_PATH,
        help="Path to the .env file that should be created/updated.",
    )
    return parser.parse_args()


def read_env(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    data: Dict[str, str] = {}
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        data[key.strip()] = value.strip()
    return data


def write_env(path: Path, values: Dict[str, str]) -> None:
    if path.exists():
        backup_path = path.with_suffix(path.suffix + BACKUP_SUFFIX)
        shutil.copy(path, backup_path)
        print(f"Existing {path.name} backed up to {backup_path.name}.")
    lines = [f"{key}={value}" for key, value in values.items()]
    path.write_text("\n".join(lines) + "\n")
    print(f"Updated environment variables written to {path}.")


def update_env_file(args: argparse.Namespace) -> Dict[str, str]:
    env_data = read_env(args.env_path)
    env_updates = {"FLASK_APP": args.flask_app}
    if args.secret_key:
        env_updates["SECRET_KEY"] = args.secret_key
    if args.openai_api_key:
        env_updates["OPENAI_API_KEY"] = args.openai_api_key
    if args.openai_model:
        env_updates["OPENAI_MODEL"] = args.openai_model
    if args.max_tokens:
        env_updates["EXTRACTION_MAX_TOKENS"] = str(args.max_tokens)

    env_data.update(env_updates)
    write_env(args.env_path, env_data)
    return env_data


def redact(key: str, value: str) -> str:
    if key in SECRET_KEYS and value:
        return value[:4] + "…"
    return value


def main() -> None:
    args = parse_args()
    env_values = update_env_file(args)

    if "OPENAI_API_KEY" not in env_values:
        print("Warning: OPENAI_API_KEY is not set; model calls will fail until it is configured.")

    print("\nSetup complete! Summary:")
    for key in sorted(env_values):
        print(f"  {key}={redact(key, env_values[key])}")


if __name__ == "__main__":
    main()
