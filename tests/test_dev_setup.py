import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from scripts import dev_setup


def test_update_env_file_merges_and_backs_up(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("# local settings\nSECRET_KEY=keep-me\nLOG_LEVEL=DEBUG\n")
    monkeypatch.setattr(
        sys,
        "argv",
        ["dev_setup.py", "--env-path", str(env_path), "--openai-api-key", "sk-abc123", "--max-tokens", "8000"],
    )

    values = dev_setup.update_env_file(dev_setup.parse_args())

    assert values == {
        "SECRET_KEY": "keep-me",
        "LOG_LEVEL": "DEBUG",
        "FLASK_APP": "wsgi.py",
        "OPENAI_API_KEY": "sk-abc123",
        "EXTRACTION_MAX_TOKENS": "8000",
    }
    assert dev_setup.read_env(env_path) == values
    assert (tmp_path / ".env.bak").exists()


def test_redact_hides_secrets():
    assert dev_setup.redact("OPENAI_API_KEY", "sk-abc123") == "sk-a…"
    assert dev_setup.redact("FLASK_APP", "wsgi.py") == "wsgi.py"
