import runpy
from pathlib import Path

CONF_PATH = Path(__file__).resolve().parent.parent / "gunicorn.conf.py"


def test_worker_timeout_follows_environment(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT", "7")
    monkeypatch.setenv("PORT", "8080")

    conf = runpy.run_path(str(CONF_PATH))

    assert conf["timeout"] == 7
    assert conf["bind"] == "0.0.0.0:8080"


def test_worker_timeout_default(monkeypatch):
    monkeypatch.delenv("REQUEST_TIMEOUT", raising=False)

    conf = runpy.run_path(str(CONF_PATH))

    assert conf["timeout"] == 10
