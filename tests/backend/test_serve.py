import pytest

from backend import serve
from backend.core import config


def test_serve_exits_when_configuration_is_incomplete(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setattr(config, 'DATABASE_URL', '')
    monkeypatch.setattr(serve, 'configure_logging', lambda: None)

    with pytest.raises(SystemExit) as exit_info:
        serve.main()

    assert exit_info.value.code == 1
    assert 'DATABASE_URL' in capsys.readouterr().err


def test_serve_runs_uvicorn_on_configured_address(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(config, 'DATABASE_URL', 'sqlite://')
    monkeypatch.setattr(config, 'HOST', '127.0.0.1')
    monkeypatch.setattr(config, 'PORT', 4000)
    monkeypatch.setattr(serve, 'configure_logging', lambda: None)
    monkeypatch.setattr(serve.uvicorn, 'run', lambda app, **kwargs: calls.append((app, kwargs)))

    serve.main()

    assert calls == [('backend.main:app', {'host': '127.0.0.1', 'port': 4000, 'log_level': config.LOG_LEVEL.lower()})]
