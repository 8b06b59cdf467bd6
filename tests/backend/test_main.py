import importlib

import pytest
from sqlalchemy.exc import OperationalError

from backend import database, main
from backend.core import config
from backend.services import cascade


def test_root_reports_service_status(client) -> None:
    response = client.get('/')

    assert response.status_code == 200
    body = response.json()
    assert body['status'] == 'online'
    assert body['service'] == config.SERVICE_NAME


def test_health_reports_user_count(client, make_user) -> None:
    make_user('S-1', 'student')

    response = client.get('/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'healthy', 'database': 'connected', 'users': 1}


def test_health_reports_unreachable_database(client, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_ping(db):
        raise OperationalError('SELECT COUNT(*) FROM users', {}, Exception('connection refused'))

    monkeypatch.setattr(database, 'ping', failing_ping)

    response = client.get('/health')

    assert response.status_code == 503
    assert response.json() == {'status': 'unhealthy', 'database': 'disconnected'}


def test_unknown_route_uses_error_body(client) -> None:
    response = client.get('/no/such/route')

    assert response.status_code == 404
    assert response.json() == {'error': 'Route not found'}


def _explode_on_lecture_delete(monkeypatch: pytest.MonkeyPatch) -> None:
    def exploding_delete(db, lecture_id):
        raise RuntimeError('secret internals')

    monkeypatch.setattr(cascade, 'delete_lecture', exploding_delete)


def test_unhandled_errors_hide_details_without_app_env(
    client, make_user, auth_header, monkeypatch: pytest.MonkeyPatch,
) -> None:
    admin = make_user('A-1', 'admin')
    monkeypatch.delenv('APP_ENV', raising=False)
    monkeypatch.delenv('DEBUG', raising=False)
    monkeypatch.setattr('dotenv.load_dotenv', lambda *args, **kwargs: False)
    importlib.reload(config)
    _explode_on_lecture_delete(monkeypatch)

    response = client.delete('/admin/lectures/1', headers=auth_header(admin))

    assert response.status_code == 500
    assert response.json() == {'error': 'Internal server error'}


def test_startup_refuses_to_run_without_signing_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'JWT_SECRET_KEY', '')
    monkeypatch.setattr(main, 'configure_logging', lambda: None)

    with pytest.raises(RuntimeError, match='JWT_SECRET_KEY'):
        main.initialize_database()


def test_unhandled_errors_include_message_in_development(
    client, make_user, auth_header, monkeypatch: pytest.MonkeyPatch,
) -> None:
    admin = make_user('A-1', 'admin')
    monkeypatch.setattr(config, 'APP_ENV', 'development')
    _explode_on_lecture_delete(monkeypatch)

    response = client.delete('/admin/lectures/1', headers=auth_header(admin))

    assert response.status_code == 500
    assert response.json() == {'error': 'Internal server error', 'message': 'secret internals'}
