from unittest.mock import patch

from relay.__main__ import main, parse_config


def test_defaults_when_no_flags():
    config = parse_config([])

    assert config.port == 9000
    assert config.enable_proxy_any_site is False


def test_flags_override_config():
    config = parse_config(["--port", "8080", "--enable-proxy-any-site", "--log-level", "debug"])

    assert config.port == 8080
    assert config.enable_proxy_any_site is True
    assert config.log_level == "debug"


def test_main_starts_uvicorn_with_configured_port():
    with patch("relay.__main__.uvicorn") as mock_uvicorn:
        assert main(["--port", "9100", "--host", "127.0.0.1"]) == 0

    _, kwargs = mock_uvicorn.Config.call_args
    assert kwargs["port"] == 9100
    assert kwargs["host"] == "127.0.0.1"
    app = mock_uvicorn.Config.call_args[0][0]
    assert app.state.config.port == 9100
    mock_uvicorn.Server.return_value.run.assert_called_once()


def test_uvicorn_adds_no_server_or_date_header():
    with patch("relay.__main__.uvicorn") as mock_uvicorn:
        main([])

    _, kwargs = mock_uvicorn.Config.call_args
    assert kwargs["server_header"] is False
    assert kwargs["date_header"] is False


def test_main_builds_exactly_one_app():
    import relay.server

    assert not hasattr(relay.server, "app")
    with patch("relay.__main__.uvicorn"), patch(
        "relay.server.create_app", wraps=relay.server.create_app
    ) as create_app:
        main([])

    create_app.assert_called_once()
