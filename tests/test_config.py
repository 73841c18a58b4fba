import pytest

from app.config import load_settings
from app.main import create_app


@pytest.fixture
def env(monkeypatch):
    for name in (
        "PORT",
        "KAFKA_BOOTSTRAP_SERVERS",
        "STRIPE_SUCCESS_URL",
        "STRIPE_CANCEL_URL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_test")
    return monkeypatch


def test_defaults(env):
    settings = load_settings()

    assert settings.port == 3003
    assert settings.kafka_servers == ["localhost:9092"]
    assert settings.stripe_success_url == "http://localhost:3003/payments/success"
    assert settings.stripe_cancel_url == "http://localhost:3003/payments/cancel"
    assert settings.log_level == "INFO"


def test_reads_environment(env):
    env.setenv("PORT", "8080")
    env.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka-1:9092, kafka-2:9092")
    env.setenv("STRIPE_SUCCESS_URL", "https://shop.example/ok")
    env.setenv("STRIPE_CANCEL_URL", "https://shop.example/ko")

    settings = load_settings()

    assert settings.port == 8080
    assert settings.kafka_servers == ["kafka-1:9092", "kafka-2:9092"]
    assert settings.stripe_secret == "sk_test_123"
    assert settings.stripe_endpoint_secret == "whsec_test"
    assert settings.stripe_success_url == "https://shop.example/ok"
    assert settings.stripe_cancel_url == "https://shop.example/ko"


@pytest.mark.parametrize("name", ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"])
def test_missing_secret_raises(env, name):
    env.delenv(name)

    with pytest.raises(RuntimeError, match=f"{name} is not set"):
        load_settings()


def test_redacted_hides_secrets(env):
    values = load_settings().redacted()

    assert values["stripe_secret"] == "<redacted>"
    assert values["stripe_endpoint_secret"] == "<redacted>"
    assert values["port"] == 3003


def test_factory_loads_settings_and_configures_logging(env, mocker):
    configure = mocker.patch("app.main.configure_logging")
    env.setenv("LOG_LEVEL", "DEBUG")

    app = create_app()

    configure.assert_called_once_with("DEBUG")
    assert app.state.service.settings.stripe_endpoint_secret == "whsec_test"
