import pytest

from services.uploader import config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in [
        "UPLOADER_API_BASE_URL",
        "UPLOADER_CONTENT_TYPE",
        "UPLOADER_POLL_INTERVAL_MS",
        "UPLOADER_MAX_POLL_FAILURES",
        "UPLOADER_CHUNK_SIZE_BYTES",
        "UPLOADER_REDIS_PORT",
    ]:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    monkeypatch.setenv("UPLOADER_API_BASE_URL", "https://api.example.com/")

    cfg = config.load_config()

    assert cfg.api_base_url == "https://api.example.com"
    assert cfg.content_type == "video/mp4"
    assert cfg.poll_interval_ms == 3000
    assert cfg.max_poll_failures == 0
    assert cfg.chunk_size_bytes == 256 * 1024
    assert cfg.redis_port == 6379


def test_overrides(monkeypatch):
    monkeypatch.setenv("UPLOADER_API_BASE_URL", "http://localhost:8000")
    monkeypatch.setenv("UPLOADER_POLL_INTERVAL_MS", "500")
    monkeypatch.setenv("UPLOADER_MAX_POLL_FAILURES", "5")
    monkeypatch.setenv("UPLOADER_CONTENT_TYPE", "video/webm")

    cfg = config.load_config()

    assert cfg.poll_interval_ms == 500
    assert cfg.max_poll_failures == 5
    assert cfg.content_type == "video/webm"


def test_base_url_is_required():
    with pytest.raises(ValueError, match="UPLOADER_API_BASE_URL"):
        config.load_config()


@pytest.mark.parametrize("value", ["soon", "0", "-10"])
def test_poll_interval_must_be_positive_integer(monkeypatch, value):
    monkeypatch.setenv("UPLOADER_API_BASE_URL", "http://localhost:8000")
    monkeypatch.setenv("UPLOADER_POLL_INTERVAL_MS", value)

    with pytest.raises(ValueError, match="UPLOADER_POLL_INTERVAL_MS"):
        config.load_config()
