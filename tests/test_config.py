import json
import os

import pytest

from feed_printer.core.config import ImageSettings, PollSettings, PrinterSettings, load_config, require
from feed_printer.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for key in ("SUPABASE_URL", "SUPABASE_ANON_KEY"):
        monkeypatch.delenv(key, raising=False)
    for key in list(os.environ):
        if key.startswith("FEEDPRINTER_"):
            monkeypatch.delenv(key, raising=False)


def test_defaults_without_config_file(tmp_path):
    cfg = load_config(str(tmp_path / "missing.json"))
    assert cfg["printer_type"] == "usb"
    assert cfg["poll_interval_seconds"] == 10
    assert cfg["poll_limit"] == 20
    assert cfg["cache_path"] == str(tmp_path / "xdg-data" / "feedprinter" / "items.json")
    assert cfg["temp_dir"] == str(tmp_path / "xdg-cache" / "feedprinter" / "tmp")


def test_file_then_env_layering(tmp_path, monkeypatch):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"printer_type": "network", "network_ip": "10.0.0.2", "poll_limit": 5}))
    monkeypatch.setenv("FEEDPRINTER_POLL_LIMIT", "7")
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")

    cfg = load_config(str(path))
    assert cfg["printer_type"] == "network"
    assert cfg["poll_limit"] == "7"
    assert cfg["source_url"] == "https://x.supabase.co"

    monkeypatch.setenv("FEEDPRINTER_SOURCE_URL", "https://override")
    assert load_config(str(path))["source_url"] == "https://override"


def test_config_path_env_override(tmp_path, monkeypatch):
    path = tmp_path / "elsewhere.json"
    path.write_text(json.dumps({"items_table": "posts"}))
    monkeypatch.setenv("FEEDPRINTER_CONFIG_PATH", str(path))
    assert load_config()["items_table"] == "posts"


def test_invalid_json_is_a_configuration_error(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{oops")
    with pytest.raises(ConfigurationError):
        load_config(str(path))
    path.write_text(json.dumps(["not", "an", "object"]))
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_poll_settings_require_source_credentials(tmp_path):
    cfg = load_config(str(tmp_path / "missing.json"))
    with pytest.raises(ConfigurationError) as exc:
        PollSettings.from_config(cfg)
    assert "source_url" in str(exc.value)
    assert "source_key" in str(exc.value)


def test_poll_settings_coerce_env_strings(tmp_path, monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "k")
    monkeypatch.setenv("FEEDPRINTER_POLL_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("FEEDPRINTER_LOOKUP_GIVE_UP_AFTER", "")
    settings = PollSettings.from_config(load_config(str(tmp_path / "missing.json")))
    assert settings.poll_interval_seconds == 2.5
    assert settings.lookup_give_up_after is None

    monkeypatch.setenv("FEEDPRINTER_POLL_LIMIT", "zero")
    with pytest.raises(ConfigurationError):
        PollSettings.from_config(load_config(str(tmp_path / "missing.json")))


def test_printer_settings_parse_hex_and_bools():
    s = PrinterSettings.from_config(
        {"printer_type": "USB", "usb_vendor_id": "0x0416", "usb_product_id": "5011", "network_keepalive": "false"}
    )
    assert s.printer_type == "usb"
    assert s.usb_vendor_id == 0x0416
    assert s.usb_product_id == 0x5011
    assert s.network_keepalive is False


def test_printer_settings_network_needs_ip():
    with pytest.raises(ConfigurationError):
        PrinterSettings.from_config({"printer_type": "network", "network_ip": ""})
    with pytest.raises(ConfigurationError):
        PrinterSettings.from_config({"printer_type": "serial"})


def test_require_lists_missing_keys():
    require({"a": 1}, "a")
    with pytest.raises(ConfigurationError, match="b, c"):
        require({"a": 1, "b": ""}, "a", "b", "c")


def test_image_settings_validate_timeout():
    s = ImageSettings.from_config({"temp_dir": "/tmp/x", "http_timeout_seconds": "12"})
    assert s.http_timeout_seconds == 12.0
    with pytest.raises(ConfigurationError):
        ImageSettings.from_config({"temp_dir": "/tmp/x", "http_timeout_seconds": "never"})
    with pytest.raises(ConfigurationError, match="temp_dir"):
        ImageSettings.from_config({"temp_dir": ""})
