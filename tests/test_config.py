from pathlib import Path

import pytest

from buildstate import config
from buildstate.config import ConfigError, FileSettings, Settings


def _settings(**overrides: str) -> Settings:
    values = {"endpoint": "", "port": "", "proto": "", "format_log": "", "format_state": ""}
    values.update(overrides)
    return Settings(**values)


def _lookup(values: dict[str, str]):
    return lambda key: values.get(key, "")


def test_missing_settings_file_is_empty(tmp_path: Path) -> None:
    assert config.load_file_settings(tmp_path / "absent.yaml") == FileSettings()


def test_settings_file_with_multiline_template(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "endpoint: https://stash.example.com\n"
        "port: 8443\n"
        "format:\n"
        "  state: |\n"
        "    {{ state }} {{ key }}\n"
        "    {{ url }}\n",
        encoding="utf-8",
    )
    fs = config.load_file_settings(path)
    assert fs.endpoint == "https://stash.example.com"
    assert fs.port == "8443"
    assert fs.format_state == "{{ state }} {{ key }}\n{{ url }}\n"
    assert fs.format_log == ""


def test_settings_file_env_var(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text("proto: http\n", encoding="utf-8")
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(path))
    assert config.load_file_settings().proto == "http"


@pytest.mark.parametrize("text", ["- a\n- b\n", "format: [1, 2]\n", "endpoint: [x]\n", "a: [\n"])
def test_invalid_settings_file(tmp_path: Path, text: str) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError):
        config.load_file_settings(path)


def test_git_config_wins_over_file() -> None:
    fs = FileSettings(endpoint="https://file", port="1", format_log="file-log", format_state="file-state")
    settings = config.load_settings(
        fs, lookup=_lookup({config.KEY_ENDPOINT: "https://git", config.KEY_FORMAT_STATE: "git-state"})
    )
    assert settings.endpoint == "https://git"
    assert settings.port == "1"
    assert settings.format_log == "file-log"
    assert settings.format_state == "git-state"


def test_load_credentials() -> None:
    creds = config.load_credentials(
        _lookup({config.KEY_AUTH_USER: "jdoe", config.KEY_AUTH_CREDENTIALS: "amRvZTpzM2NyZXQ="})
    )
    assert creds.user == "jdoe"
    assert creds.b64credentials == "amRvZTpzM2NyZXQ="


def test_missing_credentials_raise() -> None:
    with pytest.raises(ConfigError):
        config.load_credentials(_lookup({config.KEY_AUTH_USER: "jdoe"}))


@pytest.mark.parametrize(
    "remote, host",
    [
        ("ssh://git@stash.example.com:7999/prj/repo.git", "stash.example.com"),
        ("https://jdoe@stash.example.com/scm/prj/repo.git", "stash.example.com"),
        ("git@stash.example.com:prj/repo.git", "stash.example.com"),
    ],
)
def test_remote_host(remote: str, host: str) -> None:
    assert config.remote_host(remote) == host


def test_remote_host_rejects_local_paths() -> None:
    with pytest.raises(ConfigError):
        config.remote_host("/srv/git/repo.git")


def test_api_base_url_explicit_endpoint() -> None:
    def no_remote() -> str:
        raise AssertionError("remote must not be consulted")

    url = config.api_base_url(_settings(endpoint="https://stash.example.com/"), remote_url=no_remote)
    assert url == "https://stash.example.com"


def test_api_base_url_from_remote_with_port() -> None:
    url = config.api_base_url(
        _settings(port="8443"),
        remote_url=lambda: "ssh://git@stash.example.com:7999/prj/repo.git",
    )
    assert url == "https://stash.example.com:8443"


def test_api_base_url_proto_override() -> None:
    url = config.api_base_url(_settings(proto="https"), proto="http", remote_url=lambda: "git@stash:prj/repo.git")
    assert url == "http://stash"
