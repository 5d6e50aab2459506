import pytest

from wasplane.core.errors import ConfigError
from wasplane.core.runtime import config_root, load_settings, project_base


def test_defaults_without_file_or_environment(tmp_path):
    settings = load_settings(tmp_path / "missing.yaml", environ={})

    assert settings.profile_base == "/opt/IBM/WebSphere/AppServer/profiles"
    assert settings.user == "root"
    assert settings.timeout is None
    assert "zip" in settings.ignored_names


def test_environment_overrides_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("user: wasadmin\ntimeout: 120\nprofile_base: /srv/profiles\n", encoding="utf-8")

    settings = load_settings(path, environ={"WASPLANE_USER": "wasuser", "WASPLANE_IGNORED_NAMES": "zip, ear"})

    assert settings.user == "wasuser"
    assert settings.timeout == 120
    assert settings.profile_base == "/srv/profiles"
    assert settings.ignored_names == ["zip", "ear"]


def test_non_positive_timeout_means_no_limit(tmp_path):
    assert load_settings(tmp_path / "x.yaml", environ={"WASPLANE_TIMEOUT": "0"}).timeout is None


@pytest.mark.parametrize(
    "content",
    ["user: [unclosed\n", "- solo\n- una lista\n", "profile_base: relativo/profiles\n"],
)
def test_invalid_configuration_is_a_config_error(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(path, environ={})


def test_declaration_defaults_only_carry_credentials_when_set(tmp_path):
    plain = load_settings(tmp_path / "x.yaml", environ={}).declaration_defaults()
    secured = load_settings(
        tmp_path / "x.yaml",
        environ={"WASPLANE_WSADMIN_USER": "wasadmin", "WASPLANE_WSADMIN_PASS": "secreto"},
    ).declaration_defaults()

    assert "wsadmin_user" not in plain
    assert secured["wsadmin_user"] == "wasadmin"
    assert secured["wsadmin_pass"] == "secreto"
    assert secured["instance_base"] == "/opt/IBM/WebSphere/AppServer"


def test_config_root_and_project_base_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("WASPLANE_CONFIG_ROOT", str(tmp_path / "cfg"))
    monkeypatch.setenv("WASPLANE_PROJECT_ROOT", str(tmp_path))

    assert config_root() == tmp_path / "cfg"
    assert project_base() == tmp_path.resolve()


def test_dotenv_is_loaded_from_project_base(tmp_path, monkeypatch, isolated_config):
    # Registrada en monkeypatch para que lo que cargue .env se limpie al terminar
    monkeypatch.setenv("WASPLANE_USER", "x")
    monkeypatch.delenv("WASPLANE_USER")
    (tmp_path / ".env").write_text("WASPLANE_USER=desde-dotenv\n", encoding="utf-8")

    settings = load_settings()

    assert settings.user == "desde-dotenv"
