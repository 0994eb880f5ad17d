import json

import pytest

from benutzerverwaltung.config import settings
from benutzerverwaltung.config.settings import (
    FileUsersProvider,
    NextcloudTableUsersProvider,
    load_settings,
    parse_settings,
)
from benutzerverwaltung.core.errors import ConfigError, SourceError


@pytest.fixture(autouse=True)
def isolated_secrets(monkeypatch, tmp_path):
    """Point the secrets mount at an empty directory and clear env fallbacks."""
    secrets_dir = tmp_path / "secrets"
    secrets_dir.mkdir()
    monkeypatch.setattr(settings, "SECRETS_DIR", secrets_dir)
    for var in ("NEXTCLOUD_PASSWORD", "KEYCLOAK_PASSWORD", "AUTHENTIK_TOKEN", "GITLAB_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    return secrets_dir


def document(**sections):
    doc = {"users_provider": {"type": "file", "path": "users.json"}}
    doc.update(sections)
    return doc


def test_minimal_file_provider():
    cfg = parse_settings(document())
    assert cfg.users_provider == FileUsersProvider(path="users.json")
    assert cfg.keycloak is None and cfg.authentik is None and cfg.gitlab is None
    assert cfg.audit.enabled is False
    assert cfg.extraction.identifier_column == "Funktionskennung"


def test_keycloak_section_with_inline_password_and_timeout_override():
    cfg = parse_settings(document(
        request_timeout=30,
        keycloak={"url": "http://kc", "realm": "demo", "username": "admin", "password": "pw"},
    ))
    assert cfg.keycloak.password == "pw"
    assert cfg.keycloak.request_timeout == 30
    assert cfg.keycloak.leaver_action == "delete"
    assert "pw" not in repr(cfg.keycloak)


def test_secret_is_read_from_secrets_dir(isolated_secrets):
    (isolated_secrets / "gitlab_token").write_text("file-token\n")
    cfg = parse_settings(document(gitlab={
        "url": "https://git", "group_id": 1, "owner_role": "O", "maintainer_role": "M",
    }))
    assert cfg.gitlab.token == "file-token"


def test_secret_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("AUTHENTIK_TOKEN", "env-token")
    cfg = parse_settings(document(authentik={"url": "https://auth"}))
    assert cfg.authentik.token == "env-token"
    assert cfg.authentik.user_path == "benutzerverwaltung"


def test_secrets_file_wins_over_environment(isolated_secrets, monkeypatch):
    (isolated_secrets / "keycloak_password").write_text("from-file")
    monkeypatch.setenv("KEYCLOAK_PASSWORD", "from-env")
    cfg = parse_settings(document(keycloak={"url": "http://kc", "realm": "demo", "username": "admin"}))
    assert cfg.keycloak.password == "from-file"


def test_nextcloud_table_provider(monkeypatch):
    monkeypatch.setenv("NEXTCLOUD_PASSWORD", "app-pw")
    cfg = parse_settings({
        "users_provider": {
            "type": "nextcloud_table",
            "table_id": 3,
            "nextcloud": {"url": "https://cloud", "username": "bot"},
        },
        "extraction": {"email_domain": "example.org", "keep_base_roles": True},
    })
    provider = cfg.users_provider
    assert isinstance(provider, NextcloudTableUsersProvider)
    assert provider.table_id == 3
    assert provider.nextcloud.password == "app-pw"
    assert cfg.extraction.email_domain == "example.org"
    assert cfg.extraction.keep_base_roles is True


@pytest.mark.parametrize(
    "doc,message",
    [
        ([], "JSON object"),
        ({}, "users_provider"),
        ({"users_provider": {"type": "ldap"}}, "Unknown users_provider"),
        ({"users_provider": {"type": "file"}}, "incomplete"),
        ({"users_provider": {"type": "file", "path": "u.json", "extra": 1}}, "unknown key"),
        (document(keycloak={"url": "http://kc", "realm": "demo"}), "incomplete"),
        (document(keycloak="http://kc"), "JSON object"),
        (document(keycloak={"url": "http://kc", "realm": "demo", "username": "a", "password": "b",
                            "leaver_action": "archive"}), "leaver_action"),
        (document(gitlab={"url": "https://git", "group_id": 1, "owner_role": "O", "maintainer_role": "M"}),
         "secret missing"),
    ],
)
def test_invalid_documents_raise_config_error(doc, message):
    with pytest.raises(ConfigError, match=message):
        parse_settings(doc)


def test_nextcloud_table_id_must_be_integer(monkeypatch):
    monkeypatch.setenv("NEXTCLOUD_PASSWORD", "pw")
    with pytest.raises(ConfigError, match="table_id"):
        parse_settings({"users_provider": {
            "type": "nextcloud_table",
            "table_id": "3",
            "nextcloud": {"url": "https://cloud", "username": "bot"},
        }})


def test_load_settings_reads_json_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(document(audit={"enabled": True, "directory": str(tmp_path)})))
    cfg = load_settings(path)
    assert cfg.audit.enabled is True
    assert cfg.audit.directory == str(tmp_path)


def test_load_settings_errors_are_source_errors(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")

    with pytest.raises(ConfigError):
        load_settings(broken)
    with pytest.raises(SourceError):
        load_settings(tmp_path / "missing.json")


@pytest.mark.parametrize(
    "doc,message",
    [
        (document(extraction={"keep_base_roles": "false"}), "extraction.keep_base_roles"),
        (document(audit={"enabled": "false"}), "audit.enabled"),
        (document(audit={"enabled": True, "directory": 7}), "audit.directory"),
        ({"users_provider": {"type": "file", "path": 5}}, "users_provider.path"),
        (document(extraction={"email_domain": None}), "extraction.email_domain"),
        (document(gitlab={"url": "https://git", "group_id": True, "owner_role": "O",
                          "maintainer_role": "M", "token": "t"}), "gitlab.group_id"),
        (document(keycloak={"url": "http://kc", "realm": "demo", "username": "a", "password": "b",
                            "request_timeout": "10"}), "keycloak.request_timeout"),
    ],
)
def test_mistyped_fields_raise_config_error(doc, message):
    with pytest.raises(ConfigError, match=message):
        parse_settings(doc)


@pytest.mark.parametrize("timeout", ["ten", True, 0, -1, None])
def test_request_timeout_must_be_positive_number(timeout):
    with pytest.raises(ConfigError, match="request_timeout"):
        parse_settings(document(request_timeout=timeout))


def test_numeric_fields_accept_ints_for_floats():
    cfg = parse_settings(document(
        request_timeout=2.5,
        keycloak={"url": "http://kc", "realm": "demo", "username": "a", "password": "b", "request_timeout": 4},
    ))
    assert cfg.request_timeout == 2.5
    assert cfg.keycloak.request_timeout == 4
