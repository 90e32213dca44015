"""Tests for tenant profile persistence."""

from tag_governance.profiles import ProfileStore, TenantProfile, resolve_profile


def _profile(name, **kwargs):
    return TenantProfile(name=name, tenant_id=f"{name}-tenant", client_id=f"{name}-client", **kwargs)


def test_first_profile_becomes_default(tmp_path):
    path = tmp_path / "profiles.json"
    store = ProfileStore.load(path)

    store.add(_profile("contoso", subscriptions=["Prod"]))
    store.add(_profile("fabrikam"))

    reloaded = ProfileStore.load(path)
    assert reloaded.default_profile == "contoso"
    assert reloaded.get("CONTOSO").subscriptions == ["Prod"]
    assert [p.name for p in reloaded.list_profiles()] == ["contoso", "fabrikam"]


def test_remove_default_moves_default(tmp_path):
    path = tmp_path / "profiles.json"
    store = ProfileStore.load(path)
    store.add(_profile("a"))
    store.add(_profile("b"))

    assert store.remove("a") is True
    assert store.remove("missing") is False
    assert ProfileStore.load(path).default_profile == "b"


def test_set_default_and_resolve(tmp_path):
    path = tmp_path / "profiles.json"
    store = ProfileStore.load(path)
    store.add(_profile("a"))
    store.add(_profile("b"))

    assert store.set_default("b") is True
    assert store.set_default("nope") is False
    assert resolve_profile(path=path).name == "b"
    assert resolve_profile("a", path=path).tenant_id == "a-tenant"
    assert resolve_profile("zzz", path=path) is None


def test_corrupt_file_yields_empty_store(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text("{broken", encoding="utf-8")

    store = ProfileStore.load(path)

    assert store.profiles == {}
    assert store.get_default() is None


def test_relative_cert_path_is_resolved(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert _profile("a", cert_path="certs/app.txt").resolve_cert_path() == str(tmp_path / "certs" / "app.txt")
