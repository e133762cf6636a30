"""Tests for handler discovery and loading."""

import sys
from pathlib import Path

from goodchild.commands import CommandLoader, CommandStore


def _write_handler(path: Path, name: str, category: str = None, aliases=None):
    lines = [f"name = {name!r}"]
    if category:
        lines.append(f"category = {category!r}")
    if aliases:
        lines.append(f"aliases = {list(aliases)!r}")
    lines.append("")
    lines.append("async def handle(ctx):")
    lines.append(f"    return {name!r}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")


def _make_loader(**kwargs):
    store = CommandStore()
    return store, CommandLoader(store, **kwargs)


def test_loads_nested_directories(tmp_path):
    _write_handler(tmp_path / "ping.py", "ping", aliases=["p"])
    _write_handler(tmp_path / "fun" / "joke.py", "joke", category="Fun")
    _write_handler(tmp_path / "fun" / "deep" / "dice.py", "dice", category="Fun")

    store, loader = _make_loader()
    assert loader.load_from_directory(tmp_path) == 3

    assert store.get("p").name == "ping"
    assert {c.name for c in store.list_by_category("Fun")} == {"joke", "dice"}
    assert store.get("dice").source == str(tmp_path / "fun" / "deep" / "dice.py")


def test_broken_handler_does_not_stop_siblings(tmp_path):
    _write_handler(tmp_path / "a.py", "alpha")
    (tmp_path / "b.py").write_text("name = 'broken'\nraise RuntimeError('boom')\n")
    (tmp_path / "c.py").write_text("def oops(:\n")
    _write_handler(tmp_path / "d.py", "delta")

    store, loader = _make_loader()
    loaded = loader.load_from_directory(tmp_path)

    assert loaded == 2
    assert {c.name for c in store.list_all()} == {"alpha", "delta"}
    assert store.get("broken") is None


def test_failed_module_is_removed_from_sys_modules(tmp_path):
    (tmp_path / "bad.py").write_text("raise ImportError('missing dep')\n")

    _, loader = _make_loader()
    loader.load_from_directory(tmp_path)

    assert not any(m.endswith(".bad") and m.startswith("goodchild_handlers") for m in sys.modules)


def test_modules_without_name_are_ignored(tmp_path):
    (tmp_path / "util.py").write_text("HELPER = 1\n")
    (tmp_path / "_private.py").write_text("name = 'private'\n")
    (tmp_path / "notes.txt").write_text("name = 'notes'\n")
    _write_handler(tmp_path / "ping.py", "ping")

    store, loader = _make_loader()
    assert loader.load_from_directory(tmp_path) == 1
    assert [c.name for c in store.list_all()] == ["ping"]


def test_missing_directory_is_logged_not_raised(tmp_path):
    store, loader = _make_loader()
    assert loader.load_from_directory(tmp_path / "does-not-exist") == 0
    assert len(store) == 0


def test_same_file_name_in_two_dirs_does_not_collide(tmp_path):
    _write_handler(tmp_path / "one" / "cmd.py", "first")
    _write_handler(tmp_path / "two" / "cmd.py", "second")

    store, loader = _make_loader()
    loader.load_from_directory(tmp_path)

    assert store.get("first") is not None
    assert store.get("second") is not None


def test_initialize_uses_handlers_dir(tmp_path):
    _write_handler(tmp_path / "ping.py", "ping")
    _write_handler(tmp_path / "group" / "kick.py", "kick", category="Group")

    store, loader = _make_loader(handlers_dir=tmp_path)
    assert loader.initialize() == 2
    assert sorted(store.list_categories()) == ["Group", "Misc"]


def test_initialize_prefers_manifest(tmp_path, monkeypatch):
    pkg = tmp_path / "manifestpkg"
    _write_handler(pkg / "hello.py", "hello", aliases=["hi"])
    (pkg / "__init__.py").write_text("")
    _write_handler(tmp_path / "scanned" / "ignored.py", "ignored")
    monkeypatch.syspath_prepend(str(tmp_path))

    store, loader = _make_loader(
        handlers_dir=tmp_path / "scanned",
        manifest=["manifestpkg.hello", "manifestpkg.missing"],
    )
    assert loader.initialize() == 1
    assert store.get("hi").name == "hello"
    assert store.get("ignored") is None


def test_initialize_without_source_loads_nothing():
    store, loader = _make_loader()
    assert loader.initialize() == 0
    assert len(store) == 0
