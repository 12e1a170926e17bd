from __future__ import annotations

from pathlib import Path

import pytest

from settings.config import ConfigError, load_config, resolve_cache_dir


def _write_config(repo_root: Path, toml_content: str) -> None:
    (repo_root / "typeir.toml").write_text(toml_content, encoding="utf-8")


def test_unknown_section_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[layers]
unclassified = "deny"
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_top_level_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "bogus_key = true")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_toml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "cache_dir = ")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path)


def test_valid_config_accepted(tmp_path: Path) -> None:
    _write_config(tmp_path, 'exclude = ["generated/**"]')

    config = load_config(tmp_path)

    assert config.exclude == ["generated/**"]


def test_unsupported_hash_algorithm_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, 'hash_algorithm = "md5"')

    with pytest.raises(ConfigError, match="Unsupported hash algorithm"):
        load_config(tmp_path)


def test_non_positive_timeout_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "timeout_seconds = 0")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_nested_tags_key_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[tags]
enabled = ["pk"]
bogus = true
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_core_tag_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[tags]
enabled = ["pk", "primaryKey"]
""".strip(),
    )

    with pytest.raises(ConfigError, match="Unknown core tags: primaryKey"):
        load_config(tmp_path)


def test_extra_tag_shadowing_core_tag_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[tags]
extra = ["owner", "pk"]
""".strip(),
    )

    with pytest.raises(ConfigError, match="shadow core tags: pk"):
        load_config(tmp_path)


def test_valid_nested_tags_config_accepted(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
hash_algorithm = "blake2b"
timeout_seconds = 2.5
log_level = "debug"

[tags]
enabled = ["pk", "unique", "maxLength"]
extra = ["owner"]
""".strip(),
    )

    config = load_config(tmp_path)

    assert config.hash_algorithm == "blake2b"
    assert config.timeout_seconds == 2.5
    assert config.log_level == "DEBUG"
    vocabulary = config.tags.vocabulary()
    assert vocabulary.names == ("maxLength", "owner", "pk", "unique")


def test_empty_config_accepted(tmp_path: Path) -> None:
    _write_config(tmp_path, "")

    config = load_config(tmp_path)

    assert config.cache_dir == ".typeir/cache"
    assert config.hash_algorithm == "sha256"
    assert config.timeout_seconds is None
    assert config.include == []
    assert config.exclude == []
    assert config.tags.enabled is None


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path) == load_config(tmp_path / "nowhere")


@pytest.mark.parametrize(
    ("cache_dir", "message"),
    [
        ("", "non-empty"),
        ("~/cache", "relative path"),
        ("/tmp/cache", "relative path"),
        (".", "repository root itself"),
        ("../outside", "escapes the repository root"),
    ],
)
def test_resolve_cache_dir_rejects_unsafe_paths(
    tmp_path: Path, cache_dir: str, message: str
) -> None:
    with pytest.raises(ConfigError, match=message):
        resolve_cache_dir(tmp_path, cache_dir)


def test_resolve_cache_dir_within_root(tmp_path: Path) -> None:
    assert resolve_cache_dir(tmp_path, ".typeir/cache") == (
        tmp_path.resolve() / ".typeir" / "cache"
    )
