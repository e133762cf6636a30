"""Tests for the exception hierarchy."""

from goodchild.exceptions import (
    ConfigError,
    DuplicateKeyError,
    ErrorCategory,
    GoodchildError,
    InvalidColumnError,
    LoadError,
    StorageError,
    ValidationError,
)


def test_invalid_column_is_validation_error():
    err = InvalidColumnError("drop_me")
    assert isinstance(err, ValidationError)
    assert isinstance(err, GoodchildError)
    assert err.column == "drop_me"
    assert "Invalid column name: drop_me" in str(err)
    assert not err.is_retryable


def test_storage_errors_categories():
    assert StorageError("timeout").is_retryable
    dup = DuplicateKeyError("jid exists", jid="...1234@g.us")
    assert isinstance(dup, StorageError)
    assert dup.category == ErrorCategory.PERMANENT
    assert dup.context == {"jid": "...1234@g.us"}


def test_load_error_carries_source():
    err = LoadError("import failed", source="handlers/fun/joke.py")
    assert err.source == "handlers/fun/joke.py"
    assert err.module == "commands.loader"
    assert "source=handlers/fun/joke.py" in str(err)


def test_config_error_is_infrastructure():
    err = ConfigError("missing")
    assert err.category == ErrorCategory.INFRASTRUCTURE
    assert repr(err) == "ConfigError('missing', category='infrastructure', module='config')"
