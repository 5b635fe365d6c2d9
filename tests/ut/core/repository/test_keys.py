import pytest

from vmstore.core.repository.keys import KeyCodec


@pytest.mark.ut
def test_key_layout():
    assert KeyCodec.record_key("users", "42") == "users:42"
    assert KeyCodec.counter_key("users") == "nextItemId:users"
    assert KeyCodec.collection_pattern("users") == "users:*"


@pytest.mark.ut
def test_parse_record_key():
    assert KeyCodec.parse_record_key("users", "users:42") == "42"
    assert KeyCodec.parse_record_key("users", "users:a:b") == "a:b"
    assert KeyCodec.parse_record_key("users", "orders:42") is None
    assert KeyCodec.parse_record_key("users", "usersx:42") is None
