"""Tests for the key codec."""

import pytest

from acl_store import InvalidArgumentError
from acl_store.keys import DEFAULT_PREFIX, KeyCodec, encode, escape


def test_plain_layout():
    assert KeyCodec("acl").encode("roles", "admin") == "acl_roles@admin"


def test_default_prefix():
    assert DEFAULT_PREFIX == "acl"
    assert KeyCodec().key_prefix == "acl_"


def test_integer_key():
    codec = KeyCodec()
    assert codec.encode("users", 7) == "acl_users@7"
    assert codec.encode("users", 7) == codec.encode("users", "7")


def test_encode_many_preserves_order():
    codec = KeyCodec("p")
    assert codec.encode_many("b", ["z", 1, "a"]) == ["p_b@z", "p_b@1", "p_b@a"]
    assert codec.encode_many("b", []) == []


def test_module_level_encode():
    assert encode("p", "b", "k") == "p_b@k"
    assert encode("p", "b", ["k", 2]) == ["p_b@k", "p_b@2"]


def test_escape():
    assert escape("a_b@c\\d") == "a\\_b\\@c\\\\d"


@pytest.mark.parametrize(
    ("first", "second"),
    [
        (("a", "b@c"), ("a@b", "c")),
        (("a_b", "c"), ("a", "b_c")),
        (("a\\", "@b"), ("a\\@", "b")),
    ],
)
def test_separators_in_names_never_collide(first, second):
    codec = KeyCodec("acl")
    assert codec.encode(*first) != codec.encode(*second)


def test_prefix_with_separator_stays_isolated():
    plain = KeyCodec("a")
    tricky = KeyCodec("a_b")
    key = tricky.encode("c", "d")
    assert not key.startswith(plain.key_prefix)
    assert key.startswith(tricky.key_prefix)


def test_unescaped_layout_collides():
    codec = KeyCodec("acl", escape=False)
    assert codec.encode("a", "b@c") == codec.encode("a@b", "c")
    assert codec.escapes is False


@pytest.mark.parametrize("prefix", ["acl_x", "a@b", "a\\b"])
def test_unescaped_codec_rejects_separators_in_prefix(prefix):
    with pytest.raises(InvalidArgumentError):
        KeyCodec(prefix, escape=False)


def test_unescaped_prefixes_do_not_overlap():
    assert not KeyCodec("acl2", escape=False).encode("x", "y").startswith(
        KeyCodec("acl", escape=False).key_prefix
    )
