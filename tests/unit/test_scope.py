from __future__ import annotations

import uuid

import pytest
from hypothesis import given
from hypothesis import strategies as st

from teamchat.domain.value_objects.scope import (
    GENERAL_CHANNEL_ID,
    ChannelScope,
    DirectScope,
    parse_scope_key,
    resolve_channel_ref,
)
from tests.conftest import make_message


def test_general_alias_resolves_to_fixed_channel():
    assert resolve_channel_ref("general") == GENERAL_CHANNEL_ID
    assert resolve_channel_ref(str(GENERAL_CHANNEL_ID)) == GENERAL_CHANNEL_ID
    assert resolve_channel_ref(GENERAL_CHANNEL_ID) == GENERAL_CHANNEL_ID


@pytest.mark.parametrize("ref", ["", "General ", "random", "1234"])
def test_unknown_refs_rejected(ref):
    with pytest.raises(ValueError):
        resolve_channel_ref(ref)


@given(st.integers(min_value=1), st.integers(min_value=1))
def test_direct_scope_is_symmetric(a, b):
    assert DirectScope.between(a, b) == DirectScope.between(b, a)
    assert DirectScope.between(a, b).key == DirectScope.between(b, a).key


@given(st.integers(min_value=1), st.integers(min_value=1))
def test_direct_scope_key_round_trips(a, b):
    scope = DirectScope.between(a, b)
    assert parse_scope_key(scope.key) == scope


def test_channel_scope_key_round_trips():
    scope = ChannelScope(uuid.uuid4())
    assert parse_scope_key(scope.key) == scope


def test_unordered_direct_scope_rejected():
    with pytest.raises(ValueError):
        DirectScope(9, 3)


def test_peer_of():
    scope = DirectScope.between(3, 9)
    assert scope.peer_of(3) == 9
    assert scope.peer_of(9) == 3
    with pytest.raises(ValueError):
        scope.peer_of(4)


def test_message_has_exactly_one_scope():
    with pytest.raises(ValueError):
        make_message(channel_id=None, recipient_id=None)
    dm = make_message(author_id=5, recipient_id=2)
    assert dm.scope == DirectScope(2, 5)
    assert dm.is_direct
