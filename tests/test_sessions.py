import asyncio

import pytest

from docvault.client import DocVault
from docvault.core.errors import AuthRequired, ErrorCode


@pytest.fixture
def vault(backend, test_settings):
    return DocVault(backend, test_settings)


async def test_sign_in_and_out(vault):
    pair = vault.crypto.generate_key_pair()
    session = await vault.sessions.sign_in("frank", pair)
    assert vault.sessions.require() is session

    await vault.sessions.wait_ready()
    assert session.is_ready

    await vault.sessions.sign_out()
    assert vault.sessions.current is None
    assert not session.is_ready
    with pytest.raises(AuthRequired):
        vault.sessions.require()


async def test_switching_identity_clears_previous_state(vault):
    first = await vault.sessions.sign_in("one", vault.crypto.generate_key_pair())
    second = await vault.sessions.sign_in("two", vault.crypto.generate_key_pair())
    await vault.sessions.wait_ready()

    assert vault.sessions.current is second
    assert second.generation == first.generation + 1
    assert first.signing_state is None
    assert second.is_ready

    with pytest.raises(AuthRequired):
        vault.sessions.ensure_current(first)
    vault.sessions.ensure_current(second)


async def test_concurrent_sign_ins_leave_one_session(vault):
    sessions = await asyncio.gather(
        vault.sessions.sign_in("one", vault.crypto.generate_key_pair()),
        vault.sessions.sign_in("two", vault.crypto.generate_key_pair()),
    )
    await vault.sessions.wait_ready()

    current = vault.sessions.current
    assert current in sessions
    stale = [session for session in sessions if session is not current]
    assert len(stale) == 1
    assert stale[0].signing_state is None


async def test_register_validation(vault):
    short = await vault.identity.register_user("grace", "123")
    assert not short.success
    assert short.error.code == ErrorCode.VALIDATION_ERROR

    empty = await vault.identity.register_user("  ", "long-enough")
    assert empty.error.code == ErrorCode.VALIDATION_ERROR

    slashed = await vault.identity.register_user("a/b", "long-enough")
    assert slashed.error.code == ErrorCode.VALIDATION_ERROR
    assert vault.sessions.current is None


async def test_register_leaves_user_signed_in(vault):
    result = await vault.identity.register_user("heidi", "long-enough")

    assert result.success
    identity = result.value
    assert vault.sessions.current.pub == identity.pub
    assert vault.identity.current_identity() == identity


async def test_duplicate_alias_rejected(alice, vault):
    result = await vault.identity.register_user("alice", "another-pass")

    assert result.error.code == ErrorCode.VALIDATION_ERROR


async def test_authenticate(alice, vault):
    wrong = await vault.identity.authenticate_user("alice", "wrong-password")
    assert wrong.error.code == ErrorCode.AUTH_REQUIRED
    assert vault.sessions.current is None

    unknown = await vault.identity.authenticate_user("nobody", "whatever")
    assert unknown.error.code == ErrorCode.AUTH_REQUIRED

    result = await vault.identity.authenticate_user("alice", "correct-horse")
    assert result.success
    assert vault.sessions.current.pub == alice.sessions.current.pub


async def test_discover_users(alice, bob):
    result = await alice.identity.discover_users("bob")

    assert result.success
    [identity] = result.value
    assert identity.pub == bob.sessions.current.pub
    assert identity.epub == bob.sessions.current.epub

    assert (await alice.identity.discover_users("nobody")).value == []
    assert (await alice.identity.discover_users("")).error.code == ErrorCode.VALIDATION_ERROR


async def test_get_public_identity(alice, bob):
    bob_pub = bob.sessions.current.pub

    identity = (await alice.identity.get_public_identity(bob_pub)).value
    assert identity.alias == "bob"
    assert (await alice.identity.get_public_identity("missing")).value is None


async def test_sign_out_result(alice):
    result = await alice.identity.sign_out()

    assert result.success
    assert alice.identity.current_identity() is None
