from docvault.core.errors import ErrorCode, StorageError
from docvault.domains.documents.entities import SharedDocNotification


async def test_scenario_key_exchange(alice, bob):
    """Ключ, зашифрованный для bob через ECDH, восстанавливается bob без изменений"""
    doc = (await alice.documents.create_document("T", "Shared content")).value
    key = (await alice.documents.get_document_key(doc.id)).value

    bob_identity = (await alice.identity.discover_users("bob")).value[0]
    secret = alice.crypto.derive_shared_secret(bob_identity.epub, alice.sessions.current.pair)
    encrypted_key = alice.codec.fields.encrypt_field(key, secret)

    bob_secret = bob.crypto.derive_shared_secret(alice.sessions.current.epub, bob.sessions.current.pair)
    recovered = bob.codec.fields.decrypt_field(encrypted_key, bob_secret)
    assert recovered == key

    record = await bob.store.user(alice.sessions.current.pub).get("docs").get(doc.id).once()
    assert bob.codec.fields.decrypt_field(record["content"], recovered) == "Shared content"


async def test_share_and_open(alice, bob):
    doc = (await alice.documents.create_document("T", "C", tags=["a"])).value

    grant = await alice.sharing.share_document(doc.id, "bob")
    assert grant.success
    assert grant.value.user_id == "bob"
    assert grant.value.encrypted_doc_key.startswith("ENC_")
    assert grant.value.sender_epub == alice.sessions.current.epub

    opened = await bob.sharing.open_shared_document(alice.sessions.current.pub, doc.id)
    assert opened.success
    assert (opened.value.title, opened.value.content, opened.value.tags) == ("T", "C", ["a"])
    assert opened.value.owner_pub == alice.sessions.current.pub


async def test_share_is_idempotent(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value

    first = await alice.sharing.share_document(doc.id, "bob")
    second = await alice.sharing.share_document(doc.id, "bob")

    assert first.success and second.success
    access = (await alice.documents.get_document(doc.id)).value.access
    assert [grant.user_id for grant in access] == ["bob"]
    assert len((await bob.sharing.list_shared_with_me()).value) == 1


async def test_share_public_document_carries_no_key(alice, bob):
    doc = (await alice.documents.create_document("Open", "Body", is_public=True)).value

    grant = (await alice.sharing.share_document(doc.id, "bob")).value
    assert grant.encrypted_doc_key == ""

    opened = (await bob.sharing.open_shared_document(alice.sessions.current.pub, doc.id)).value
    assert opened.content == "Body"


async def test_share_errors(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value

    assert (await alice.sharing.share_document("missing", "bob")).error.code == ErrorCode.NOT_FOUND
    assert (await alice.sharing.share_document(doc.id, "nobody")).error.code == ErrorCode.NOT_FOUND
    assert (await alice.sharing.share_document(doc.id, "alice")).error.code == ErrorCode.VALIDATION_ERROR
    assert (await alice.sharing.share_document(doc.id, "")).error.code == ErrorCode.VALIDATION_ERROR


async def test_unshare_removes_grant(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")

    result = await alice.sharing.unshare_document(doc.id, "bob")

    assert result.success
    access = (await alice.documents.get_document(doc.id)).value.access
    assert all(grant.user_id != "bob" for grant in access)

    opened = await bob.sharing.open_shared_document(alice.sessions.current.pub, doc.id)
    assert opened.error.code == ErrorCode.PERMISSION_DENIED
    assert (await bob.sharing.list_shared_with_me()).value == []
    assert (await alice.sharing.list_outgoing_shares()).value == []


async def test_unshare_without_grant_is_noop(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value

    result = await alice.sharing.unshare_document(doc.id, "bob")

    assert result.success
    assert result.value is True
    assert (await alice.documents.get_document(doc.id)).value.access == []
    assert (await alice.sharing.unshare_document(doc.id, "bob")).success


async def test_unshare_missing_document(alice, bob):
    result = await alice.sharing.unshare_document("missing", "bob")

    assert result.error.code == ErrorCode.NOT_FOUND


async def test_unshare_does_not_rotate_key(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    key = (await alice.documents.get_document_key(doc.id)).value
    await alice.sharing.share_document(doc.id, "bob")
    await alice.sharing.unshare_document(doc.id, "bob")

    assert (await alice.documents.get_document_key(doc.id)).value == key


async def test_reshare_after_unshare(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")
    await alice.sharing.unshare_document(doc.id, "bob")

    assert (await alice.sharing.share_document(doc.id, "bob")).success
    assert (await bob.sharing.open_shared_document(alice.sessions.current.pub, doc.id)).value.title == "T"


async def test_recipient_inbox(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")

    [notification] = (await bob.sharing.list_shared_with_me()).value

    assert notification.doc_id == doc.id
    assert notification.sender_alias == "alice"
    assert notification.sender_pub == alice.sessions.current.pub
    assert notification.is_public is False
    assert notification.encrypted_doc_key

    assert (await alice.sharing.list_shared_with_me()).value == []


async def test_inbox_payload_is_encrypted(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")

    inbox = alice.store.get("docvault~inbox").get(bob.sessions.current.pub)
    [(key, entry)] = await alice.store.collect(inbox)

    assert doc.id not in key
    assert alice.sessions.current.pub not in key
    assert entry["payload"].startswith("ENC_")
    assert doc.id not in entry["payload"]


async def test_third_party_cannot_read_notification(alice, bob, make_vault):
    carol = await make_vault("carol")
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")

    opened = await carol.sharing.open_shared_document(alice.sessions.current.pub, doc.id)
    assert opened.error.code == ErrorCode.PERMISSION_DENIED

    inbox = carol.store.get("docvault~inbox").get(bob.sessions.current.pub)
    [(_, entry)] = await carol.store.collect(inbox)
    carol_secret = carol.crypto.derive_shared_secret(entry["sender_epub"], carol.sessions.current.pair)
    assert carol_secret != bob.crypto.derive_shared_secret(entry["sender_epub"], bob.sessions.current.pair)


async def test_outgoing_shares(alice, bob, make_vault):
    await make_vault("carol")
    first = (await alice.documents.create_document("One", "1")).value
    second = (await alice.documents.create_document("Two", "2")).value
    await alice.sharing.share_document(first.id, "bob")
    await alice.sharing.share_document(second.id, "carol")

    outgoing = (await alice.sharing.list_outgoing_shares()).value

    assert {(item.recipient, item.doc_id) for item in outgoing} == {("bob", first.id), ("carol", second.id)}


async def test_grant_on_root_opens_branches(alice, bob):
    root = (await alice.documents.create_document("Root", "Body", tags=["x"])).value
    await alice.sharing.share_document(root.id, "bob")
    branch = (await alice.branches.create_branch(root.id)).value
    nested = (await alice.branches.create_branch(branch.id)).value

    for doc_id in (branch.id, nested.id):
        opened = await bob.sharing.open_shared_document(alice.sessions.current.pub, doc_id)
        assert opened.success, opened
        assert (opened.value.title, opened.value.content, opened.value.tags) == ("Root", "Body", ["x"])
        assert opened.value.original == root.id


async def test_unshare_root_closes_branches(alice, bob):
    root = (await alice.documents.create_document("Root", "Body")).value
    await alice.sharing.share_document(root.id, "bob")
    branch = (await alice.branches.create_branch(root.id)).value

    await alice.sharing.unshare_document(root.id, "bob")

    opened = await bob.sharing.open_shared_document(alice.sessions.current.pub, branch.id)
    assert opened.error.code == ErrorCode.PERMISSION_DENIED


async def test_forged_inbox_entry_is_skipped(alice, bob, make_vault):
    mallory = await make_vault("mallory")
    alice_pub = alice.sessions.current.pub
    bob_identity = bob.sessions.current.public_identity()

    forged = SharedDocNotification(
        sender_alias="alice",
        sender_pub=alice_pub,
        sender_epub=mallory.sessions.current.epub,
        doc_id="phish",
        is_public=True,
    )
    secret = mallory.crypto.derive_shared_secret(bob_identity.epub, mallory.sessions.current.pair)
    await mallory.store.get("docvault~inbox").get(bob_identity.pub).get("forged").put({
        "sender_pub": alice_pub,
        "sender_epub": mallory.sessions.current.epub,
        "payload": mallory.codec.fields.encrypt_field(forged.to_json(), secret),
    })

    assert (await bob.sharing.list_shared_with_me()).value == []

    doc = (await alice.documents.create_document("T", "C")).value
    await alice.sharing.share_document(doc.id, "bob")
    assert [item.doc_id for item in (await bob.sharing.list_shared_with_me()).value] == [doc.id]


async def test_share_retry_writes_missing_notification(alice, bob):
    doc = (await alice.documents.create_document("T", "C")).value
    notify = alice.sharing._notify

    async def failing_notify(*args, **kwargs):
        raise StorageError("Failed to write inbox entry")

    alice.sharing._notify = failing_notify
    failed = await alice.sharing.share_document(doc.id, "bob")
    alice.sharing._notify = notify

    assert failed.error.code == ErrorCode.NETWORK_ERROR
    assert [grant.user_id for grant in (await alice.documents.get_document(doc.id)).value.access] == ["bob"]
    assert (await bob.sharing.list_shared_with_me()).value == []

    retried = await alice.sharing.share_document(doc.id, "bob")

    assert retried.success
    assert [item.doc_id for item in (await bob.sharing.list_shared_with_me()).value] == [doc.id]
    assert (await bob.sharing.open_shared_document(alice.sessions.current.pub, doc.id)).value.title == "T"
