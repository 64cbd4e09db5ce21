import pytest

from docvault.core.errors import ErrorCode


async def test_create_and_read_private_document(alice):
    created = await alice.documents.create_document("T", "C", tags=["a", "b"])
    assert created.success
    doc = created.value

    result = await alice.documents.get_document(doc.id)

    assert result.success
    document = result.value
    assert (document.title, document.content, document.tags) == ("T", "C", ["a", "b"])
    assert document.is_public is False
    assert document.owner_pub == alice.sessions.current.pub


async def test_private_document_is_encrypted_at_rest(alice):
    doc = (await alice.documents.create_document("Secret title", "Secret body", tags=["x"])).value

    record = await alice.store.user().get("docs").get(doc.id).once()

    assert record["title"].startswith("ENC_")
    assert record["content"].startswith("ENC_")
    assert record["tags"].startswith("ENC_")
    assert "Secret" not in str(record)


async def test_public_document_is_plaintext(alice):
    doc = (await alice.documents.create_document("Open", "Body", tags=["a", "b"], is_public=True)).value

    record = await alice.store.user().get("docs").get(doc.id).once()
    assert record["title"] == "Open"
    assert record["tags"] == "a,b"
    assert (await alice.documents.get_document_key(doc.id)).value is None


async def test_create_validation(alice):
    assert (await alice.documents.create_document("", "C")).error.code == ErrorCode.VALIDATION_ERROR
    assert (await alice.documents.create_document("T", None)).error.code == ErrorCode.VALIDATION_ERROR


async def test_tag_with_delimiter_writes_nothing(alice):
    result = await alice.documents.create_document("T", "C", tags=["ok", "bad,tag"])

    assert result.error.code == ErrorCode.VALIDATION_ERROR
    assert (await alice.documents.list_documents()).value == []
    assert await alice.private.list(["docKeys"]) == []


async def test_update_with_bad_tag_leaves_document_unchanged(alice):
    doc = (await alice.documents.create_document("T", "C", tags=["a"])).value

    result = await alice.documents.update_document(doc.id, content="changed", tags=["x,y"])

    assert result.error.code == ErrorCode.VALIDATION_ERROR
    unchanged = (await alice.documents.get_document(doc.id)).value
    assert (unchanged.content, unchanged.tags) == ("C", ["a"])


async def test_missing_document_is_none(alice):
    result = await alice.documents.get_document("missing")

    assert result.success
    assert result.value is None


async def test_missing_key_is_permission_denied(alice):
    doc = (await alice.documents.create_document("T", "C")).value
    await alice.keys.delete_key(doc.id)

    result = await alice.documents.get_document(doc.id)
    assert result.error.code == ErrorCode.PERMISSION_DENIED


async def test_update_reencrypts_only_changed_fields(alice):
    doc = (await alice.documents.create_document("T", "C", tags=["a"])).value
    before = await alice.store.user().get("docs").get(doc.id).once()

    result = await alice.documents.update_document(doc.id, content="C2")

    assert result.success
    after = await alice.store.user().get("docs").get(doc.id).once()
    assert after["title"] == before["title"]
    assert after["tags"] == before["tags"]
    assert after["content"] != before["content"]
    assert after["updated_at"] >= before["updated_at"]
    assert result.value.content == "C2"
    assert result.value.title == "T"


async def test_update_requires_changes(alice):
    doc = (await alice.documents.create_document("T", "C")).value

    assert (await alice.documents.update_document(doc.id)).error.code == ErrorCode.VALIDATION_ERROR
    assert (await alice.documents.update_document("missing", title="x")).error.code == ErrorCode.NOT_FOUND


async def test_delete_private_root_removes_key(alice):
    doc = (await alice.documents.create_document("T", "C")).value

    assert (await alice.documents.delete_document(doc.id)).value is True
    assert (await alice.documents.get_document(doc.id)).value is None
    assert (await alice.documents.get_document_key(doc.id)).error.code == ErrorCode.NOT_FOUND
    assert await alice.private.read(["docKeys", doc.id]) is None


async def test_delete_root_with_branches_is_refused(alice):
    doc = (await alice.documents.create_document("T", "C")).value
    branch = (await alice.branches.create_branch(doc.id)).value

    result = await alice.documents.delete_document(doc.id)
    assert result.error.code == ErrorCode.VALIDATION_ERROR

    assert (await alice.branches.delete_branch(branch.id)).success
    assert (await alice.documents.delete_document(doc.id)).success


async def test_list_documents_does_not_decrypt(alice):
    first = (await alice.documents.create_document("One", "1")).value
    second = (await alice.documents.create_document("Two", "2", is_public=True)).value

    items = (await alice.documents.list_documents()).value

    assert {item.doc_id for item in items} == {first.id, second.id}
    assert all(item.soul.endswith(f"/docs/{item.doc_id}") for item in items)
    assert not any(hasattr(item, "title") for item in items)


async def test_metadata(alice):
    doc = (await alice.documents.create_document("T", "C", tags=["a"])).value

    assert (await alice.documents.get_document_metadata(doc.id)).value == {"id": doc.id, "title": "T", "tags": ["a"]}


async def test_visibility_applies_to_whole_lineage(alice):
    root = (await alice.documents.create_document("T", "C", tags=["a"])).value
    branch = (await alice.branches.create_branch(root.id)).value

    public = await alice.documents.set_document_public(root.id)
    assert public.success and public.value.is_public

    raw_branch = await alice.store.user().get("docs").get(branch.id).once()
    assert raw_branch["is_public"] is True
    assert raw_branch["title"] == "T"
    assert await alice.private.read(["docKeys", root.id]) is None

    private = await alice.documents.set_document_private(root.id)
    assert private.success and not private.value.is_public

    raw_branch = await alice.store.user().get("docs").get(branch.id).once()
    assert raw_branch["is_public"] is False
    assert raw_branch["title"].startswith("ENC_")
    assert (await alice.branches.get_branch(branch.id)).value.title == "T"


async def test_visibility_refused_on_branch(alice):
    root = (await alice.documents.create_document("T", "C")).value
    branch = (await alice.branches.create_branch(root.id)).value

    assert (await alice.documents.set_document_public(branch.id)).error.code == ErrorCode.VALIDATION_ERROR


async def test_set_private_with_supplied_key(alice):
    doc = (await alice.documents.create_document("T", "C", is_public=True)).value
    key = alice.keys.generate_key()

    assert (await alice.documents.set_document_private(doc.id, key=key)).success
    assert (await alice.documents.get_document_key(doc.id)).value == key


async def test_operations_require_authentication(backend, test_settings):
    from docvault.client import DocVault

    vault = DocVault(backend, test_settings)
    result = await vault.documents.create_document("T", "C")

    assert result.error.code == ErrorCode.AUTH_REQUIRED
