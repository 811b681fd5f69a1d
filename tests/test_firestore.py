from unittest import mock

import pytest

from services.firestore import FirestoreDB, MAX_DISJUNCTION_VALUES, toggle_membership


def snapshot(doc_id, data, exists=True):
    doc = mock.MagicMock()
    doc.id = doc_id
    doc.exists = exists
    doc.to_dict.return_value = dict(data)
    return doc


@pytest.fixture
def firestore_client():
    with mock.patch("services.firestore.fs.client") as mclient:
        yield mclient.return_value


@pytest.fixture
def db(firestore_client):
    return FirestoreDB(mock.MagicMock())


@pytest.fixture
def posts(firestore_client):
    return firestore_client.collection.return_value


@pytest.fixture
def no_transactions():
    # run transactional functions directly against the mocked transaction
    with mock.patch("services.firestore.firestore.transactional", lambda fn: fn):
        yield


def test_toggle_membership():
    assert toggle_membership([], "u1") == (["u1"], True)
    assert toggle_membership(["u1", "u2"], "u1") == (["u2"], False)


def test_create_post(db, firestore_client, posts):
    posts.document.return_value.id = "abcdefghij0123456789"

    created = db.create_post({"title": "Hello"})

    firestore_client.collection.assert_called_with("posts")
    posts.document.return_value.set.assert_called_once_with({"title": "Hello"})
    assert created == {"id": "abcdefghij0123456789", "title": "Hello"}


def test_get_post(db, posts):
    posts.document.return_value.get.return_value = snapshot("p1", {"title": "Hello"})

    assert db.get_post("p1") == {"id": "p1", "title": "Hello"}


def test_get_missing_post(db, posts):
    posts.document.return_value.get.return_value = snapshot("p1", {}, exists=False)

    assert db.get_post("p1") is None


def test_count_posts_with_tags(db, posts):
    aggregation = mock.MagicMock(value=3)
    query = posts.where.return_value
    query.count.return_value.get.return_value = [[aggregation]]

    assert db.count_posts(["tech"]) == 3
    query.count.assert_called_once_with(alias="total")


def test_query_posts_pages_newest_first(db, posts):
    ordered = posts.order_by.return_value
    ordered.offset.return_value.limit.return_value.stream.return_value = [
        snapshot("p2", {"title": "Second"}),
        snapshot("p1", {"title": "First"}),
    ]

    result = db.query_posts(None, 10, 5)

    assert [post["id"] for post in result] == ["p2", "p1"]
    ordered.offset.assert_called_once_with(10)
    ordered.offset.return_value.limit.assert_called_once_with(5)
    posts.where.assert_not_called()


def test_stream_posts_with_large_tag_filter(db, posts):
    posts.order_by.return_value.stream.return_value = [
        snapshot("p1", {"tags": ["tag-3"]}),
        snapshot("p2", {"tags": ["other"]}),
    ]
    tags = [f"tag-{i}" for i in range(MAX_DISJUNCTION_VALUES + 1)]

    result = list(db.stream_posts(tags))

    assert [post["id"] for post in result] == ["p1"]
    posts.where.assert_not_called()


def test_delete_missing_post(db, posts):
    post_ref = posts.document.return_value
    post_ref.get.return_value = snapshot("p1", {}, exists=False)

    assert db.delete_post("p1") is False
    post_ref.delete.assert_not_called()


def test_delete_post(db, posts):
    post_ref = posts.document.return_value
    post_ref.get.return_value = snapshot("p1", {"title": "Hello"})

    assert db.delete_post("p1") is True
    post_ref.delete.assert_called_once_with()


def test_toggle_like_adds_user(db, firestore_client, posts, no_transactions):
    post_ref = posts.document.return_value
    post_ref.get.return_value = snapshot("p1", {"likes": 1, "likedBy": ["u1"]})
    transaction = firestore_client.transaction.return_value

    assert db.toggle_like("p1", "u2") == (2, True)

    changes = transaction.update.call_args.args[1]
    assert changes["likedBy"] == ["u1", "u2"]
    assert changes["likes"] == 2
    assert "updatedAt" in changes
    post_ref.get.assert_called_once_with(transaction=transaction)


def test_toggle_like_missing_post(db, firestore_client, posts, no_transactions):
    posts.document.return_value.get.return_value = snapshot("p1", {}, exists=False)

    assert db.toggle_like("p1", "u1") is None
    firestore_client.transaction.return_value.update.assert_not_called()


def test_update_post(db, firestore_client, posts, no_transactions):
    posts.document.return_value.get.return_value = snapshot("p1", {"title": "Old", "likes": 0})

    updated = db.update_post("p1", {"title": "New"})

    assert updated == {"id": "p1", "title": "New", "likes": 0}
    firestore_client.transaction.return_value.update.assert_called_once_with(posts.document.return_value, {"title": "New"})


def test_distinct_tags(db, posts):
    posts.select.return_value.stream.return_value = [
        snapshot("p1", {"tags": ["a", "b"]}),
        snapshot("p2", {"tags": ["b", "c"]}),
        snapshot("p3", {}),
    ]

    assert db.distinct_tags() == {"a", "b", "c"}
