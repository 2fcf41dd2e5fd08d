"""Детальная страница поста и счетчик просмотров."""

from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.orm import Session

from blog.models import Post
from blog.services.post_services import record_post_view
from blog.utils.database import Database

from conftest import create_post, register


def _view_count(db: Session, post_id: int) -> int:
    db.expire_all()
    return db.query(Post.view_count).filter(Post.id == post_id).scalar()


def test_detail_includes_author_comments_and_likes(client: TestClient, alice: dict, bob: dict):
    post = create_post(client, alice["headers"], tags=["news"])
    for text in ("first!", "second"):
        client.post(
            "/api/v1/comments",
            json={"postId": post["id"], "content": text},
            headers=bob["headers"],
        )
    client.post(f"/api/v1/posts/{post['id']}/like", headers=bob["headers"])

    response = client.get(f"/api/v1/posts/{post['id']}", headers=bob["headers"])

    assert response.status_code == 200
    detail = response.json()["post"]
    assert detail["author"]["username"] == "alice"
    assert detail["tags"] == ["news"]
    assert [c["content"] for c in detail["comments"]] == ["first!", "second"]
    assert all(c["author"]["username"] == "bob" for c in detail["comments"])
    assert detail["likesCount"] == 1
    assert detail["commentsCount"] == 2
    assert detail["isLikedByCurrentUser"] is True


def test_detail_for_anonymous_is_not_liked(client: TestClient, alice: dict, bob: dict):
    post = create_post(client, alice["headers"])
    client.post(f"/api/v1/posts/{post['id']}/like", headers=bob["headers"])

    detail = client.get(f"/api/v1/posts/{post['id']}").json()["post"]
    assert detail["likesCount"] == 1
    assert detail["isLikedByCurrentUser"] is False


def test_each_fetch_counts_one_view(client: TestClient, db: Session, alice: dict):
    post = create_post(client, alice["headers"])
    assert _view_count(db, post["id"]) == 0

    first = client.get(f"/api/v1/posts/{post['id']}").json()["post"]
    assert first["viewCount"] == 1
    assert _view_count(db, post["id"]) == 1

    client.get(f"/api/v1/posts/{post['id']}")
    client.get(f"/api/v1/posts/{post['id']}")
    assert _view_count(db, post["id"]) == 3


def test_view_does_not_touch_updated_at(client: TestClient, db: Session, alice: dict):
    post = create_post(client, alice["headers"])
    client.get(f"/api/v1/posts/{post['id']}")

    assert client.get(f"/api/v1/posts/{post['id']}").json()["post"]["updatedAt"] == post["updatedAt"]


def test_missing_post_is_404_and_counts_nothing(client: TestClient, db: Session, alice: dict):
    post = create_post(client, alice["headers"])

    response = client.get("/api/v1/posts/9999")

    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"
    assert _view_count(db, post["id"]) == 0


def test_unpublished_post_is_404(client: TestClient, db: Session, alice: dict):
    post = create_post(client, alice["headers"])
    db.query(Post).filter(Post.id == post["id"]).update({Post.is_published: False})
    db.commit()

    assert client.get(f"/api/v1/posts/{post['id']}").status_code == 404
    assert _view_count(db, post["id"]) == 0


def test_view_failure_is_swallowed():
    # база без таблиц: UPDATE падает, но задача не пробрасывает ошибку
    database = Database("sqlite://")
    database.connect()
    try:
        record_post_view(database, 1)
    finally:
        database.close()


def test_comment_count_does_not_change_query_count(app, client: TestClient, alice: dict):
    post = create_post(client, alice["headers"])
    engine = app.state.db.engine
    statements: list[str] = []

    def count(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            statements.append(statement)

    def selects_for_detail() -> int:
        statements.clear()
        event.listen(engine, "before_cursor_execute", count)
        try:
            assert client.get(f"/api/v1/posts/{post['id']}").status_code == 200
        finally:
            event.remove(engine, "before_cursor_execute", count)
        return len(statements)

    commenter = register(client, "commenter0")
    client.post(
        "/api/v1/comments",
        json={"postId": post["id"], "content": "one"},
        headers=commenter["headers"],
    )
    baseline = selects_for_detail()

    for i in range(1, 5):
        other = register(client, f"commenter{i}")
        client.post(
            "/api/v1/comments",
            json={"postId": post["id"], "content": f"more {i}"},
            headers=other["headers"],
        )

    assert selects_for_detail() == baseline


def test_out_of_range_id_is_404(client: TestClient, alice: dict):
    huge = 10**19
    assert client.get(f"/api/v1/posts/{huge}").status_code == 404
    assert client.put(f"/api/v1/posts/{huge}", json={"title": "x"}, headers=alice["headers"]).status_code == 404
    assert client.delete(f"/api/v1/posts/{huge}", headers=alice["headers"]).status_code == 404
    response = client.post(f"/api/v1/posts/{huge}/like", headers=alice["headers"])
    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"
