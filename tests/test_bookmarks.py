"""Tests for bookmark CRUD, URL handling, metadata and statistics."""
from conftest import API


def create_bookmark(client, headers, **fields):
    payload = {"url": "https://example.com/article", "title": "Article"}
    payload.update(fields)
    response = client.post(f"{API}/bookmarks", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["bookmark"]


def test_create_bookmark_prepends_scheme(client, auth_headers, fetcher):
    bookmark = create_bookmark(client, auth_headers, url="  example.com  ")
    assert bookmark["url"] == "http://example.com"
    assert fetcher.calls == ["http://example.com"]


def test_create_bookmark_keeps_supplied_fields(client, auth_headers):
    bookmark = create_bookmark(
        client, auth_headers, title="Mine", description="My words", tags=["read", "read", " later "]
    )
    assert bookmark["title"] == "Mine"
    assert bookmark["description"] == "My words"
    assert bookmark["favicon"] == "https://example.com/favicon.ico"
    assert bookmark["tags"] == ["read", "later"]
    assert bookmark["isFavorite"] is False


def test_create_bookmark_fills_missing_fields_from_page(client, auth_headers):
    response = client.post(
        f"{API}/bookmarks", json={"url": "https://example.com/post"}, headers=auth_headers
    )
    assert response.status_code == 201
    bookmark = response.json()["data"]["bookmark"]
    assert bookmark["title"] == "Fetched title"
    assert bookmark["description"] == "Fetched description"


def test_create_bookmark_without_page_metadata(client, auth_headers, fetcher):
    fetcher.result = {"title": "Example", "description": "", "favicon": "", "image": ""}
    bookmark = create_bookmark(client, auth_headers, title=None)
    assert bookmark["title"] == "Example"
    assert bookmark["description"] is None
    assert bookmark["favicon"] is None


def test_duplicate_url_conflicts(client, auth_headers):
    create_bookmark(client, auth_headers)
    response = client.post(
        f"{API}/bookmarks", json={"url": "https://example.com/article"}, headers=auth_headers
    )
    assert response.status_code == 409
    assert response.json()["message"] == "A bookmark with this URL already exists"


def test_same_url_for_different_users(client, auth_headers, other_headers):
    create_bookmark(client, auth_headers)
    create_bookmark(client, other_headers)


def test_non_http_url_is_rejected(client, auth_headers):
    response = client.post(f"{API}/bookmarks", json={"url": "ftp://x"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "url"


def test_update_url_refreshes_favicon(client, auth_headers, fetcher):
    bookmark = create_bookmark(client, auth_headers)
    fetcher.result = dict(fetcher.result, favicon="https://other.org/icon.png")
    response = client.put(
        f"{API}/bookmarks/{bookmark['id']}", json={"url": "other.org"}, headers=auth_headers
    )
    assert response.status_code == 200
    updated = response.json()["data"]["bookmark"]
    assert updated["url"] == "http://other.org"
    assert updated["favicon"] == "https://other.org/icon.png"
    assert updated["title"] == "Article"


def test_update_without_url_does_not_fetch(client, auth_headers, fetcher):
    bookmark = create_bookmark(client, auth_headers)
    calls = len(fetcher.calls)
    response = client.put(
        f"{API}/bookmarks/{bookmark['id']}", json={"title": "Renamed"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["data"]["bookmark"]["title"] == "Renamed"
    assert len(fetcher.calls) == calls


def test_update_to_existing_url_conflicts(client, auth_headers):
    create_bookmark(client, auth_headers, url="https://a.example")
    second = create_bookmark(client, auth_headers, url="https://b.example")
    response = client.put(
        f"{API}/bookmarks/{second['id']}", json={"url": "https://a.example"}, headers=auth_headers
    )
    assert response.status_code == 409


def test_update_without_fields(client, auth_headers):
    bookmark = create_bookmark(client, auth_headers)
    response = client.put(f"{API}/bookmarks/{bookmark['id']}", json={}, headers=auth_headers)
    assert response.status_code == 400


def test_toggle_favorite_messages(client, auth_headers):
    bookmark = create_bookmark(client, auth_headers)
    url = f"{API}/bookmarks/{bookmark['id']}/favorite"
    on = client.patch(url, headers=auth_headers).json()
    off = client.patch(url, headers=auth_headers).json()
    assert on["message"] == "Bookmark added to favorites"
    assert on["data"]["bookmark"]["isFavorite"] is True
    assert off["message"] == "Bookmark removed from favorites"
    assert off["data"]["bookmark"]["isFavorite"] is False


def test_delete_bookmark(client, auth_headers):
    bookmark = create_bookmark(client, auth_headers)
    assert client.delete(f"{API}/bookmarks/{bookmark['id']}", headers=auth_headers).status_code == 200
    response = client.get(f"{API}/bookmarks/{bookmark['id']}", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["message"] == "Bookmark not found or not accessible"


def test_other_users_bookmark_is_not_found(client, auth_headers, other_headers):
    bookmark = create_bookmark(client, auth_headers)
    assert client.get(f"{API}/bookmarks/{bookmark['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"{API}/bookmarks/{bookmark['id']}", headers=other_headers).status_code == 404
    assert client.get(f"{API}/bookmarks/{bookmark['id']}", headers=auth_headers).status_code == 200


def test_list_bookmarks_sorted_by_url(client, auth_headers):
    for url in ["https://c.example", "https://a.example", "https://b.example"]:
        create_bookmark(client, auth_headers, url=url)
    response = client.get(
        f"{API}/bookmarks", params={"sortBy": "url", "sortOrder": "asc"}, headers=auth_headers
    )
    body = response.json()
    assert [b["url"] for b in body["data"]["bookmarks"]] == [
        "https://a.example",
        "https://b.example",
        "https://c.example",
    ]
    assert body["pagination"]["totalCount"] == 3
    assert body["pagination"]["totalPages"] == 1


def test_list_bookmarks_searches_url(client, auth_headers):
    create_bookmark(client, auth_headers, url="https://docs.python.org", title="Docs")
    create_bookmark(client, auth_headers, url="https://news.example", title="News")
    response = client.get(f"{API}/bookmarks", params={"q": "python"}, headers=auth_headers)
    assert [b["title"] for b in response.json()["data"]["bookmarks"]] == ["Docs"]


def test_metadata_endpoint(client, auth_headers, fetcher):
    response = client.post(
        f"{API}/bookmarks/metadata", json={"url": "example.com/page"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["data"] == {
        "title": "Fetched title",
        "description": "Fetched description",
        "favicon": "https://example.com/favicon.ico",
        "image": "",
    }
    assert fetcher.calls == ["http://example.com/page"]


def test_metadata_endpoint_requires_token(client):
    response = client.post(f"{API}/bookmarks/metadata", json={"url": "https://example.com"})
    assert response.status_code == 401


def test_bookmark_stats(client, auth_headers):
    create_bookmark(client, auth_headers, url="https://a.example", tags=["python"], isFavorite=True)
    create_bookmark(client, auth_headers, url="https://b.example", tags=["python", "db"])
    stats = client.get(f"{API}/bookmarks/stats", headers=auth_headers).json()["data"]
    assert stats == {
        "totalBookmarks": 2,
        "favoriteBookmarks": 1,
        "uniqueTags": 2,
        "popularTags": [{"tag": "python", "count": 2}, {"tag": "db", "count": 1}],
    }
