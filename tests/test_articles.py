from datetime import datetime, timedelta, timezone

import pytest

from app.config import settings

ARTICLES = settings.ARTICLES_COLLECTION
PUBLISHERS = settings.PUBLISHERS_COLLECTION


def _article(**overrides):
    data = {
        "title": "Budget vote delayed",
        "description": "Parliament postponed the vote.",
        "authorEmail": "writer@example.com",
        "publisher": "the daily",
        "tags": [],
        "status": "approved",
        "isPremium": False,
        "views": 0,
        "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return data


@pytest.fixture
def pending_article(fake_firebase):
    return fake_firebase.seed(ARTICLES, _article(status="pending", views=17))


# --- Submission ---

def test_submit_article(client, fake_firebase):
    response = client.post("/articles", json={
        "title": "  Budget vote delayed ",
        "description": " Parliament postponed the vote. ",
        "authorEmail": " Writer@Example.COM ",
        "publisher": "the daily",
        "tags": ["politics", " economy ", "politics"],
        "image": "https://example.com/budget.jpg",
    })

    assert response.status_code == 201
    data = response.json()
    stored = fake_firebase.docs(ARTICLES)[data["insertedId"]]
    assert stored["title"] == "Budget vote delayed"
    assert stored["description"] == "Parliament postponed the vote."
    assert stored["authorEmail"] == "writer@example.com"
    assert stored["tags"] == ["politics", "economy"]
    assert stored["status"] == "pending"
    assert stored["isPremium"] is False
    assert stored["views"] == 0
    assert stored["image"] == "https://example.com/budget.jpg"
    assert data["article"]["status"] == "pending"


@pytest.mark.parametrize("missing", ["title", "description", "authorEmail"])
def test_submit_article_requires_fields(client, fake_firebase, missing):
    body = {"title": "T", "description": "D", "authorEmail": "a@example.com"}
    body[missing] = "   "

    response = client.post("/articles", json=body)

    assert response.status_code == 400
    assert missing in response.json()["message"]
    assert fake_firebase.docs(ARTICLES) == {}


# --- Listing ---

def test_list_articles_includes_every_status(client, fake_firebase):
    for status in ("pending", "approved", "declined"):
        fake_firebase.seed(ARTICLES, _article(status=status))

    data = client.get("/articles?page=1&limit=2").json()

    assert data["total"] == 3
    assert data["totalPages"] == 2
    assert len(data["articles"]) == 2
    second = client.get("/articles?page=2&limit=2").json()
    statuses = {a["status"] for a in data["articles"] + second["articles"]}
    assert statuses == {"pending", "approved", "declined"}


def test_list_articles_by_author_newest_first(client, fake_firebase):
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    for days in (1, 3, 2):
        fake_firebase.seed(ARTICLES, _article(
            title=f"day {days}", createdAt=base + timedelta(days=days)))
    fake_firebase.seed(ARTICLES, _article(authorEmail="other@example.com"))

    response = client.get("/articles/user", params={"email": "writer@example.com"})

    assert response.status_code == 200
    assert [a["title"] for a in response.json()] == ["day 3", "day 2", "day 1"]


def test_list_approved_filters_by_tags(client, fake_firebase):
    fake_firebase.seed(ARTICLES, _article(title="vote", tags=["politics"]))
    fake_firebase.seed(ARTICLES, _article(title="match", tags=["sports", "local"]))
    fake_firebase.seed(ARTICLES, _article(title="recipe", tags=["food"]))
    fake_firebase.seed(ARTICLES, _article(title="draft", tags=["politics"], status="pending"))
    fake_firebase.seed(ARTICLES, _article(title="rejected", tags=["sports"], status="declined"))

    response = client.get("/articles/approved", params={"tags": "politics,sports"})

    assert response.status_code == 200
    assert sorted(a["title"] for a in response.json()) == ["match", "vote"]


def test_list_approved_search_and_publisher(client, fake_firebase):
    fake_firebase.seed(ARTICLES, _article(title="Election Night Live"))
    fake_firebase.seed(ARTICLES, _article(title="Election recap", publisher="morning post"))
    fake_firebase.seed(ARTICLES, _article(title="Weather"))

    by_search = client.get("/articles/approved", params={"search": "ELECTION"}).json()
    assert sorted(a["title"] for a in by_search) == ["Election Night Live", "Election recap"]

    both = client.get("/articles/approved", params={
        "search": "election", "publisher": "morning post"}).json()
    assert [a["title"] for a in both] == ["Election recap"]


def test_list_approved_rejects_too_many_tags(client):
    tags = ",".join(f"t{i}" for i in range(31))

    assert client.get("/articles/approved", params={"tags": tags}).status_code == 400


def test_trending(client, fake_firebase):
    for views in range(8):
        fake_firebase.seed(ARTICLES, _article(title=f"v{views}", views=views))
    fake_firebase.seed(ARTICLES, _article(title="hidden", status="pending", views=1000))

    default = client.get("/articles/trending").json()
    assert [a["title"] for a in default] == ["v7", "v6", "v5", "v4", "v3", "v2"]

    top_two = client.get("/articles/trending?limit=2").json()
    assert [a["views"] for a in top_two] == [7, 6]


# --- Single article ---

def test_get_article_attaches_publisher_logo(client, fake_firebase):
    fake_firebase.seed(PUBLISHERS, {"name": "the daily", "logoUrl": "https://example.com/d.png"},
                       doc_id="the daily")
    article_id = fake_firebase.seed(ARTICLES, _article())

    response = client.get(f"/articles/{article_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == article_id
    assert data["publisherLogo"] == "https://example.com/d.png"


def test_get_article_with_missing_publisher_has_no_logo(client, fake_firebase):
    article_id = fake_firebase.seed(ARTICLES, _article(publisher="gone gazette"))

    response = client.get(f"/articles/{article_id}")

    assert response.status_code == 200
    assert "publisherLogo" not in response.json()


def test_get_article_not_found(client):
    assert client.get("/articles/missing").status_code == 404


def test_malformed_article_id_is_bad_request(client):
    assert client.get("/articles/__id__").status_code == 400


# --- Views ---

def test_increment_views(client, fake_firebase):
    article_id = fake_firebase.seed(ARTICLES, _article(views=4))

    for _ in range(3):
        assert client.patch(f"/articles/views/{article_id}").status_code == 200

    assert fake_firebase.docs(ARTICLES)[article_id]["views"] == 7


def test_increment_views_unknown_article(client):
    assert client.patch("/articles/views/missing").status_code == 404


# --- Moderation ---

def test_approve_resets_views(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/approve/{pending_article}")

    assert response.status_code == 200
    stored = fake_firebase.docs(ARTICLES)[pending_article]
    assert stored["status"] == "approved"
    assert stored["views"] == 0
    assert isinstance(stored["reviewedAt"], datetime)


def test_declined_article_can_be_approved(client, fake_firebase, pending_article):
    client.patch(f"/articles/decline/{pending_article}", json={"reason": "Needs sources"})
    assert fake_firebase.docs(ARTICLES)[pending_article]["status"] == "declined"

    response = client.patch(f"/articles/approve/{pending_article}")

    assert response.status_code == 200
    assert fake_firebase.docs(ARTICLES)[pending_article]["status"] == "approved"


def test_approve_unknown_article(client):
    assert client.patch("/articles/approve/missing").status_code == 404


def test_decline_article(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/decline/{pending_article}",
                            json={"reason": "  Off topic "})

    assert response.status_code == 200
    stored = fake_firebase.docs(ARTICLES)[pending_article]
    assert stored["status"] == "declined"
    assert stored["declineReason"] == "Off topic"
    assert "reviewedAt" in stored


def test_decline_requires_reason(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/decline/{pending_article}", json={})

    assert response.status_code == 400
    assert fake_firebase.docs(ARTICLES)[pending_article]["status"] == "pending"


def test_set_premium(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/premium/{pending_article}", json={"isPremium": True})

    assert response.status_code == 200
    assert fake_firebase.docs(ARTICLES)[pending_article]["isPremium"] is True

    client.patch(f"/articles/premium/{pending_article}", json={"isPremium": False})
    assert fake_firebase.docs(ARTICLES)[pending_article]["isPremium"] is False


def test_set_premium_requires_flag(client, pending_article):
    assert client.patch(f"/articles/premium/{pending_article}", json={}).status_code == 400


# --- Raw patch / delete ---

def test_generic_patch_normalizes_known_fields(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/{pending_article}", json={
        "title": "  New title ",
        "authorEmail": "NEW@Example.com",
        "image": "https://example.com/new.jpg",
    })

    assert response.status_code == 200
    stored = fake_firebase.docs(ARTICLES)[pending_article]
    assert stored["title"] == "New title"
    assert stored["authorEmail"] == "new@example.com"
    assert stored["image"] == "https://example.com/new.jpg"
    assert "updatedAt" in stored


def test_generic_patch_can_overwrite_moderation_fields(client, fake_firebase, pending_article):
    """Raw field overwrite bypasses the moderation endpoints (no reviewedAt, no view reset)."""
    response = client.patch(f"/articles/{pending_article}", json={
        "status": "approved",
        "views": 999,
        "isPremium": True,
    })

    assert response.status_code == 200
    stored = fake_firebase.docs(ARTICLES)[pending_article]
    assert stored["status"] == "approved"
    assert stored["views"] == 999
    assert stored["isPremium"] is True
    assert "reviewedAt" not in stored


def test_generic_patch_unknown_article(client):
    assert client.patch("/articles/missing", json={"title": "x"}).status_code == 404


def test_delete_article(client, fake_firebase, pending_article):
    response = client.delete(f"/articles/{pending_article}")

    assert response.status_code == 200
    assert pending_article not in fake_firebase.docs(ARTICLES)
    assert client.delete(f"/articles/{pending_article}").status_code == 404


def test_generic_patch_rejects_values_of_the_wrong_type(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/{pending_article}", json={"views": "many"})

    assert response.status_code == 400
    assert "views" in response.json()["message"]
    assert fake_firebase.docs(ARTICLES)[pending_article]["views"] == 17
    assert client.get("/articles").status_code == 200


def test_generic_patch_coerces_typed_fields(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/{pending_article}", json={
        "views": "5",
        "reviewedAt": "2024-03-01T12:00:00Z",
    })

    assert response.status_code == 200
    stored = fake_firebase.docs(ARTICLES)[pending_article]
    assert stored["views"] == 5
    assert stored["reviewedAt"] == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    data = client.get(f"/articles/{pending_article}").json()
    assert data["views"] == 5
    assert data["reviewedAt"].startswith("2024-03-01T12:00:00")


def test_generic_patch_rejects_unknown_status(client, fake_firebase, pending_article):
    response = client.patch(f"/articles/{pending_article}", json={"status": "published"})

    assert response.status_code == 400
    assert fake_firebase.docs(ARTICLES)[pending_article]["status"] == "pending"


@pytest.mark.parametrize("field", ["a/b", "", "tags[0]", "x*", "a..b", ".a", "~x"])
def test_generic_patch_rejects_invalid_field_names(client, fake_firebase, pending_article, field):
    response = client.patch(f"/articles/{pending_article}", json={field: 1})

    assert response.status_code == 400
    assert field not in fake_firebase.docs(ARTICLES)[pending_article]


def test_escape_hatch_writes_read_back_in_every_listing(client, fake_firebase, pending_article):
    client.patch(f"/articles/{pending_article}", json={
        "status": "approved",
        "views": 42,
        "isPremium": True,
        "image": "https://example.com/x.jpg",
    })

    listed = client.get("/articles").json()["articles"]
    approved = client.get("/articles/approved").json()
    trending = client.get("/articles/trending").json()
    single = client.get(f"/articles/{pending_article}").json()

    for articles in (listed, approved, trending):
        assert [a["id"] for a in articles] == [pending_article]
    assert single["views"] == 42
    assert single["isPremium"] is True
    assert single["image"] == "https://example.com/x.jpg"


def test_stored_bad_value_does_not_break_listings(client, fake_firebase):
    """A document written outside the API with a mistyped field still loads."""
    bad_id = fake_firebase.seed(ARTICLES, _article(title="legacy", views="many"))
    fake_firebase.seed(ARTICLES, _article(title="fine", views=3))

    response = client.get("/articles")

    assert response.status_code == 200
    titles = {a["title"] for a in response.json()["articles"]}
    assert titles == {"legacy", "fine"}
    assert client.get(f"/articles/{bad_id}").json()["views"] == 0


def test_submit_article_rejects_mistyped_extra_field(client, fake_firebase):
    response = client.post("/articles", json={
        "title": "T",
        "description": "D",
        "authorEmail": "a@example.com",
        "reviewedAt": "yesterday",
    })

    assert response.status_code == 400
    assert fake_firebase.docs(ARTICLES) == {}


def test_list_user_articles_requires_email(client):
    response = client.get("/articles/user")

    assert response.status_code == 400
    assert response.json()["message"] == "Email is required"


def test_list_approved_limit(client, fake_firebase):
    for i in range(5):
        fake_firebase.seed(ARTICLES, _article(title=f"story {i}"))

    assert len(client.get("/articles/approved?limit=2").json()) == 2
    assert len(client.get("/articles/approved").json()) == 5


def test_list_approved_search_scans_in_batches(client, fake_firebase, monkeypatch):
    from app.api.routes import articles as articles_routes

    monkeypatch.setattr(articles_routes, "APPROVED_SCAN_BATCH", 3)
    for i in range(10):
        title = f"Election {i}" if i % 2 else f"Weather {i}"
        fake_firebase.seed(ARTICLES, _article(title=title))

    everything = client.get("/articles/approved", params={"search": "election"}).json()
    assert len(everything) == 5

    fake_firebase.queries.clear()
    first_two = client.get("/articles/approved", params={"search": "election", "limit": 2}).json()
    assert len(first_two) == 2
    assert all(q["limit"] == 3 for q in fake_firebase.queries)
    assert len(fake_firebase.queries) < 4
