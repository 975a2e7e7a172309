"""
StoreHub Backend: HTTP Route Tests
===================================

What:  End-to-end requests through create_app() with httpx.AsyncClient.
How:   The app is bound to the per-test SQLite database and upload dir.
       Page routes render through JSONViewRenderer, so responses are JSON
       bodies naming the view. Redirects are not followed; the flash cookie
       on the 303 is decoded with CookieFlashMessenger.

What we test:
    ✅ Add form and submissions require a signed-in user
    ✅ POST /add creates the store, stores the resized photo, flashes success
    ✅ Invalid input and disallowed files flash an error and redirect back
    ✅ Photos are only stored once the store exists and the user owns it
    ✅ Editing is owner-only (redirect for pages, 403 for JSON clients)
    ✅ Detail, tag and hearts pages; unknown slug renders notFound (404)
    ✅ /api/stores/near, /api/search, /api/stores/{id}/heart
    ✅ Uploaded photos are served; missing files 404
    ✅ /health reports on the app's own database and upload directory
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from storehub.database import build_engine, build_session_factory
from storehub.models import Store
from storehub.views import FLASH_COOKIE, CookieFlashMessenger


def flashes_of(response):
    raw = response.cookies.get(FLASH_COOKIE)
    assert raw, "expected a flash cookie on the response"
    return CookieFlashMessenger().decode(raw)


async def create_via_repository(app, author, name: str, **extra):
    data = {"name": name, "description": f"{name} description"}
    data.update(extra)
    return await app.state.store_repository.create(data, author_id=author.id)


class TestAddStore:

    @pytest.mark.asyncio
    async def test_add_form_requires_user(self, test_client):
        response = await test_client.get("/add")

        assert response.status_code == 303
        assert response.headers["location"] == "/"
        assert flashes_of(response) == [
            {"severity": "error", "message": "You must be logged in to do that!"}
        ]

    @pytest.mark.asyncio
    async def test_add_form_renders(self, test_client, author, as_user):
        response = await test_client.get("/add", headers=as_user(author))

        assert response.status_code == 200
        assert response.json()["view"] == "editStore"

    @pytest.mark.asyncio
    async def test_create_with_photo(self, app, test_client, author, as_user, upload_dir, make_image):
        response = await test_client.post(
            "/add",
            headers=as_user(author),
            data={
                "name": "Bagel Bros",
                "description": "Hand rolled",
                "tags": ["Wifi", "Family Friendly"],
                "address": "1 Front St",
                "lng": "-79.38",
                "lat": "43.65",
            },
            files={"photo": ("bagels.png", make_image(1600, 1200), "image/png")},
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/store/bagel-bros"
        assert flashes_of(response) == [
            {
                "severity": "success",
                "message": "Successfully created Bagel Bros. Care to leave a review?",
            }
        ]

        store = await app.state.store_repository.get_by_slug("bagel-bros")
        assert sorted(store.tags) == ["Family Friendly", "Wifi"]
        assert store.photo.endswith(".png")
        with Image.open(upload_dir / store.photo) as stored:
            assert stored.size == (800, 600)

    @pytest.mark.asyncio
    async def test_create_without_photo_uses_default(self, app, test_client, author, as_user):
        response = await test_client.post(
            "/add", headers=as_user(author), data={"name": "Plain Shop"}
        )

        assert response.status_code == 303
        store = await app.state.store_repository.get_by_slug("plain-shop")
        assert store.photo == "store.png"

    @pytest.mark.asyncio
    async def test_create_missing_name_redirects_back(self, app, test_client, author, as_user):
        response = await test_client.post(
            "/add",
            headers={**as_user(author), "Referer": "http://test/add"},
            data={"description": "no name"},
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/add"
        assert flashes_of(response) == [
            {"severity": "error", "message": "Please enter a store name!"}
        ]
        assert await app.state.store_repository.list_all() == []

    @pytest.mark.asyncio
    async def test_foreign_referer_ignored(self, test_client, author, as_user):
        response = await test_client.post(
            "/add",
            headers={**as_user(author), "Referer": "http://evil.example/phish"},
            data={"description": "no name"},
        )

        assert response.headers["location"] == "/"

    @pytest.mark.asyncio
    async def test_create_rejects_non_image(self, app, test_client, author, as_user, upload_dir):
        response = await test_client.post(
            "/add",
            headers=as_user(author),
            data={"name": "Text Shop"},
            files={"photo": ("notes.txt", b"just text", "text/plain")},
        )

        assert response.status_code == 303
        assert flashes_of(response)[0]["message"] == "That filetype isn't allowed!"
        assert await app.state.store_repository.list_all() == []
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_create_rejects_unsafe_image_subtype(
        self, app, test_client, author, as_user, upload_dir, make_image
    ):
        response = await test_client.post(
            "/add",
            headers=as_user(author),
            data={"name": "Sneaky Shop"},
            files={"photo": ("x.png", make_image(10, 10), "image/png/../x")},
        )

        assert response.status_code == 303
        assert flashes_of(response)[0]["message"] == "That filetype isn't allowed!"
        assert await app.state.store_repository.list_all() == []
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_json_client_gets_400(self, test_client, author, as_user):
        response = await test_client.post(
            "/add",
            headers={**as_user(author), "Accept": "application/json"},
            data={"name": "Half", "lng": "10"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "You must supply coordinates!"


class TestEditStore:

    @pytest.mark.asyncio
    async def test_owner_sees_form(self, app, test_client, author, as_user):
        store = await create_via_repository(app, author, "Mine")

        response = await test_client.get(f"/stores/{store.id}/edit", headers=as_user(author))

        assert response.status_code == 200
        body = response.json()
        assert body["view"] == "editStore"
        assert body["store"]["slug"] == "mine"

    @pytest.mark.asyncio
    async def test_non_owner_redirected(self, app, test_client, author, visitor, as_user):
        store = await create_via_repository(app, author, "Mine")

        response = await test_client.get(f"/stores/{store.id}/edit", headers=as_user(visitor))

        assert response.status_code == 303
        assert flashes_of(response) == [
            {"severity": "error", "message": "You must own a store in order to edit it!"}
        ]

    @pytest.mark.asyncio
    async def test_non_owner_json_403(self, app, test_client, author, visitor, as_user):
        store = await create_via_repository(app, author, "Mine")

        response = await test_client.get(
            f"/stores/{store.id}/edit",
            headers={**as_user(visitor), "Accept": "application/json"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "authorization_error"

    @pytest.mark.asyncio
    async def test_update_by_owner(self, app, test_client, author, as_user):
        store = await create_via_repository(app, author, "Old Name", tags=["Wifi"])

        response = await test_client.post(
            f"/add/{store.id}",
            headers=as_user(author),
            data={"name": "New Name", "description": "Fresh"},
        )

        assert response.status_code == 303
        assert response.headers["location"] == f"/stores/{store.id}/edit"
        assert flashes_of(response)[0]["message"] == (
            "Successfully updated New Name. View it at /store/new-name"
        )
        updated = await app.state.store_repository.get_by_id(store.id)
        assert updated.slug == "new-name"
        assert updated.tags == ["Wifi"]

    @pytest.mark.asyncio
    async def test_update_by_non_owner(self, app, test_client, author, visitor, as_user):
        store = await create_via_repository(app, author, "Mine")

        response = await test_client.post(
            f"/add/{store.id}", headers=as_user(visitor), data={"name": "Stolen"}
        )

        assert response.status_code == 303
        assert flashes_of(response)[0]["severity"] == "error"
        unchanged = await app.state.store_repository.get_by_id(store.id)
        assert unchanged.name == "Mine"

    @pytest.mark.asyncio
    async def test_non_owner_photo_never_stored(
        self, app, test_client, author, visitor, as_user, upload_dir, make_image
    ):
        store = await create_via_repository(app, author, "Mine")

        response = await test_client.post(
            f"/add/{store.id}",
            headers=as_user(visitor),
            data={"name": "Stolen"},
            files={"photo": ("big.png", make_image(1600, 1200), "image/png")},
        )

        assert response.status_code == 303
        assert flashes_of(response) == [
            {"severity": "error", "message": "You must own a store in order to edit it!"}
        ]
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unknown_store_photo_never_stored(
        self, test_client, author, as_user, upload_dir, make_image
    ):
        response = await test_client.post(
            f"/add/{uuid.uuid4()}",
            headers={**as_user(author), "Accept": "application/json"},
            data={"name": "Ghost"},
            files={"photo": ("ghost.png", make_image(20, 20), "image/png")},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert list(upload_dir.iterdir()) == []


class TestPages:

    @pytest.mark.asyncio
    async def test_store_list(self, app, test_client, author):
        await create_via_repository(app, author, "One")
        await create_via_repository(app, author, "Two")

        for path in ["/", "/stores"]:
            response = await test_client.get(path)
            body = response.json()
            assert body["view"] == "stores"
            assert [s["name"] for s in body["stores"]] == ["Two", "One"]

    @pytest.mark.asyncio
    async def test_store_detail(self, app, test_client, author):
        await create_via_repository(app, author, "Detail", lng="-79.38", lat="43.65")

        response = await test_client.get("/store/detail")

        assert response.status_code == 200
        body = response.json()
        assert body["view"] == "store"
        assert body["store"]["author"]["name"] == "Wes"
        assert body["store"]["location"]["coordinates"] == [-79.38, 43.65]
        assert body["flashes"] == []

    @pytest.mark.asyncio
    async def test_unknown_slug_renders_not_found(self, test_client):
        response = await test_client.get("/store/nowhere")

        assert response.status_code == 404
        assert response.json()["view"] == "notFound"

    @pytest.mark.asyncio
    async def test_tags_page(self, app, test_client, author):
        await create_via_repository(app, author, "One", tags=["Wifi", "Vegan"])
        await create_via_repository(app, author, "Two", tags=["Wifi"])

        response = await test_client.get("/tags/Vegan")

        body = response.json()
        assert body["view"] == "tag"
        assert body["tag"] == "Vegan"
        assert [s["name"] for s in body["stores"]] == ["One"]
        assert body["tags"] == [{"tag": "Wifi", "count": 2}, {"tag": "Vegan", "count": 1}]

    @pytest.mark.asyncio
    async def test_hearts_page(self, app, test_client, author, visitor, as_user):
        loved = await create_via_repository(app, author, "Loved")
        await create_via_repository(app, author, "Ignored")
        await app.state.user_repository.toggle_favorite(visitor.id, loved.id)

        response = await test_client.get("/hearts", headers=as_user(visitor))

        assert [s["name"] for s in response.json()["stores"]] == ["Loved"]

    @pytest.mark.asyncio
    async def test_flash_delivered_once(self, test_client, author, as_user):
        created = await test_client.post(
            "/add", headers=as_user(author), data={"name": "Flashy"}
        )
        cookie = created.cookies.get(FLASH_COOKIE)

        test_client.cookies.set(FLASH_COOKIE, cookie)
        page = await test_client.get("/store/flashy")

        assert page.json()["flashes"][0]["severity"] == "success"
        # Delivered flashes are cleared on the rendering response
        assert "Max-Age=0" in page.headers["set-cookie"]


class TestApi:

    @pytest.mark.asyncio
    async def test_near(self, app, test_client, author):
        await create_via_repository(app, author, "Close", lng="-79.38", lat="43.651")
        await create_via_repository(app, author, "Closer", lng="-79.38", lat="43.6501")
        await create_via_repository(app, author, "Far", lng="-79.38", lat="44.5")

        response = await test_client.get("/api/stores/near", params={"lng": -79.38, "lat": 43.65})

        assert response.status_code == 200
        body = response.json()
        assert [s["name"] for s in body] == ["Closer", "Close"]
        assert set(body[0]) == {"slug", "name", "description", "location", "photo"}

    @pytest.mark.asyncio
    async def test_near_out_of_range(self, test_client):
        response = await test_client.get("/api/stores/near", params={"lng": 0, "lat": 91})

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_search(self, app, test_client, author):
        store = Store(
            id=uuid.uuid4(),
            name="Coffee Corner",
            slug="coffee-corner",
            description="Espresso",
            photo="store.png",
            author_id=author.id,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        app.state.store_repository = AsyncMock()
        app.state.store_repository.search_by_text.return_value = [(store, 0.61)]

        response = await test_client.get("/api/search", params={"q": "coffee"})

        assert response.status_code == 200
        body = response.json()
        assert body[0]["slug"] == "coffee-corner"
        assert body[0]["score"] == pytest.approx(0.61)
        app.state.store_repository.search_by_text.assert_awaited_once_with("coffee")

    @pytest.mark.asyncio
    async def test_search_blank_query(self, test_client):
        response = await test_client.get("/api/search")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_heart_toggle(self, app, test_client, author, visitor, as_user):
        store = await create_via_repository(app, author, "Loved")

        first = await test_client.post(f"/api/stores/{store.id}/heart", headers=as_user(visitor))
        second = await test_client.post(f"/api/stores/{store.id}/heart", headers=as_user(visitor))

        assert first.status_code == 200
        assert first.json()["hearts"] == [str(store.id)]
        assert second.json()["hearts"] == []

    @pytest.mark.asyncio
    async def test_heart_requires_user(self, app, test_client, author):
        store = await create_via_repository(app, author, "Loved")

        response = await test_client.post(f"/api/stores/{store.id}/heart")

        assert response.status_code == 403
        assert response.json()["message"] == "You must be logged in to do that!"

    @pytest.mark.asyncio
    async def test_heart_unknown_store(self, test_client, visitor, as_user):
        response = await test_client.post(
            "/api/stores/00000000-0000-4000-8000-000000000000/heart",
            headers=as_user(visitor),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestUploadsAndHealth:

    @pytest.mark.asyncio
    async def test_serves_uploaded_photo(self, test_client, upload_dir, make_image):
        (upload_dir / "shop.png").write_bytes(make_image(8, 8))

        response = await test_client.get("/uploads/shop.png")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_missing_photo(self, test_client):
        response = await test_client.get(
            "/uploads/missing.png", headers={"Accept": "application/json"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_health_checks_the_apps_upload_dir(self, test_client, upload_dir):
        upload_dir.rmdir()

        response = await test_client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["upload_dir"] == "unwritable"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_health_checks_the_apps_database(self, tmp_path, upload_dir):
        from storehub.main import create_app

        # The parent directory does not exist, so SQLite cannot open the file
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'storehub.db'}")
        app = create_app(session_factory=build_session_factory(engine), upload_dir=str(upload_dir))
        try:
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                response = await client.get("/health")
        finally:
            await engine.dispose()

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
        assert response.json()["upload_dir"] == "writable"
