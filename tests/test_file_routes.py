"""
API tests for /files routes: uploads, signed URLs and cache housekeeping.
"""

from conftest import T0
from storage.storage_config import DEFAULT_PROFILE_PICTURE_KEY, MAX_FILE_SIZE


def _image(name="photo.jpg", content_type="image/jpeg", data=b"\xff\xd8\xff\xe0jpeg"):
    return {"file": (name, data, content_type)}


class TestSignedUrls:
    def test_requires_token(self, client):
        assert client.get("/files/a.jpg/signed-url").status_code == 401

    def test_repeated_requests_hit_cache(self, client, user_headers, provider):
        first = client.get("/files/products/images/p1-1.jpg/signed-url", headers=user_headers)
        second = client.get("/files/products/images/p1-1.jpg/signed-url", headers=user_headers)

        assert first.status_code == 200
        assert first.json() == {
            "key": "products/images/p1-1.jpg",
            "url": "https://storage.test/products/images/p1-1.jpg?sig=1",
        }
        assert second.json() == first.json()
        assert provider.sign_calls == [("products/images/p1-1.jpg", 3600)]

    def test_refresh_forces_new_signature(self, client, user_headers, provider):
        client.get("/files/a.jpg/signed-url", headers=user_headers)

        response = client.get("/files/a.jpg/signed-url", params={"refresh": "true"}, headers=user_headers)

        assert response.json()["url"].endswith("sig=2")
        assert len(provider.sign_calls) == 2

    def test_signing_failure_returns_500(self, client, user_headers, provider):
        provider.fail_sign = True

        response = client.get("/files/a.jpg/signed-url", headers=user_headers)

        assert response.status_code == 500
        assert response.json() == {
            "message": "Error generating signed URL",
            "error": "Failed to generate signed URL",
        }

    def test_default_profile_picture(self, client, user_headers):
        response = client.get("/files/default-profile-picture", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["key"] == DEFAULT_PROFILE_PICTURE_KEY


class TestUploads:
    def test_upload_profile_picture(self, client, user_headers, provider):
        response = client.post("/files/profile-picture", files=_image(), headers=user_headers)

        assert response.status_code == 200
        key = f"users/profile-pictures/user-1-{T0}.jpg"
        assert response.json()["key"] == key
        assert provider.objects[key][1] == "image/jpeg"

    def test_upload_replaces_previous_picture(self, client, user_headers, provider):
        provider.objects["users/profile-pictures/user-1-1.jpg"] = (b"old", "image/jpeg")

        response = client.post(
            "/files/profile-picture",
            files=_image(),
            data={"previous_key": "users/profile-pictures/user-1-1.jpg"},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert provider.delete_calls == ["users/profile-pictures/user-1-1.jpg"]

    def test_upload_product_image(self, client, user_headers, provider):
        response = client.post(
            "/files/products/p7/image",
            files=_image("shot.png", "image/png", b"\x89PNG"),
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["key"] == f"products/images/p7-{T0}.png"

    def test_invalid_type_is_rejected(self, client, user_headers, provider):
        response = client.post(
            "/files/profile-picture",
            files=_image("anim.gif", "image/gif", b"GIF89a"),
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid file type. Allowed types: image/jpeg, image/png"}
        assert provider.objects == {}

    def test_foreign_previous_key_is_not_deleted(self, client, user_headers, provider):
        provider.objects["products/images/p9-1.jpg"] = (b"img", "image/jpeg")
        assert client.delete("/files/products/images/p9-1.jpg", headers=user_headers).status_code == 403

        response = client.post(
            "/files/profile-picture",
            files=_image(),
            data={"previous_key": "products/images/p9-1.jpg"},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert provider.delete_calls == []
        assert list(provider.objects) == ["products/images/p9-1.jpg"]

    def test_other_users_picture_is_not_deleted(self, client, user_headers, provider):
        provider.objects["users/profile-pictures/user-2-1.jpg"] = (b"img", "image/jpeg")

        response = client.post(
            "/files/profile-picture",
            files=_image(),
            data={"previous_key": "users/profile-pictures/user-2-1.jpg"},
            headers=user_headers,
        )

        assert response.status_code == 400
        assert "users/profile-pictures/user-2-1.jpg" in provider.objects

    def test_oversized_upload_is_rejected(self, client, user_headers, provider):
        response = client.post(
            "/files/products/p7/image",
            files=_image(data=b"\xff" * (MAX_FILE_SIZE + 1)),
            headers=user_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"message": "File too large. Maximum size: 2MB"}
        assert provider.objects == {}

    def test_upload_failure_returns_500(self, client, user_headers, provider):
        provider.fail_upload = True

        response = client.post("/files/products/p7/image", files=_image(), headers=user_headers)

        assert response.status_code == 500
        assert response.json()["message"] == "Error uploading product image"


class TestAdminOperations:
    def test_delete_requires_admin(self, client, user_headers):
        assert client.delete("/files/a.jpg", headers=user_headers).status_code == 403

    def test_delete_evicts_cached_url(self, client, user_headers, admin_headers, provider, url_cache):
        client.get("/files/a.jpg/signed-url", headers=user_headers)

        response = client.delete("/files/a.jpg", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "File deleted", "key": "a.jpg"}
        assert provider.delete_calls == ["a.jpg"]
        assert url_cache.get_entry("a.jpg") is None

    def test_cache_status_and_clean(self, client, user_headers, admin_headers, clock):
        client.get("/files/a.jpg/signed-url", headers=user_headers)
        clock.advance(3600 * 1000)
        client.get("/files/b.jpg/signed-url", headers=user_headers)

        assert client.get("/files/cache/status", headers=admin_headers).json() == {"size": 2}

        response = client.post("/files/cache/clean", headers=admin_headers)

        assert response.json() == {"removed": 1, "size": 1}
