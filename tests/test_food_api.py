import io
from datetime import datetime, timedelta

from Models.foodPostModel import FoodPost, ImageMetadata
from Utils.appError import InvalidRequest
from tests.base import ApiTestCase, png_bytes


def listing_payload(**overrides):
    payload = {
        "name": "Sourdough loaf",
        "description": "Baked this morning, one loaf left",
        "category": "Baked Goods",
        "condition": "Fresh",
        "expiryDate": (datetime.utcnow() + timedelta(days=2)).strftime("%Y-%m-%d"),
        "location": "Downtown Toronto",
        "quantity": "1 loaf",
    }
    payload.update(overrides)
    return payload


class CreateFoodPostTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user("baker", location="Toronto", bio="I bake")

    def test_create_from_json(self):
        resp = self.client.post("/api/food", json=listing_payload(
            coordinates={"latitude": 43.65, "longitude": -79.38}
        ), headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 201)
        data = resp.get_json()
        self.assertEqual(data["name"], "Sourdough loaf")
        self.assertEqual(data["user"]["username"], "baker")
        self.assertEqual(data["user"]["bio"], "I bake")
        self.assertTrue(data["isAvailable"])
        self.assertFalse(data["isExpired"])
        self.assertEqual(data["coordinates"], {"latitude": 43.65, "longitude": -79.38})
        self.assertEqual(data["imageUrl"], "")
        self.assertEqual(FoodPost.objects.count(), 1)

    def test_missing_fields_are_listed(self):
        resp = self.client.post("/api/food", json={"name": "Bread"}, headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 400)
        errors = resp.get_json()["errors"]
        self.assertIn("category is required", errors)
        self.assertIn("expiryDate is required", errors)

    def test_invalid_enum_and_date(self):
        bad_category = self.client.post(
            "/api/food", json=listing_payload(category="Candy"), headers=self.auth(self.owner)
        )
        self.assertEqual(bad_category.status_code, 400)
        self.assertTrue(any(e.startswith("category") for e in bad_category.get_json()["errors"]))

        bad_date = self.client.post(
            "/api/food", json=listing_payload(expiryDate="next tuesday"), headers=self.auth(self.owner)
        )
        self.assertEqual(bad_date.status_code, 400)
        self.assertEqual(bad_date.get_json()["message"], "Invalid date format for expiryDate")

    def test_create_with_image_stores_media_metadata(self):
        form = listing_payload(coordinates='{"latitude": 43.7, "longitude": -79.4}')
        form["image"] = (io.BytesIO(png_bytes()), "loaf.png", "image/png")
        resp = self.client.post(
            "/api/food", data=form, content_type="multipart/form-data", headers=self.auth(self.owner)
        )
        self.assertEqual(resp.status_code, 201)
        data = resp.get_json()
        self.assertEqual(self.media.uploaded, ["loaf.png"])
        self.assertEqual(data["imageUrl"], "https://res.cloudinary.com/demo/image/upload/food_1.jpg")
        self.assertEqual(data["imageMetadata"], {
            "publicId": "wasteless/food/food_1", "width": 800, "height": 600, "format": "jpg", "size": 2048
        })
        self.assertEqual(data["coordinates"]["latitude"], 43.7)

    def test_failed_upload_creates_nothing(self):
        self.media.error = InvalidRequest("Image upload failed: boom")
        form = listing_payload()
        form["image"] = (io.BytesIO(png_bytes()), "loaf.png", "image/png")
        resp = self.client.post(
            "/api/food", data=form, content_type="multipart/form-data", headers=self.auth(self.owner)
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()["message"], "Image upload failed: boom")
        self.assertEqual(FoodPost.objects.count(), 0)

    def test_requires_token(self):
        resp = self.client.post("/api/food", json=listing_payload())
        self.assertEqual(resp.status_code, 401)

    def test_non_object_json_body(self):
        resp = self.client.post("/api/food", json=["Bread"], headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(FoodPost.objects.count(), 0)


class FeedVisibilityTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user("owner")
        self.viewer = self.make_user("viewer")
        self.live = self.make_post(self.owner, name="Apples")
        self.expired = self.make_post(self.owner, name="Yogurt", category="Dairy", expires_in=timedelta(days=-1))
        self.taken = self.make_post(self.owner, name="Carrots", category="Vegetables", is_available=False)

    def names(self, resp):
        return sorted(p["name"] for p in resp.get_json()["foodPosts"])

    def test_anonymous_feed_hides_expired_and_unavailable(self):
        resp = self.client.get("/api/food")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.names(resp), ["Apples"])
        self.assertEqual(resp.get_json()["userType"], "public")

    def test_anonymous_min_expiry_cannot_widen_visibility(self):
        past = (datetime.utcnow() - timedelta(days=10)).isoformat()
        resp = self.client.get(f"/api/food?minExpiryDate={past}")
        self.assertEqual(self.names(resp), ["Apples"])

    def test_authenticated_feed_sees_everything(self):
        resp = self.client.get("/api/food", headers=self.auth(self.viewer))
        self.assertEqual(self.names(resp), ["Apples", "Carrots", "Yogurt"])
        self.assertEqual(resp.get_json()["userType"], "authenticated")
        expired = next(p for p in resp.get_json()["foodPosts"] if p["name"] == "Yogurt")
        self.assertTrue(expired["isExpired"])

    def test_invalid_token_falls_back_to_public(self):
        resp = self.client.get("/api/food", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.names(resp), ["Apples"])


class FeedFilterTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user("owner")
        self.make_post(self.owner, name="Green Apples", location="North York", expires_in=timedelta(days=1))
        self.make_post(self.owner, name="Rye Bread", category="Baked Goods", location="Etobicoke",
                       description="Dense and dark", expires_in=timedelta(days=5))
        self.make_post(self.owner, name="Milk", category="Dairy", location="north bay",
                       description="Unopened apple-flavoured milk", expires_in=timedelta(days=9))

    def names(self, query):
        resp = self.client.get(f"/api/food?{query}")
        self.assertEqual(resp.status_code, 200)
        return [p["name"] for p in resp.get_json()["foodPosts"]]

    def test_category_is_exact(self):
        self.assertEqual(self.names("category=Dairy"), ["Milk"])
        self.assertEqual(self.names("category=dairy"), [])

    def test_location_is_case_insensitive_substring(self):
        self.assertEqual(sorted(self.names("location=NORTH")), ["Green Apples", "Milk"])

    def test_search_covers_name_and_description(self):
        self.assertEqual(sorted(self.names("search=apple")), ["Green Apples", "Milk"])

    def test_expiry_range(self):
        low = (datetime.utcnow() + timedelta(days=3)).isoformat()
        high = (datetime.utcnow() + timedelta(days=7)).isoformat()
        self.assertEqual(self.names(f"minExpiryDate={low}&maxExpiryDate={high}"), ["Rye Bread"])

    def test_sort_and_pagination(self):
        self.assertEqual(self.names("sortBy=expiryDate&sortOrder=asc"), ["Green Apples", "Rye Bread", "Milk"])
        resp = self.client.get("/api/food?sortBy=name&sortOrder=asc&limit=2&page=2").get_json()
        self.assertEqual([p["name"] for p in resp["foodPosts"]], ["Rye Bread"])
        self.assertEqual(resp["pagination"], {
            "currentPage": 2, "totalPages": 2, "totalItems": 3, "itemsPerPage": 2
        })

    def test_unknown_sort_field(self):
        self.assertEqual(self.client.get("/api/food?sortBy=password").status_code, 400)


class SingleFoodPostTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user("owner", location="Toronto", bio="Gardener")
        self.other = self.make_user("other")
        self.post = self.make_post(self.owner, image_url="https://img/old.jpg")

    def test_get_by_id_includes_owner_details(self):
        data = self.client.get(f"/api/food/{self.post.id}").get_json()
        self.assertEqual(data["id"], str(self.post.id))
        self.assertEqual(data["user"]["location"], "Toronto")
        self.assertEqual(data["user"]["bio"], "Gardener")

    def test_get_unknown_or_malformed_id(self):
        self.assertEqual(self.client.get("/api/food/64b7f0c2a1b2c3d4e5f60718").status_code, 404)
        self.assertEqual(self.client.get("/api/food/nope").status_code, 404)

    def test_owner_can_update(self):
        resp = self.client.put(f"/api/food/{self.post.id}", json={
            "name": "Red Apples", "isAvailable": False, "description": ""
        }, headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["name"], "Red Apples")
        self.assertFalse(data["isAvailable"])
        self.assertEqual(data["description"], "Fresh apples from the garden")

    def test_update_with_new_image_replaces_remote_image(self):
        self.post.image_metadata = ImageMetadata(public_id="wasteless/food/old")
        self.post.save()
        resp = self.client.put(
            f"/api/food/{self.post.id}",
            data={"image": (io.BytesIO(png_bytes()), "new.png", "image/png")},
            content_type="multipart/form-data",
            headers=self.auth(self.owner)
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["imageUrl"], "https://res.cloudinary.com/demo/image/upload/food_1.jpg")
        self.assertEqual(self.media.deleted, ["wasteless/food/old"])

    def test_pasted_image_url_drops_hosted_metadata(self):
        self.post.image_metadata = ImageMetadata(public_id="wasteless/food/old", width=800, height=600)
        self.post.save()
        resp = self.client.put(f"/api/food/{self.post.id}", json={"imageUrl": "https://elsewhere/new.jpg"},
                               headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 200)
        data = resp.get_json()
        self.assertEqual(data["imageUrl"], "https://elsewhere/new.jpg")
        self.assertIsNone(data["imageMetadata"])
        self.assertEqual(self.media.deleted, ["wasteless/food/old"])

    def test_unchanged_image_url_keeps_metadata(self):
        self.post.image_metadata = ImageMetadata(public_id="wasteless/food/old")
        self.post.save()
        resp = self.client.put(f"/api/food/{self.post.id}", json={"name": "Pears"}, headers=self.auth(self.owner))
        self.assertEqual(resp.get_json()["imageMetadata"]["publicId"], "wasteless/food/old")
        self.assertEqual(self.media.deleted, [])

    def test_non_owner_cannot_update_or_delete(self):
        update = self.client.put(f"/api/food/{self.post.id}", json={"name": "Mine"}, headers=self.auth(self.other))
        self.assertEqual(update.status_code, 401)
        self.assertEqual(update.get_json()["message"], "Not authorized to update this food post")

        delete = self.client.delete(f"/api/food/{self.post.id}", headers=self.auth(self.other))
        self.assertEqual(delete.status_code, 401)
        self.assertEqual(FoodPost.objects(name="Apples").count(), 1)

    def test_owner_delete_is_permanent(self):
        resp = self.client.delete(f"/api/food/{self.post.id}", headers=self.auth(self.owner))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["message"], "Food post removed")
        self.assertEqual(self.client.get(f"/api/food/{self.post.id}").status_code, 404)


class OwnerListingTests(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.owner = self.make_user("owner")
        self.other = self.make_user("other")
        self.make_post(self.owner, name="Apples")
        self.make_post(self.owner, name="Pears", is_available=False)
        self.make_post(self.other, name="Milk", category="Dairy")

    def test_user_posts_only_available(self):
        data = self.client.get(f"/api/food/user/{self.owner.id}").get_json()
        self.assertEqual([p["name"] for p in data], ["Apples"])

    def test_categories_in_use(self):
        self.assertEqual(self.client.get("/api/food/categories").get_json(), ["Dairy", "Fruits"])

    def test_my_posts(self):
        resp = self.client.get("/api/food/my-posts?sortBy=name&sortOrder=asc", headers=self.auth(self.owner))
        self.assertEqual([p["name"] for p in resp.get_json()["foodPosts"]], ["Apples", "Pears"])

        unavailable = self.client.get("/api/food/my-posts?isAvailable=false", headers=self.auth(self.owner))
        self.assertEqual([p["name"] for p in unavailable.get_json()["foodPosts"]], ["Pears"])

        self.assertEqual(self.client.get("/api/food/my-posts").status_code, 401)
