"""Tests for PostService using mockfirestore and an in-memory bucket."""

from __future__ import annotations

import datetime
import unittest
from unittest.mock import MagicMock, patch

from google.api_core import exceptions as api_exceptions
from mockfirestore import CollectionReference, MockFirestore

from photogroup.errors import NotFoundError, StoreWriteError, UploadError, ValidationError
from photogroup.feed import is_unlocked
from photogroup.media.models import UploadConfig
from photogroup.post.services import PostService
from photogroup.stats.services import StatisticsService
from photogroup.user.cache import ProfileCache
from tests.conftest import FakeBucket, mock_firestore_module, patch_mockfirestore, png_data_uri

CONFIG = UploadConfig(file_retry_delay=0)


class PostServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patch_mockfirestore()
        self.db = MockFirestore()
        self.bucket = FakeBucket()
        self.cache = ProfileCache()
        self.cache.save(
            {"id": "u1", "name": "Alice", "groups": ["g1"], "groupsPosted": [], "totalPosts": 0}
        )
        self.db.collection("users").document("u1").set({"name": "Alice", "totalPosts": 0})
        for group_id in ("g1", "g2"):
            self.db.collection("groups").document(group_id).set(
                {"name": group_id, "members": ["u1"], "memberCount": 1, "totalPosts": 0}
            )

        self.firestore = mock_firestore_module()
        for target in (
            "photogroup.post.store.firestore",
            "photogroup.post.services.firestore",
            "photogroup.group.services.firestore",
            "photogroup.stats.services.firestore",
        ):
            patcher = patch(target, new=self.firestore)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _create(self, **overrides):
        kwargs = {
            "back_image": png_data_uri(),
            "caption": "hello",
            "author_name": "Alice",
            "author_id": "u1",
            "group_id": "g1",
            "front_image": None,
            "config": CONFIG,
        }
        kwargs.update(overrides)
        return PostService.create_post(self.db, self.bucket, self.cache, **kwargs)

    def test_single_camera_post(self) -> None:
        post = self._create(caption="  hello  ")

        self.assertTrue(post["id"])
        self.assertEqual(post["type"], "single_camera")
        self.assertIsNone(post["frontImageUrl"])
        self.assertIsNone(post["frontImagePath"])
        self.assertEqual(post["caption"], "hello")
        self.assertEqual(post["likes"], [])
        self.assertEqual(post["comments"], [])
        self.assertIn(post["imagePath"], self.bucket.objects)
        self.assertTrue(PostService.has_user_posted_in_group(self.db, "u1", "g1"))

        stored = self.db.collection("posts").document(post["id"]).get().to_dict()
        self.assertEqual(stored["authorId"], "u1")
        self.assertEqual(stored["imageUrl"], post["imageUrl"])

    def test_first_post_unlocks_feed(self) -> None:
        self.assertFalse(is_unlocked(self.cache.load(), "g1"))

        self._create()

        profile = self.cache.load()
        self.assertTrue(is_unlocked(profile, "g1"))
        self.assertTrue(profile["hasUploaded"])
        group = self.db.collection("groups").document("g1").get().to_dict()
        self.assertEqual(group["totalPosts"], 1)

    def test_dual_camera_post(self) -> None:
        post = self._create(front_image=png_data_uri())

        self.assertEqual(post["type"], "dual_camera")
        self.assertIn("_main_", post["imagePath"])
        self.assertIn("_front_", post["frontImagePath"])
        self.assertNotEqual(post["imagePath"], post["frontImagePath"])
        self.assertEqual(len(self.bucket.objects), 2)

    def test_front_upload_failure_removes_back_image(self) -> None:
        self.bucket.failures["_front_"] = api_exceptions.ServiceUnavailable("down")

        with self.assertRaises(UploadError):
            self._create(front_image=png_data_uri())

        self.assertEqual(self.bucket.objects, {})
        self.assertEqual(PostService.get_group_posts(self.db, "g1"), [])
        self.assertEqual(self.cache.load()["totalPosts"], 0)

    def test_front_resolution_failure_removes_back_image(self) -> None:
        with self.assertRaises(UploadError):
            self._create(front_image="/no/such/front.jpg")

        self.assertEqual(self.bucket.objects, {})
        self.assertEqual(PostService.get_group_posts(self.db, "g1"), [])

    def test_cleanup_failure_still_raises_upload_error(self) -> None:
        self.bucket.failures["_front_"] = api_exceptions.ServiceUnavailable("down")
        self.bucket.delete_error = api_exceptions.ServiceUnavailable("down")

        with self.assertRaises(UploadError):
            self._create(front_image=png_data_uri())

    def test_back_upload_failure_skips_front(self) -> None:
        self.bucket.failures["_main_"] = api_exceptions.Forbidden("denied")

        with self.assertRaises(UploadError):
            self._create(front_image=png_data_uri())

        self.assertEqual(self.bucket.objects, {})

    def test_rejected_front_reference_uploads_nothing(self) -> None:
        with self.assertRaises(ValidationError):
            self._create(
                front_image="/etc/hostname", config=CONFIG.for_requests()
            )
        self.assertEqual(self.bucket.objects, {})

    def test_local_back_reference_rejected_for_requests(self) -> None:
        with self.assertRaises(ValidationError):
            self._create(back_image="file:///etc/hostname", config=CONFIG.for_requests())
        self.assertEqual(self.bucket.objects, {})

    def test_store_write_failure(self) -> None:
        with patch.object(CollectionReference, "add", side_effect=Exception("unavailable")):
            with self.assertRaises(StoreWriteError):
                self._create()

        # Stored images are left in place.
        self.assertEqual(len(self.bucket.objects), 1)
        self.assertEqual(self.cache.load()["totalPosts"], 0)

    def test_validation_happens_before_upload(self) -> None:
        for field in ("back_image", "caption", "author_name", "author_id", "group_id"):
            with self.assertRaises(ValidationError):
                self._create(**{field: "  " if field != "back_image" else ""})
        self.assertEqual(self.bucket.objects, {})

    def test_non_member_can_still_post(self) -> None:
        self.db.collection("groups").document("open").set({"members": []})
        post = self._create(group_id="open")
        self.assertEqual(post["groupId"], "open")

    def test_statistics_failure_does_not_block_post(self) -> None:
        with patch.object(
            StatisticsService, "update_user_posting_status", side_effect=Exception("boom")
        ), patch.object(
            StatisticsService, "update_group_statistics", side_effect=Exception("boom")
        ):
            post = self._create()

        self.assertTrue(post["id"])
        self.assertEqual(len(PostService.get_group_posts(self.db, "g1")), 1)

    def test_post_in_unknown_group_still_created(self) -> None:
        post = self._create(group_id="ghost")
        self.assertTrue(post["id"])
        self.assertIn("ghost", self.cache.load()["groupsPosted"])

    def test_repeat_posts_count_once_per_group(self) -> None:
        self._create()
        self._create(caption="again")
        self._create(group_id="g2")

        profile = self.cache.load()
        self.assertEqual(profile["totalPosts"], 3)
        self.assertEqual(profile["groupsPosted"].count("g1"), 1)
        self.assertEqual(profile["groupsPosted"], ["g1", "g2"])
        self.assertTrue(is_unlocked(profile, "g1"))
        self.assertEqual(profile["activityLog"][1]["type"], "posted_in_group")


class PostQueriesTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patch_mockfirestore()
        self.db = MockFirestore()
        patcher = patch("photogroup.post.store.firestore", new=mock_firestore_module())
        patcher.start()
        self.addCleanup(patcher.stop)
        patcher = patch("photogroup.post.services.firestore", new=mock_firestore_module())
        patcher.start()
        self.addCleanup(patcher.stop)

        base = datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc)
        posts = [
            ("p1", "u1", "g1", 0, []),
            ("p2", "u2", "g1", 1, ["u1"]),
            ("p3", "u1", "g2", 2, ["u1", "u2"]),
            ("p4", "u1", "g1", 3, []),
        ]
        for post_id, author, group, offset, likes in posts:
            self.db.collection("posts").document(post_id).set(
                {
                    "authorId": author,
                    "groupId": group,
                    "caption": post_id,
                    "createdAt": base + datetime.timedelta(hours=offset),
                    "likes": likes,
                    "comments": [],
                }
            )

    def test_group_posts_newest_first(self) -> None:
        posts = PostService.get_group_posts(self.db, "g1")
        self.assertEqual([p["id"] for p in posts], ["p4", "p2", "p1"])

    def test_group_posts_empty_id(self) -> None:
        self.assertEqual(PostService.get_group_posts(self.db, ""), [])

    def test_group_posts_fail_open(self) -> None:
        db = MagicMock()
        db.collection.side_effect = Exception("unavailable")
        self.assertEqual(PostService.get_group_posts(db, "g1"), [])

    def test_user_posts(self) -> None:
        posts = PostService.get_user_posts(self.db, "u1")
        self.assertEqual([p["id"] for p in posts], ["p4", "p3", "p1"])

    def test_user_posts_in_group(self) -> None:
        posts = PostService.get_user_posts_in_group(self.db, "u1", "g1")
        self.assertEqual([p["id"] for p in posts], ["p4", "p1"])
        self.assertFalse(PostService.has_user_posted_in_group(self.db, "u2", "g2"))

    def test_user_posting_stats(self) -> None:
        stats = PostService.get_user_posting_stats(self.db, "u1")
        self.assertEqual(stats["totalPosts"], 3)
        self.assertEqual(sorted(stats["groupsPostedIn"]), ["g1", "g2"])
        self.assertEqual(len(stats["postsByGroup"]["g1"]), 2)
        self.assertEqual(stats["latestPost"]["id"], "p4")
        self.assertEqual(stats["firstPost"]["id"], "p1")

    def test_user_posting_stats_no_posts(self) -> None:
        stats = PostService.get_user_posting_stats(self.db, "nobody")
        self.assertEqual(stats["totalPosts"], 0)
        self.assertIsNone(stats["firstPost"])
        self.assertIsNone(stats["latestPost"])

    def test_liked_posts(self) -> None:
        posts = PostService.get_liked_posts(self.db, "u1")
        self.assertEqual([p["id"] for p in posts], ["p3", "p2"])

    def test_get_post(self) -> None:
        post = PostService.get_post(self.db, "p2")
        self.assertEqual(post["id"], "p2")
        self.assertEqual(post["authorId"], "u2")

    def test_get_missing_post(self) -> None:
        with self.assertRaises(NotFoundError):
            PostService.get_post(self.db, "missing")

    def test_like_and_unlike(self) -> None:
        PostService.like_post(self.db, "p1", "u3")
        PostService.like_post(self.db, "p1", "u3")
        likes = self.db.collection("posts").document("p1").get().to_dict()["likes"]
        self.assertEqual(likes, ["u3"])

        PostService.unlike_post(self.db, "p1", "u3")
        likes = self.db.collection("posts").document("p1").get().to_dict()["likes"]
        self.assertEqual(likes, [])

    def test_like_missing_post(self) -> None:
        with self.assertRaises(NotFoundError):
            PostService.like_post(self.db, "missing", "u1")

    def test_add_comment(self) -> None:
        comment = PostService.add_comment(self.db, "p1", "u2", "Bob", "  nice  ")

        self.assertEqual(comment["text"], "nice")
        comments = self.db.collection("posts").document("p1").get().to_dict()["comments"]
        self.assertEqual(len(comments), 1)
        self.assertEqual(comments[0]["id"], comment["id"])

    def test_add_empty_comment(self) -> None:
        with self.assertRaises(ValidationError):
            PostService.add_comment(self.db, "p1", "u2", "Bob", "   ")


if __name__ == "__main__":
    unittest.main()
