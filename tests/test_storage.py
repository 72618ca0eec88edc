from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from paper_tracker.config import Settings
from paper_tracker.errors import BlobError
from paper_tracker.storage import BlobStore, paper_prefix, review_file_key


class FakeS3:
    def __init__(self, error=None):
        self.objects = {}
        self.error = error

    def _maybe_fail(self, operation):
        if self.error:
            raise ClientError({"Error": {"Code": self.error, "Message": "boom"}}, operation)

    def put_object(self, Bucket, Key, Body, ContentType):
        self._maybe_fail("PutObject")
        self.objects[(Bucket, Key)] = (Body, ContentType)

    def delete_object(self, Bucket, Key):
        self._maybe_fail("DeleteObject")
        self.objects.pop((Bucket, Key), None)


def make_store(s3, **overrides):
    settings = Settings(secret_key="x", s3_bucket_name="paper-reviews", **overrides)
    return BlobStore(settings, s3_client=s3)


def test_review_file_key_embeds_paper_id():
    now = datetime(2024, 1, 10, tzinfo=timezone.utc)
    key = review_file_key("abc123", "my review.pdf", now)
    assert key == f"reviews/abc123/{int(now.timestamp() * 1000)}_my_review.pdf"
    assert key.startswith(paper_prefix("abc123"))


def test_review_file_keys_do_not_collide_across_uploads():
    first = review_file_key("p1", "r.pdf", datetime(2024, 1, 1, 0, 0, 0))
    second = review_file_key("p1", "r.pdf", datetime(2024, 1, 1, 0, 0, 1))
    assert first != second


def test_put_and_delete():
    s3 = FakeS3()
    store = make_store(s3, s3_endpoint_url="https://acct.r2.cloudflarestorage.com")

    url = store.put("reviews/p1/1_r.pdf", b"%PDF", "application/pdf")

    assert url == "https://acct.r2.cloudflarestorage.com/paper-reviews/reviews/p1/1_r.pdf"
    assert s3.objects[("paper-reviews", "reviews/p1/1_r.pdf")] == (b"%PDF", "application/pdf")
    store.delete("reviews/p1/1_r.pdf")
    assert s3.objects == {}


def test_delete_is_idempotent():
    store = make_store(FakeS3())
    store.delete("reviews/p1/missing.pdf")
    store.delete("reviews/p1/missing.pdf")


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"s3_public_url": "https://files.example.com/"}, "https://files.example.com/k"),
        ({"s3_region": "eu-west-1"}, "https://paper-reviews.s3.eu-west-1.amazonaws.com/k"),
    ],
)
def test_url_for(overrides, expected):
    assert make_store(FakeS3(), **overrides).url_for("k") == expected


def test_client_errors_become_blob_errors():
    store = make_store(FakeS3(error="AccessDenied"))
    with pytest.raises(BlobError):
        store.put("reviews/p1/1_r.pdf", b"x", "text/plain")
    with pytest.raises(BlobError):
        store.delete("reviews/p1/1_r.pdf")


def test_url_for_quotes_the_key():
    store = make_store(FakeS3(), s3_public_url="https://files.example.com")
    assert (
        store.url_for("reviews/p1/1_draft#2?.pdf")
        == "https://files.example.com/reviews/p1/1_draft%232%3F.pdf"
    )
