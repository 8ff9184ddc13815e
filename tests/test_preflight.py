import asyncio
import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from uploadgate.config import UploadOptions
from uploadgate.errors import InvalidContentType, MalformedBody, UploadRejected
from uploadgate.pipeline import PreflightPipeline, validate_descriptor
from uploadgate.validation import ViolationKind

from conftest import FakeContext

JPG_ONLY = UploadOptions(allowed_extensions=("jpg",), max_total_bytes=1000, max_file_bytes=1000)


def test_disallowed_descriptor_is_reported():
    report = validate_descriptor({"file1": {"name": "a.txt", "size": 5}}, JPG_ONLY)
    assert report.kinds == [ViolationKind.DISALLOWED_EXTENSION]
    assert "a.txt" in report.message
    assert "txt" in report.message


def test_allowed_descriptor_passes():
    report = validate_descriptor({"file1": {"name": "a.jpg", "size": 5}}, JPG_ONLY)
    assert report.ok


def test_lists_of_descriptors_count_towards_total():
    options = UploadOptions(max_total_bytes=10, max_file_bytes=8)
    body = {
        "photos": [{"name": "a.jpg", "size": 6}, {"name": "b.jpg", "size": 9}],
        "cover": {"name": "c.jpg", "size": 1},
    }
    report = validate_descriptor(body, options)
    assert report.kinds == [
        ViolationKind.PER_FILE_SIZE_EXCEEDED,
        ViolationKind.AGGREGATE_SIZE_EXCEEDED,
    ]
    assert "size: 16 bytes" in report.message


def test_unrestricted_extensions_skip_extension_check():
    assert validate_descriptor({"f": {"name": "README", "size": 1}}, UploadOptions()).ok


@pytest.mark.parametrize(
    "body",
    [[], {"f": {"name": "a.jpg"}}, {"f": {"name": "a.jpg", "size": -1}}, {"f": "a.jpg"}],
)
def test_malformed_descriptor(body):
    with pytest.raises(MalformedBody):
        validate_descriptor(body, JPG_ONLY)


def test_pipeline_passes_valid_body_through():
    ctx = FakeContext(json.dumps({"f": {"name": "a.jpg", "size": 5}}).encode(), "application/json")
    report = asyncio.run(PreflightPipeline(JPG_ONLY).process(ctx))
    assert report.ok
    assert ctx.result is None


def test_pipeline_rejects_with_combined_message():
    body = {"f": [{"name": "a.txt", "size": 5}, {"name": "b.png", "size": 5}]}
    ctx = FakeContext(json.dumps(body).encode(), "application/json; charset=utf-8")
    with pytest.raises(UploadRejected) as exc:
        asyncio.run(PreflightPipeline(JPG_ONLY).process(ctx))
    assert "(txt in a.txt)" in exc.value.message
    assert "(png in b.png)" in exc.value.message


def test_pipeline_requires_json():
    ctx = FakeContext(b"name=a.jpg", "application/x-www-form-urlencoded")
    with pytest.raises(InvalidContentType):
        asyncio.run(PreflightPipeline(JPG_ONLY).process(ctx))


def test_pipeline_rejects_invalid_json():
    ctx = FakeContext(b"{not json", "application/json")
    with pytest.raises(MalformedBody):
        asyncio.run(PreflightPipeline(JPG_ONLY).process(ctx))
