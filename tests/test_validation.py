import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from uploadgate.config import UploadOptions
from uploadgate.validation import ViolationKind, extension_of, validate_files


def test_extension_of_takes_suffix_after_last_dot():
    assert extension_of("photo.jpg") == "jpg"
    assert extension_of("archive.tar.gz") == "gz"
    assert extension_of("README") is None
    assert extension_of("Photo.JPG") == "JPG"


def test_unrestricted_options_accept_anything():
    report = validate_files([("README", 10), ("a.exe", 0)], 10, UploadOptions())
    assert report.ok
    assert not report
    assert report.message == ""


def test_disallowed_extension_names_file_and_extension():
    options = UploadOptions(allowed_extensions=("jpg", "png"))
    report = validate_files([("notes.txt", 5)], 5, options)
    assert report.kinds == [ViolationKind.DISALLOWED_EXTENSION]
    assert "notes.txt" in report.message
    assert "(txt in notes.txt)" in report.message
    assert "allowed extensions: jpg,png" in report.message


def test_extension_match_is_case_sensitive():
    options = UploadOptions(allowed_extensions=("jpg",))
    assert not validate_files([("a.jpg", 1)], 1, options)
    assert validate_files([("a.JPG", 1)], 1, options).kinds == [ViolationKind.DISALLOWED_EXTENSION]


def test_file_without_extension_fails_non_empty_allow_list():
    options = UploadOptions(allowed_extensions=("README",))
    report = validate_files([("README", 1)], 1, options)
    assert report.kinds == [ViolationKind.DISALLOWED_EXTENSION]
    assert "no extension (README)" in report.message


def test_per_file_size_message():
    options = UploadOptions(max_file_bytes=1000)
    report = validate_files([("big.bin", 1500)], 1500, options)
    assert report.kinds == [ViolationKind.PER_FILE_SIZE_EXCEEDED]
    assert "big.bin" in report.message
    assert "1500" in report.message
    assert "1000" in report.message


def test_aggregate_size_checked_independently():
    options = UploadOptions(max_total_bytes=10, max_file_bytes=8)
    report = validate_files([("a.txt", 6), ("b.txt", 6)], 12, options)
    assert report.kinds == [ViolationKind.AGGREGATE_SIZE_EXCEEDED]
    assert report.messages == [
        "Maximum total upload size exceeded, size: 12 bytes, maximum: 10 bytes."
    ]


def test_all_violations_reported_in_order():
    options = UploadOptions(allowed_extensions=("jpg",), max_file_bytes=5, max_total_bytes=8)
    report = validate_files([("a.txt", 6), ("b.jpg", 7)], 13, options)
    assert report.kinds == [
        ViolationKind.DISALLOWED_EXTENSION,
        ViolationKind.PER_FILE_SIZE_EXCEEDED,
        ViolationKind.PER_FILE_SIZE_EXCEEDED,
        ViolationKind.AGGREGATE_SIZE_EXCEEDED,
    ]
    assert len(report) == 4
    assert report.message == " ".join(report.messages)


def test_limits_are_inclusive():
    options = UploadOptions(max_file_bytes=5, max_total_bytes=5)
    assert validate_files([("a.txt", 5)], 5, options).ok
