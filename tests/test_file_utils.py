"""Tests for filename and MIME helpers."""

from __future__ import annotations

import pytest

from boards_core.file_utils import (
    attachment_disposition,
    default_file_name,
    resolve_content_type,
)


@pytest.mark.parametrize(
    "file_name, content_type, expected",
    [
        ("photo.PNG", None, "image/png"),
        ("photo.png", "image/webp", "image/webp"),
        ("archive", None, "application/octet-stream"),
        ("notes.unknownext", "", "application/octet-stream"),
    ],
)
def test_resolve_content_type(file_name, content_type, expected):
    assert resolve_content_type(file_name, content_type) == expected


def test_explicit_octet_stream_is_kept():
    assert resolve_content_type("photo.png", "application/octet-stream") == (
        "application/octet-stream"
    )


@pytest.mark.parametrize(
    "name",
    ["C:\\Users\\ola\\plan.docx", "dir/a.txt", "  padded.txt  "],
)
def test_file_name_kept_as_sent(name):
    assert default_file_name(name) == name


@pytest.mark.parametrize("name", [None, ""])
def test_missing_name_falls_back(name):
    assert default_file_name(name) == "upload"


def test_ascii_disposition():
    assert attachment_disposition("plan.pdf") == 'attachment; filename="plan.pdf"'


def test_quotes_are_not_passed_through():
    value = attachment_disposition('say "hi".txt')
    assert value.startswith('attachment; filename="say _hi_.txt"')
    assert "filename*=UTF-8''say%20%22hi%22.txt" in value


def test_path_separators_are_escaped_in_disposition():
    value = attachment_disposition("dir\\a.txt")
    assert value.startswith('attachment; filename="dir_a.txt"')
    assert "filename*=UTF-8''dir%5Ca.txt" in value
