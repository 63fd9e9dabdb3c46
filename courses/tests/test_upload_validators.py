from __future__ import annotations

import pytest
from django.core.exceptions import ValidationError

from courses.validators import validate_thumbnail, validate_video


class Dummy:
    def __init__(self, name, size):
        self.name = name
        self.size = size


def test_thumbnail_size_and_type():
    with pytest.raises(ValidationError):
        validate_thumbnail(Dummy("x.png", 5 * 1024 * 1024 + 1))
    with pytest.raises(ValidationError):
        validate_thumbnail(Dummy("x.svg", 1024))
    with pytest.raises(ValidationError):
        validate_thumbnail(Dummy("x.exe", 1024))
    validate_thumbnail(Dummy("x.JPG", 1024))
    validate_thumbnail(Dummy("x.webp", 1024))


def test_video_size_and_type():
    with pytest.raises(ValidationError):
        validate_video(Dummy("x.mp4", 500 * 1024 * 1024 + 1))
    with pytest.raises(ValidationError):
        validate_video(Dummy("x.avi", 1024))
    validate_video(Dummy("x.mp4", 1024))
    validate_video(Dummy("x.mov", 1024))
    validate_video(Dummy("x.webm", 1024))
