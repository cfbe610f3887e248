"""Tests for content target resolution."""

from uuid import UUID

import pytest

from comment_engine.core.exceptions import InvalidTargetError
from comment_engine.targets.models import ContentType, TargetHandle
from comment_engine.targets.resolver import (
    normalize_object_id,
    parse_content_type,
    resolve_target,
)


class TestParseContentType:
    """Tests for parse_content_type."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("story", ContentType.STORY),
            ("stories.story", ContentType.STORY),
            (" Film ", ContentType.FILM),
            ("media.content", ContentType.CONTENT),
            ("sneakpeeks.sneakpeek", ContentType.SNEAKPEEK),
            (ContentType.PODCAST, ContentType.PODCAST),
        ],
    )
    def test_accepts_names_and_labels(self, value, expected: ContentType) -> None:
        assert parse_content_type(value) == expected

    @pytest.mark.parametrize("value", ["", "article", "stories", "story.stories"])
    def test_unknown_content_type(self, value: str) -> None:
        with pytest.raises(InvalidTargetError):
            parse_content_type(value)

    def test_every_type_has_a_label(self) -> None:
        for content_type in ContentType:
            assert parse_content_type(content_type.label) == content_type


class TestNormalizeObjectId:
    """Tests for normalize_object_id."""

    def test_integer_string_loses_leading_zeros(self) -> None:
        assert normalize_object_id("0042") == "42"

    def test_integer(self) -> None:
        assert normalize_object_id(42) == "42"

    def test_uuid_is_lowercased(self) -> None:
        value = "6F9619FF-8B86-D011-B42D-00C04FC964FF"
        assert normalize_object_id(value) == value.lower()

    def test_uuid_instance(self) -> None:
        value = UUID("6f9619ff-8b86-d011-b42d-00c04fc964ff")
        assert normalize_object_id(value) == str(value)

    @pytest.mark.parametrize("value", [0, -3, "0", "000", "abc", "", "12abc", True])
    def test_invalid_ids(self, value) -> None:
        with pytest.raises(InvalidTargetError):
            normalize_object_id(value)


class TestResolveTarget:
    """Tests for resolve_target and TargetHandle."""

    def test_equivalent_inputs_resolve_to_same_handle(self) -> None:
        """Label and short name with padded ids address one target."""
        assert resolve_target("stories.story", "007") == resolve_target("story", 7)

    def test_key(self) -> None:
        handle = resolve_target("film", "12")
        assert handle.key == "film:12"
        assert str(handle) == "film:12"

    def test_from_key(self) -> None:
        handle = TargetHandle.from_key("podcast:6f9619ff-8b86-d011-b42d-00c04fc964ff")
        assert handle.content_type == ContentType.PODCAST
        assert handle.object_id == "6f9619ff-8b86-d011-b42d-00c04fc964ff"

    def test_invalid_target(self) -> None:
        with pytest.raises(InvalidTargetError) as exc_info:
            resolve_target("story", "not-an-id")
        assert exc_info.value.code == "invalid_target"
