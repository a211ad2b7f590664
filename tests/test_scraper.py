from __future__ import annotations

from datetime import UTC
from datetime import datetime
from pathlib import Path

import pytest

from imgchest.errors import InvalidScrapedPostError
from imgchest.errors import InvalidScrapedUserError
from imgchest.errors import ScrapeErrorReason
from imgchest.models import PostPrivacy
from imgchest.scraper import parse_post_page
from imgchest.scraper import parse_user_page


@pytest.fixture
def example_post_html() -> str:
    """Load the example imgchest post HTML fixture.

    Returns:
        The HTML content of the example post page.
    """
    fixture_path = Path(__file__).parent / "imgchest_post_example.html"
    return fixture_path.read_text(encoding="utf-8")


@pytest.fixture
def example_user_html() -> str:
    """Load the example imgchest user profile HTML fixture.

    Returns:
        The HTML content of the example profile page.
    """
    fixture_path = Path(__file__).parent / "imgchest_user_example.html"
    return fixture_path.read_text(encoding="utf-8")


def _post_page_data(**post_overrides: object) -> dict:
    post: dict = {
        "id": "3qe4gdvj4j2",
        "title": "A post",
        "privacy": "hidden",
        "files": [
            {"id": "nw7w6cmlvye", "link": "https://cdn.imgchest.com/files/nw7w6cmlvye.png"},
        ],
    }
    post.update(post_overrides)
    return {"component": "Post", "props": {"post": post}}


# Post pages


def test_parses_post_metadata(example_post_html: str) -> None:
    post = parse_post_page(example_post_html)

    assert post.id == "3qe4gdvj4j2"
    assert post.title == "Donkey Kong - Video Game From The Mid 80's"
    assert post.username == "LunarLandr"
    assert post.privacy is PostPrivacy.PUBLIC
    assert post.views == 198
    assert post.nsfw is False
    assert post.created == datetime(2019, 11, 3, 0, 36, tzinfo=UTC)


def test_parses_post_files_in_page_order(example_post_html: str) -> None:
    post = parse_post_page(example_post_html)

    assert [file.id for file in post.files] == [
        "nw7w6cmlvye",
        "kwye3cpag4b",
        "5g4z9c8ok72",
        "6yxkcz5ml7w",
    ]

    first = post.files[0]
    assert first.link == "https://cdn.imgchest.com/files/nw7w6cmlvye.png"
    assert first.filename == "nw7w6cmlvye.png"
    assert first.description is not None
    assert first.description.startswith("Released in the arcades in 1981")
    assert first.video_link is None


def test_empty_file_description_is_none(example_post_html: str) -> None:
    post = parse_post_page(example_post_html)

    assert post.files[2].description is None
    assert post.files[3].description is None


def test_parses_video_link(example_post_html: str) -> None:
    post = parse_post_page(example_post_html)

    video = post.files[3]
    assert video.filename == "6yxkcz5ml7w.gif"
    assert video.video_link == "https://cdn.imgchest.com/files/6yxkcz5ml7w.mp4"


def test_missing_optional_fields_are_none(page_html) -> None:
    data = {
        "component": "Post",
        "props": {"post": {"id": "3qe4gdvj4j2", "files": []}},
    }

    post = parse_post_page(page_html(data))

    assert post.id == "3qe4gdvj4j2"
    assert post.title is None
    assert post.username is None
    assert post.privacy is None
    assert post.views is None
    assert post.nsfw is None
    assert post.created is None
    assert post.files == ()


def test_unknown_privacy_is_none(page_html) -> None:
    post = parse_post_page(page_html(_post_page_data(privacy="friends-only")))

    assert post.privacy is None


def test_raises_for_post_page_without_anchor() -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page("<html><body>No post here</body></html>")

    assert exc_info.value.reason is ScrapeErrorReason.ANCHOR_NOT_FOUND


def test_raises_for_anchor_without_data_page() -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page('<html><body><div id="app"></div></body></html>')

    assert exc_info.value.reason is ScrapeErrorReason.MISSING_ATTRIBUTE


def test_raises_for_invalid_data_page_json() -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page('<html><body><div id="app" data-page="{not json"></div></body></html>')

    assert exc_info.value.reason is ScrapeErrorReason.INVALID_DATA_PAGE


def test_error_component_means_content_unavailable(page_html) -> None:
    data = {"component": "Error", "props": {"status": 404}}

    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(data))

    assert exc_info.value.reason is ScrapeErrorReason.CONTENT_UNAVAILABLE


def test_error_status_means_content_unavailable(page_html) -> None:
    data = {"component": "Post", "props": {"status": 403}}

    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(data))

    assert exc_info.value.reason is ScrapeErrorReason.CONTENT_UNAVAILABLE


def test_raises_for_missing_post_object(page_html) -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html({"component": "Post", "props": {}}))

    assert exc_info.value.reason is ScrapeErrorReason.MISSING_FIELD
    assert "props.post" in exc_info.value.detail


def test_raises_for_missing_post_id(page_html) -> None:
    data = _post_page_data()
    del data["props"]["post"]["id"]

    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(data))

    assert exc_info.value.reason is ScrapeErrorReason.MISSING_FIELD
    assert "post.id" in exc_info.value.detail


def test_raises_for_unexpected_field_type(page_html) -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(_post_page_data(views="lots")))

    assert exc_info.value.reason is ScrapeErrorReason.UNEXPECTED_TYPE
    assert "post.views" in exc_info.value.detail


def test_one_malformed_file_fails_the_whole_post(page_html) -> None:
    files = [
        {"id": "nw7w6cmlvye", "link": "https://cdn.imgchest.com/files/nw7w6cmlvye.png"},
        {"id": "kwye3cpag4b"},
    ]

    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(_post_page_data(files=files)))

    assert exc_info.value.reason is ScrapeErrorReason.MALFORMED_FILE_LIST
    assert "post.files.1.link" in exc_info.value.detail


def test_file_list_of_wrong_type_is_malformed(page_html) -> None:
    with pytest.raises(InvalidScrapedPostError) as exc_info:
        parse_post_page(page_html(_post_page_data(files="none")))

    assert exc_info.value.reason is ScrapeErrorReason.MALFORMED_FILE_LIST


# User pages


def test_parses_user_profile(example_user_html: str) -> None:
    user = parse_user_page(example_user_html)

    assert user.name == "LunarLandr"
    assert user.posts == 42
    assert user.comments == 7
    assert user.created == datetime(2019, 11, 2, tzinfo=UTC)
    assert user.post_views == 123456
    assert user.experience == 9876
    assert user.favorites == 3


def test_raises_for_user_page_without_anchor() -> None:
    with pytest.raises(InvalidScrapedUserError) as exc_info:
        parse_user_page("<html><body><div id='main'></div></body></html>")

    assert exc_info.value.reason is ScrapeErrorReason.ANCHOR_NOT_FOUND


def test_post_page_is_not_a_user_page(example_post_html: str) -> None:
    with pytest.raises(InvalidScrapedUserError) as exc_info:
        parse_user_page(example_post_html)

    assert exc_info.value.reason is ScrapeErrorReason.MISSING_FIELD


def test_raises_for_bad_join_date(page_html) -> None:
    data = {
        "component": "User/Profile",
        "props": {
            "targetUser": {
                "username": "someone",
                "post_count": 1,
                "comment_count": 0,
                "created_at": "2019-11-02",
                "post_views": 10,
                "experience": 5,
                "favorite_count": 0,
            },
        },
    }

    with pytest.raises(InvalidScrapedUserError) as exc_info:
        parse_user_page(page_html(data))

    assert exc_info.value.reason is ScrapeErrorReason.UNEXPECTED_TYPE
    assert "targetUser.created_at" in exc_info.value.detail
