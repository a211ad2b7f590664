"""Client for the imgchest image hosting API, with an HTML scraping fallback."""

from __future__ import annotations

from imgchest.builders import CreatePostBuilder
from imgchest.builders import CreatePostRequest
from imgchest.builders import ListPostsBuilder
from imgchest.builders import ListPostsRequest
from imgchest.builders import UpdatePostBuilder
from imgchest.builders import UpdatePostRequest
from imgchest.builders import UploadPostFile
from imgchest.client import Client
from imgchest.config import ClientConfig
from imgchest.errors import ApiError
from imgchest.errors import BuilderAlreadySentError
from imgchest.errors import DeserializeError
from imgchest.errors import ImgchestError
from imgchest.errors import InvalidRequestError
from imgchest.errors import InvalidScrapedPostError
from imgchest.errors import InvalidScrapedUserError
from imgchest.errors import NetworkError
from imgchest.errors import RequestErrorReason
from imgchest.errors import ScrapeErrorReason
from imgchest.models import FileUpdate
from imgchest.models import ImgchestModel
from imgchest.models import ListPostsPost
from imgchest.models import Post
from imgchest.models import PostFile
from imgchest.models import PostPrivacy
from imgchest.models import SortOrder
from imgchest.models import Thumbnail
from imgchest.models import User
from imgchest.ratelimit import RateLimiter
from imgchest.scraper import ScrapedPost
from imgchest.scraper import ScrapedPostFile
from imgchest.scraper import ScrapedUser
from imgchest.scraper import parse_post_page
from imgchest.scraper import parse_user_page
from imgchest.transport import RnetTransport
from imgchest.transport import Transport
from imgchest.transport import TransportError
from imgchest.transport import TransportResponse
from imgchest.urls import ImgchestUrlInfo
from imgchest.urls import extract_post_id
from imgchest.urls import parse_imgchest_url

__all__ = [
    "ApiError",
    "BuilderAlreadySentError",
    "Client",
    "ClientConfig",
    "CreatePostBuilder",
    "CreatePostRequest",
    "DeserializeError",
    "FileUpdate",
    "ImgchestError",
    "ImgchestModel",
    "ImgchestUrlInfo",
    "InvalidRequestError",
    "InvalidScrapedPostError",
    "InvalidScrapedUserError",
    "ListPostsBuilder",
    "ListPostsPost",
    "ListPostsRequest",
    "NetworkError",
    "Post",
    "PostFile",
    "PostPrivacy",
    "RateLimiter",
    "RequestErrorReason",
    "RnetTransport",
    "ScrapeErrorReason",
    "ScrapedPost",
    "ScrapedPostFile",
    "ScrapedUser",
    "SortOrder",
    "Thumbnail",
    "Transport",
    "TransportError",
    "TransportResponse",
    "UpdatePostBuilder",
    "UpdatePostRequest",
    "UploadPostFile",
    "User",
    "extract_post_id",
    "parse_imgchest_url",
    "parse_post_page",
    "parse_user_page",
]
