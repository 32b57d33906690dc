"""News feed client: location-scoped headlines from the backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from weather_dashboard import config

logger = logging.getLogger(__name__)


class NewsAPIError(Exception):
    """Raised when the news feed cannot be fetched or parsed."""


@dataclass(frozen=True)
class Article:
    """A news item.

    Attributes:
        title: Headline.
        link: Article URL.
        description: Short summary, if provided.
        pub_date: Publication date string as sent by the feed.
        source: Publisher name.
    """

    title: str
    link: str
    description: str | None = None
    pub_date: str | None = None
    source: str | None = None


def _parse_articles(body) -> list[Article]:
    if isinstance(body, dict):
        body = body.get("articles", [])
    if not isinstance(body, list):
        raise NewsAPIError("Unexpected news response format.")

    articles = []
    for item in body:
        if not isinstance(item, dict) or not item.get("title") or not item.get("link"):
            logger.debug("Skipping malformed news item: %r", item)
            continue
        articles.append(
            Article(
                title=str(item["title"]),
                link=str(item["link"]),
                description=item.get("description"),
                pub_date=item.get("pubDate"),
                source=item.get("source"),
            )
        )
    return articles


def get_news(location: str | None = None) -> list[Article]:
    """Fetch news, optionally scoped to a location.

    Args:
        location: Free-text location; blank means general news.

    Raises:
        NewsAPIError: On HTTP errors, timeouts or malformed payloads.
    """
    location = (location or "").strip()
    params = {"loc": location} if location else None

    try:
        with httpx.Client(
            base_url=config.get_weather_api_base_url(),
            timeout=config.WEATHER_REQUEST_TIMEOUT,
        ) as client:
            response = client.get("/api/news", params=params)
    except httpx.TimeoutException:
        raise NewsAPIError("Request for news timed out.")
    except httpx.HTTPError as exc:
        raise NewsAPIError(f"Failed to fetch news: {exc}")

    if response.status_code != 200:
        raise NewsAPIError(f"Failed to fetch news (HTTP {response.status_code}).")

    try:
        body = response.json()
    except ValueError:
        raise NewsAPIError("Received invalid JSON from the news feed.")
    return _parse_articles(body)
