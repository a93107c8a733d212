from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import openai
from bs4 import BeautifulSoup
from pydantic import ValidationError

from app.core.exceptions import EnrichmentAuthError, EnrichmentError, ScrapeError
from app.core.schemas.enrichment import BookmarkEnrichmentResult, PageMetadata
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from openai import AsyncOpenAI

logger = get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _meta_content(soup: BeautifulSoup, *, name: str | None = None, prop: str | None = None) -> str:
    attrs = {"name": name} if name else {"property": prop}
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else ""


def parse_page_metadata(html: bytes | str) -> PageMetadata:
    """Extract title, description and Open Graph fields from an HTML document.

    Twitter card fields stand in for missing og:title / og:description.
    """
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.string.strip() if soup.title and soup.title.string else ""
    og_title = _meta_content(soup, prop="og:title") or _meta_content(soup, name="twitter:title")
    og_description = _meta_content(soup, prop="og:description") or _meta_content(
        soup, name="twitter:description"
    )
    return PageMetadata(
        title=title,
        description=_meta_content(soup, name="description"),
        og_title=og_title,
        og_description=og_description,
    )


def strip_code_fences(content: str) -> str:
    text = content.strip()
    for prefix in ("```json", "```"):
        if text.startswith(prefix):
            text = text[len(prefix) :]
            break
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_completion_content(content: str) -> BookmarkEnrichmentResult:
    """Parse the model's reply into `{title, description, tags}`.

    A markdown code fence around the JSON is tolerated.
    """
    text = strip_code_fences(content)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as err:
        raise EnrichmentError(f"AI response is not valid JSON: {err}") from err
    if not isinstance(payload, dict):
        raise EnrichmentError("AI response must be a JSON object")
    try:
        return BookmarkEnrichmentResult.model_validate(payload)
    except ValidationError as err:
        raise EnrichmentError(f"AI response has an unexpected shape: {err}") from err


class EnrichmentClient:
    """Page scraping over httpx and chat completion over an OpenAI-compatible API."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        openai_client: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        scrape_timeout: float = 30.0,
        scrape_max_bytes: int = 128 * 1024,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._http = http_client
        self._openai = openai_client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._scrape_timeout = scrape_timeout
        self._scrape_max_bytes = scrape_max_bytes
        self._user_agent = user_agent

    async def scrape_metadata(self, url: str) -> PageMetadata:
        headers = {
            "User-Agent": self._user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Referer": "https://www.google.com/",
        }
        body = bytearray()
        try:
            async with self._http.stream(
                "GET", url, headers=headers, timeout=self._scrape_timeout, follow_redirects=True
            ) as resp:
                if resp.status_code != 200:
                    raise ScrapeError(f"{url} returned HTTP {resp.status_code}")
                async for chunk in resp.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self._scrape_max_bytes:
                        break
        except httpx.HTTPError as err:
            raise ScrapeError(f"Fetching {url} failed: {err}") from err

        metadata = parse_page_metadata(bytes(body[: self._scrape_max_bytes]))
        logger.debug("Scraped %s: title=%r og_title=%r", url, metadata.title, metadata.og_title)
        return metadata

    async def complete(self, prompt: str) -> BookmarkEnrichmentResult:
        try:
            response = await self._openai.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.AuthenticationError as err:
            raise EnrichmentAuthError(
                "AI API authentication failed; check APP_AI_API_KEY"
            ) from err
        except openai.APIError as err:
            raise EnrichmentError(f"AI request failed: {err}") from err

        if not response.choices:
            raise EnrichmentError("AI returned no choices")
        content = response.choices[0].message.content or ""
        return parse_completion_content(content)
