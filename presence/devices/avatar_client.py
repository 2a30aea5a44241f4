"""Avatar image generation via public URL-addressed providers.

Only the result contract matters to the face: a usable image URL or a
failure.  DiceBear is deterministic and always available, so it doubles as
the fallback for the other providers.
"""

from __future__ import annotations

import logging
import random
import time
import urllib.parse
from dataclasses import dataclass
from typing import Final

import httpx

from presence.store.kv_store import (
    AVATAR_HISTORY_KEY,
    CUSTOM_AVATAR_KEY,
    KeyValueStore,
)

log = logging.getLogger(__name__)

DICEBEAR_URL = "https://api.dicebear.com/7.x"
ROBOHASH_URL = "https://robohash.org"
POLLINATIONS_URL = "https://image.pollinations.ai/prompt"

DICEBEAR_STYLES: Final[tuple[str, ...]] = ("shapes", "identicon", "bottts", "avataaars")
PROVIDERS: Final[tuple[str, ...]] = ("dicebear", "robohash", "pollinations")
AVATAR_HISTORY_MAX = 10

STYLE_SEEDS: Final[dict[str, str]] = {
    "kratos": "kratos-lightning-blue-gold",
    "kratosMinimal": "kratos-minimal-clean",
    "kratosCyberpunk": "kratos-cyber-neon",
    "kratosAbstract": "kratos-abstract-geometric",
}

STYLE_TO_DICEBEAR: Final[dict[str, str]] = {
    "kratos": "shapes",
    "kratosMinimal": "identicon",
    "kratosCyberpunk": "bottts",
    "kratosAbstract": "shapes",
}

STYLE_PROMPTS: Final[dict[str, str]] = {
    "kratos": (
        "A stylized digital avatar for an AI coding assistant, geometric angular "
        "face with sharp diamond-shaped eyes glowing gold, electric blue color "
        "scheme with gold accents, lightning bolt symbol on forehead, dark navy "
        "background with circuit patterns, profile picture style"
    ),
    "kratosMinimal": (
        "Minimalist geometric avatar, angular face silhouette, blue and gold "
        "colors, lightning bolt, dark background, vector art style"
    ),
    "kratosCyberpunk": (
        "Cyberpunk style avatar for an AI assistant, neon blue and gold, "
        "geometric angular face, glowing eyes, lightning bolt, dark futuristic "
        "background, digital art"
    ),
    "kratosAbstract": (
        "Abstract geometric representation of an AI, angular shapes forming a "
        "face, blue electric arcs, gold lightning, dark void background"
    ),
}


class AvatarError(RuntimeError):
    """Raised when a generated avatar URL is not reachable."""


@dataclass(slots=True)
class AvatarResult:
    success: bool
    url: str = ""
    error: str = ""
    seed: str = ""
    source: str = ""
    fallback_url: str = ""
    prompt: str = ""

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "url": self.url,
            "error": self.error,
            "seed": self.seed,
            "source": self.source,
            "fallback_url": self.fallback_url,
            "prompt": self.prompt,
        }


def dicebear_url(seed: str, style: str = "shapes", size: int = 512) -> str:
    if style not in DICEBEAR_STYLES:
        style = "shapes"
    query = urllib.parse.urlencode(
        {"seed": seed, "backgroundColor": "1e3a5f,0f172a,1e40af", "size": size}
    )
    return f"{DICEBEAR_URL}/{style}/svg?{query}"


def robohash_url(seed: str, width: int = 512, height: int = 512) -> str:
    quoted = urllib.parse.quote(seed, safe="")
    return f"{ROBOHASH_URL}/{quoted}.png?size={width}x{height}&set=set4"


def pollinations_url(prompt: str, seed: str, width: int = 512, height: int = 512) -> str:
    quoted = urllib.parse.quote(prompt, safe="")
    query = urllib.parse.urlencode({"seed": seed, "width": width, "height": height})
    return f"{POLLINATIONS_URL}/{quoted}?{query}"


class AvatarClient:
    """Builds avatar URLs and remembers the chosen ones in the store."""

    def __init__(
        self,
        store: KeyValueStore,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._timeout_s = timeout_s
        self._transport = transport
        self._rng = rng or random.Random()

    @property
    def custom_avatar(self) -> str | None:
        try:
            url = self._store.get(CUSTOM_AVATAR_KEY)
        except Exception as e:
            log.warning("avatar: failed to read custom avatar: %s", e)
            return None
        return url if isinstance(url, str) and url else None

    def history(self) -> list[str]:
        try:
            raw = self._store.get(AVATAR_HISTORY_KEY, [])
        except Exception as e:
            log.warning("avatar: failed to read history: %s", e)
            return []
        if not isinstance(raw, list):
            return []
        return [u for u in raw if isinstance(u, str)]

    def clear_custom_avatar(self) -> None:
        try:
            self._store.delete(CUSTOM_AVATAR_KEY)
        except Exception as e:
            log.warning("avatar: failed to clear custom avatar: %s", e)

    async def generate(
        self,
        style: str = "kratos",
        width: int = 512,
        height: int = 512,
        provider: str = "dicebear",
        seed: str | None = None,
        verify: bool = False,
    ) -> AvatarResult:
        """Produce an avatar URL for ``style``.  Never raises."""
        if provider not in PROVIDERS:
            return AvatarResult(success=False, error=f"unknown provider: {provider}")

        base_seed = STYLE_SEEDS.get(style, style)
        seed = seed or f"{base_seed}-{int(time.time() * 1000)}-{self._rng.randrange(1_000_000)}"
        prompt = STYLE_PROMPTS.get(style, STYLE_PROMPTS["kratos"])
        dicebear_style = STYLE_TO_DICEBEAR.get(style, "shapes")
        fallback = dicebear_url(seed, dicebear_style, max(width, height))

        if provider == "pollinations":
            url = pollinations_url(prompt, seed, width, height)
        elif provider == "robohash":
            url = robohash_url(seed, width, height)
        else:
            url = fallback
        source = provider

        if verify:
            try:
                await self._probe(url)
            except AvatarError as e:
                if url == fallback:
                    log.warning("avatar: %s", e)
                    return AvatarResult(
                        success=False, error=str(e), seed=seed, source=source, prompt=prompt
                    )
                log.warning("avatar: %s, falling back to dicebear", e)
                url, source = fallback, "dicebear"

        self._remember(url)
        return AvatarResult(
            success=True,
            url=url,
            seed=seed,
            source=source,
            fallback_url=fallback,
            prompt=prompt,
        )

    async def _probe(self, url: str) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_s,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise AvatarError(f"avatar fetch failed: {msg}") from e
        if resp.status_code != 200:
            raise AvatarError(f"avatar fetch returned {resp.status_code}")

    def _remember(self, url: str) -> None:
        history = [url, *[u for u in self.history() if u != url]][:AVATAR_HISTORY_MAX]
        try:
            self._store.set(CUSTOM_AVATAR_KEY, url)
            self._store.set(AVATAR_HISTORY_KEY, history)
        except Exception as e:
            log.warning("avatar: failed to save avatar: %s", e)
