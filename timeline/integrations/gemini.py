# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Location sketch generation with Gemini image models."""
import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path

from google import genai
from google.genai import types

from timeline.config import settings

logger = logging.getLogger(__name__)

STYLE_INSTRUCTION = (
    "Here is an example of the minimal line sketch style I want. Match this "
    "style exactly: simple black outlines on white, no fills, no shading."
)

SKETCH_PROMPTS: list[Callable[[str], str]] = [
    lambda loc: (
        f"Create a minimal single-line sketch drawing of the most iconic landmark "
        f"or skyline of {loc}. Simple black outline on a pure white background. "
        "No fill, no shading, no gradient, no color, no text. Just clean, thin, "
        "minimal continuous lines. The style should look like a simple "
        "architectural line sketch."
    ),
    lambda loc: (
        f"Create a minimal single-line sketch drawing of a natural element or "
        f"landscape typical of {loc} (could be a wave, mountain, tree, coastline, "
        "river, etc). Simple black outline on a pure white background. No fill, "
        "no shading, no color, no text. Just clean, thin, minimal continuous lines."
    ),
    lambda loc: (
        f"Create a minimal single-line sketch drawing of something culturally or "
        f"geographically symbolic of {loc}. Simple black outline on a pure white "
        "background. No fill, no shading, no color, no text. Just clean, thin, "
        "minimal lines, like a quick pen sketch."
    ),
]


@dataclass
class GeneratedImage:
    """One generated image, ready to be stored."""

    index: int
    content: bytes
    mime_type: str
    prompt: str

    @property
    def extension(self) -> str:
        return "jpg" if "jpeg" in self.mime_type else "png"


def load_style_reference(path: str | None) -> bytes | None:
    """Read the optional style reference image; missing files are ignored."""
    if not path:
        return None
    try:
        return Path(path).read_bytes()
    except OSError as e:
        logger.warning(f"Could not load sketch reference {path}: {e}")
        return None


def extract_image(response: types.GenerateContentResponse) -> tuple[bytes, str] | None:
    """Return the first inline image of a response as (content, mime_type)."""
    if not response.candidates:
        return None
    content = response.candidates[0].content
    if content is None or not content.parts:
        return None
    for part in content.parts:
        if part.inline_data is not None and part.inline_data.data:
            return part.inline_data.data, part.inline_data.mime_type or "image/png"
    return None


class ImageGenerator:
    """Generates decorative sketches for a place name."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        reference_path: str | None = None,
        prompts: list[Callable[[str], str]] | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.image_model
        self.timeout = (
            timeout if timeout is not None else settings.image_generation_timeout
        )
        self.reference_path = (
            reference_path if reference_path is not None
            else settings.sketch_reference_path
        )
        self.prompts = prompts or SKETCH_PROMPTS
        self._client: genai.Client | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _build_contents(self, prompt: str, reference: bytes | None) -> list[types.Content]:
        parts: list[types.Part] = []
        if reference:
            parts.append(types.Part(text=STYLE_INSTRUCTION))
            parts.append(
                types.Part(
                    inline_data=types.Blob(mime_type="image/png", data=reference)
                )
            )
        parts.append(types.Part(text=prompt))
        return [types.Content(role="user", parts=parts)]

    async def generate(self, location: str) -> AsyncIterator[GeneratedImage]:
        """Yield at most one image per prompt template.

        A failure for one prompt is logged and the next prompt is tried.
        Without an API key nothing is generated.
        """
        if not self.enabled:
            logger.warning("GEMINI_API_KEY not set - skipping sketch generation")
            return

        client = self._get_client()
        reference = load_style_reference(self.reference_path)

        for index, template in enumerate(self.prompts):
            prompt = template(location)
            logger.info(
                f"Generating sketch {index + 1}/{len(self.prompts)} for {location!r}"
            )
            try:
                response = await asyncio.wait_for(
                    client.aio.models.generate_content(
                        model=self.model,
                        contents=self._build_contents(prompt, reference),
                        config=types.GenerateContentConfig(
                            response_modalities=["TEXT", "IMAGE"],
                        ),
                    ),
                    timeout=self.timeout,
                )
            except Exception as e:
                logger.error(f"Failed to generate sketch {index + 1}: {e}")
                continue

            image = extract_image(response)
            if image is None:
                logger.warning(f"No image data in response for prompt {index + 1}")
                continue

            content, mime_type = image
            yield GeneratedImage(
                index=index,
                content=content,
                mime_type=mime_type,
                prompt=prompt,
            )
