# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for sketch generation."""

from types import SimpleNamespace

import pytest

from timeline.integrations.gemini import (
    SKETCH_PROMPTS,
    GeneratedImage,
    ImageGenerator,
    extract_image,
    load_style_reference,
)


def image_response(data=b"png-bytes", mime_type="image/png"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type), text=None)
    text_part = SimpleNamespace(inline_data=None, text="Here is your sketch")
    content = SimpleNamespace(parts=[text_part, part])
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


class FakeModels:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append((model, contents, config))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def generator_with(outcomes, **kwargs):
    generator = ImageGenerator(api_key="test-key", model="test-model", timeout=1.0, **kwargs)
    models = FakeModels(outcomes)
    generator._client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return generator, models


async def collect(generator, location):
    return [image async for image in generator.generate(location)]


def test_extract_image():
    assert extract_image(image_response()) == (b"png-bytes", "image/png")
    assert extract_image(SimpleNamespace(candidates=[])) is None
    assert extract_image(SimpleNamespace(candidates=None)) is None
    empty = SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[]))])
    assert extract_image(empty) is None


def test_generated_image_extension():
    assert GeneratedImage(0, b"", "image/jpeg", "p").extension == "jpg"
    assert GeneratedImage(0, b"", "image/png", "p").extension == "png"


def test_load_style_reference(tmp_path):
    path = tmp_path / "style.png"
    path.write_bytes(b"reference")

    assert load_style_reference(str(path)) == b"reference"
    assert load_style_reference(str(tmp_path / "missing.png")) is None
    assert load_style_reference(None) is None


@pytest.mark.asyncio
async def test_generate_one_image_per_prompt():
    generator, models = generator_with(
        [image_response(b"a"), image_response(b"b", "image/jpeg"), image_response(b"c")]
    )

    images = await collect(generator, "Lisbon, Portugal")

    assert [(i.index, i.content, i.mime_type) for i in images] == [
        (0, b"a", "image/png"),
        (1, b"b", "image/jpeg"),
        (2, b"c", "image/png"),
    ]
    assert all("Lisbon, Portugal" in i.prompt for i in images)
    assert len(models.calls) == len(SKETCH_PROMPTS)
    assert models.calls[0][0] == "test-model"


@pytest.mark.asyncio
async def test_generate_continues_after_failed_prompt():
    generator, _ = generator_with(
        [RuntimeError("quota"), SimpleNamespace(candidates=[]), image_response(b"c")]
    )

    images = await collect(generator, "Lisbon")

    assert [i.index for i in images] == [2]


@pytest.mark.asyncio
async def test_generate_sends_style_reference(tmp_path):
    path = tmp_path / "style.png"
    path.write_bytes(b"reference")
    generator, models = generator_with(
        [image_response()] * 3, reference_path=str(path)
    )

    await collect(generator, "Lisbon")

    parts = models.calls[0][1][0].parts
    assert len(parts) == 3
    assert parts[1].inline_data.data == b"reference"


@pytest.mark.asyncio
async def test_generate_without_api_key_yields_nothing():
    generator = ImageGenerator(api_key="")

    assert generator.enabled is False
    assert await collect(generator, "Lisbon") == []
