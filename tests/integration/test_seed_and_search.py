"""Seed a directory and search it through the real generator.

The provider is replaced by an httpx MockTransport that embeds text as a
keyword-count vector, so rankings are predictable.
"""

import httpx
import pytest

from scriptsearch.embeddings import EmbeddingConfig, EmbeddingGenerator
from scriptsearch.search import VectorSearch
from scriptsearch.seeding import DatabaseSeeder
from tests.embedding_test_utils import request_json

pytestmark = pytest.mark.integration

KEYWORDS = (("audio", "microphone", "sound"), ("disk", "storage"), ("network", "wifi"))

SCRIPTS = {
    "audio/fix-mic.ts": "Fix a crackling microphone by restarting audio services.",
    "audio/volume.sh": "Normalize sound volume across audio sinks.",
    "system/disk-check.sh": "Report disk storage usage for every mount.",
    "system/wifi-reset.py": "Reset the network stack when wifi drops.",
}


def keyword_vector(text: str) -> list[float]:
    lowered = text.lower()
    return [
        sum(lowered.count(word) for word in group) + 0.1 for group in KEYWORDS
    ]


class KeywordProvider:
    """Answers embedding requests like an OpenAI-compatible API."""

    def __init__(self):
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request_json(request)
        self.requests.append(body)
        inputs = body["input"] if isinstance(body["input"], list) else [body["input"]]
        data = [
            {"object": "embedding", "embedding": keyword_vector(text), "index": i}
            for i, text in enumerate(inputs)
        ]
        # Reverse to make sure results are matched by index, not position
        data.reverse()
        tokens = sum(len(text.split()) for text in inputs)
        return httpx.Response(
            200,
            json={
                "object": "list",
                "data": data,
                "model": body["model"],
                "usage": {"prompt_tokens": tokens, "total_tokens": tokens},
            },
        )


def write_scripts(root):
    for relative, description in SCRIPTS.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".ts":
            path.write_text(f"/**\n * {description}\n */\nexport {{}};\n")
        elif path.suffix == ".py":
            path.write_text(f'"""{description}"""\nimport socket\n')
        else:
            path.write_text(f"#!/bin/bash\n# {description}\necho done\n")


CONFIG = EmbeddingConfig(api_key="sk-test", model="test-embed", dimensions=3)


@pytest.mark.asyncio
async def test_seed_then_search(tmp_path, repository):
    root = tmp_path / "scripts"
    write_scripts(root)
    provider = KeywordProvider()

    async with httpx.AsyncClient(transport=httpx.MockTransport(provider)) as client:
        generator = EmbeddingGenerator(CONFIG, client=client)

        seeder = DatabaseSeeder(repository, generator, batch_size=3)
        outcome = await seeder.seed_scripts(root)

        assert outcome.processed == 4
        assert outcome.inserted == 4
        assert outcome.failed == 0
        assert outcome.categories == {"audio": 2, "system": 2}
        assert [len(body["input"]) for body in provider.requests] == [3, 1]
        assert all(body["dimensions"] == 3 for body in provider.requests)

        wifi = repository.get_by_path(str((root / "system/wifi-reset.py").resolve()))
        assert wifi.embedding == pytest.approx(keyword_vector(wifi.embedding_text))
        assert wifi.dependencies == ["socket"]

        search = VectorSearch(generator, repository)
        results = await search.search("my microphone has no sound", top_n=2)

        assert [r.script.category for r in results] == ["audio", "audio"]
        assert results[0].similarity >= results[1].similarity

        system_only = await search.search("disk storage is full", category="system")
        assert system_only[0].script.name == "disk-check"


@pytest.mark.asyncio
async def test_tokens_are_recorded(tmp_path, repository):
    root = tmp_path / "scripts"
    write_scripts(root)

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(KeywordProvider())
    ) as client:
        generator = EmbeddingGenerator(CONFIG, client=client)
        outcome = await DatabaseSeeder(repository, generator).seed_scripts(root)

    expected = sum(len(text.split()) for text in SCRIPTS.values())
    assert outcome.total_tokens == expected
    assert repository.stats().total_tokens == expected
