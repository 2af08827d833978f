"""Shared fixtures: on-disk projects and a scripted model client."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import pytest

from contracts import ComposedPrompt
from providers.base import LLMProvider


class ScriptedProvider(LLMProvider):
    """Streams a fixed list of fragments; can stall or fail at a given index."""

    def __init__(
        self,
        fragments: List[str],
        delay: float = 0.0,
        stall_at: Optional[int] = None,
        fail_at: Optional[int] = None,
    ):
        self.fragments = fragments
        self.delay = delay
        self.stall_at = stall_at
        self.fail_at = fail_at
        self.prompts: List[ComposedPrompt] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return "scripted"

    async def stream(self, prompt, cancel_token=None):
        self.prompts.append(prompt)
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_at == i:
                    raise ConnectionError("upstream connection reset")
                if self.stall_at == i:
                    await asyncio.sleep(3600)
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield fragment
        finally:
            self.closed = True


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def make_project(tmp_path):
    """Create a project root with optional package.json / constraints file."""

    def _make(
        dependencies: Optional[dict] = None,
        dev_dependencies: Optional[dict] = None,
        constraints: Optional[str] = None,
        name: str = "project",
    ) -> Path:
        root = tmp_path / name
        root.mkdir()
        if dependencies is not None or dev_dependencies is not None:
            manifest = {"name": name, "version": "1.0.0"}
            if dependencies is not None:
                manifest["dependencies"] = dependencies
            if dev_dependencies is not None:
                manifest["devDependencies"] = dev_dependencies
            (root / "package.json").write_text(json.dumps(manifest, indent=2))
        if constraints is not None:
            (root / ".github").mkdir()
            (root / ".github" / "constraints.md").write_text(constraints)
        return root

    return _make


@pytest.fixture
def infra_project(make_project):
    """A TypeScript CDK-less project with two constraints and no cloud provider named."""
    return make_project(
        dependencies={"express": "^4.18.2"},
        dev_dependencies={"typescript": "^5.4.0"},
        constraints="# Constraints\n\n- Never use X\n- Always validate input\n",
    )
