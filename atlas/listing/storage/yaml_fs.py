"""YAML fixture storage backend.

Loads projects, tasks and knowledge items from a single YAML file into
memory at startup. Useful for demos and local development against a fixed
data set.

File layout::

    projects:
      - id: p1
        name: Atlas
        status: active
    tasks:
      - id: t1
        projectId: p1
        title: Write docs
    knowledge:
      - id: k1
        projectId: p1
        domain: technical
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from .memory import MemoryRecordStore

logger = logging.getLogger(__name__)

SEED_PATH = os.getenv("ATLAS_SEED_PATH", "data/seed.yaml")


class YAMLRecordStore(MemoryRecordStore):
    """Read-mostly store seeded from a YAML file.

    Configuration via environment variables:
        - ATLAS_SEED_PATH: Path to the YAML seed file (default: data/seed.yaml)
    """

    def __init__(self, seed_path: str | None = None) -> None:
        super().__init__()
        self._seed_path = Path(seed_path or SEED_PATH)

    async def initialize(self) -> None:
        """Reset the in-memory data and load the seed file, if present."""
        await super().initialize()

        if not self._seed_path.exists():
            logger.warning("Seed file not found: %s", self._seed_path)
            return

        data = yaml.safe_load(self._seed_path.read_text()) or {}
        for project in data.get("projects") or []:
            await self.save_project(project)
        for task in data.get("tasks") or []:
            await self.save_task(task)
        for item in data.get("knowledge") or []:
            await self.save_knowledge(item)

        logger.info(
            "Loaded seed data from %s (%d projects, %d tasks, %d knowledge items)",
            self._seed_path,
            len(data.get("projects") or []),
            len(data.get("tasks") or []),
            len(data.get("knowledge") or []),
        )
