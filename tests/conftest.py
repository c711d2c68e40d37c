"""Shared test fixtures for du-foundation tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from du_foundation.app import app
from du_foundation.settings import settings

# ---------------------------------------------------------------------------
# Sample project files
# ---------------------------------------------------------------------------

ES_SERVER_INDEX = """\
import express from "express";
import { registerRoutes } from "./routes";

const app = express();
app.use(express.json());

const server = await registerRoutes(app);
server.listen(5000);
"""

ES_ROUTES = """\
import type { Express } from "express";
import { createServer, type Server } from "http";

export async function registerRoutes(app: Express): Promise<Server> {
  app.get("/api/health", (_req, res) => res.json({ status: "ok" }));
  return createServer(app);
}
"""

CJS_SERVER_INDEX = """\
const express = require('express');
const { registerRoutes } = require('./routes');

const app = express();
registerRoutes(app);
app.listen(5000);
"""

CJS_ROUTES = """\
const express = require('express');

function registerRoutes(app) {
  app.get('/api/health', (req, res) => res.json({ status: 'ok' }));
}

module.exports = { registerRoutes };
"""

COMPATIBLE_MANIFEST = {
    "name": "demo",
    "type": "module",
    "scripts": {"dev": "tsx server/index.ts"},
    "dependencies": {"express": "^4.18.2", "react": "^18.2.0", "drizzle-orm": "^0.30.0"},
    "devDependencies": {"typescript": "^5.4.0", "vite": "^5.0.0"},
}

LEGACY_MANIFEST = {
    "name": "legacy",
    "scripts": {"dev": "node server/index.js"},
    "dependencies": {"express": "^4.18.2"},
}

ProjectFactory = Callable[..., Path]


def write_project(
    root: Path,
    *,
    manifest: dict | str | None = None,
    dirs: tuple[str, ...] = (),
    files: dict[str, str] | None = None,
) -> Path:
    """Lay out a project under *root*.

    *manifest* is written to ``package.json`` (JSON-encoded unless it is
    already a string); *files* maps relative paths to contents.
    """
    root.mkdir(parents=True, exist_ok=True)
    if manifest is not None:
        text = manifest if isinstance(manifest, str) else json.dumps(manifest, indent=2)
        (root / "package.json").write_text(text, encoding="utf-8")
    for name in dirs:
        (root / name).mkdir(parents=True, exist_ok=True)
    for relative, content in (files or {}).items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture()
def make_project(tmp_path: Path) -> ProjectFactory:
    """Factory writing a project under ``tmp_path / name``."""

    def _make(name: str = "project", **kwargs) -> Path:
        return write_project(tmp_path / name, **kwargs)

    return _make


@pytest.fixture()
def compatible_project(make_project: ProjectFactory) -> Path:
    return make_project(
        "compatible",
        manifest=COMPATIBLE_MANIFEST,
        dirs=("server", "client", "shared"),
        files={
            "server/index.ts": ES_SERVER_INDEX,
            "server/routes.ts": ES_ROUTES,
            "tsconfig.json": "{}\n",
        },
    )


@pytest.fixture()
def legacy_project(make_project: ProjectFactory) -> Path:
    """CommonJS project missing ``shared/``, typescript and tsconfig."""
    return make_project(
        "legacy",
        manifest=LEGACY_MANIFEST,
        dirs=("server", "client"),
        files={
            "server/index.js": CJS_SERVER_INDEX,
            "server/routes.js": CJS_ROUTES,
        },
    )


@pytest.fixture()
def stubborn_project(make_project: ProjectFactory) -> Path:
    """A project the migrator can only partly fix.

    ``client`` is a regular file, the entry point uses a CommonJS form the
    rewrite leaves alone, and the routes file has no ``registerRoutes``.
    """
    return make_project(
        "stubborn",
        manifest={
            "name": "stubborn",
            "type": "module",
            "scripts": {"dev": "node server/index.js"},
            "dependencies": {"express": "^4.18.2", "typescript": "^5.4.0"},
        },
        dirs=("server",),
        files={
            "client": "not a directory\n",
            "server/index.js": "const app = require('express')();\napp.listen(5000);\n",
            "server/routes.js": (
                "function setup(app) {\n  app.get('/', (req, res) => res.send('ok'));\n}\n"
            ),
        },
    )


@pytest.fixture()
def mixed_project(make_project: ProjectFactory) -> Path:
    return make_project(
        "mixed",
        manifest=COMPATIBLE_MANIFEST,
        dirs=("server", "client", "shared"),
        files={
            "server/index.ts": ES_SERVER_INDEX,
            "server/routes.ts": ES_ROUTES + "\nconst legacy = require('./legacy');\n",
            "tsconfig.json": "{}\n",
        },
    )


def snapshot(root: Path) -> dict[str, bytes]:
    """Map every file under *root* (outside ``foundation/``) to its bytes."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and "foundation" not in p.relative_to(root).parts
    }


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """FastAPI test client bound to an isolated project root."""
    root = tmp_path / "api-project"
    root.mkdir()
    monkeypatch.setattr(settings, "project_root", root)
    monkeypatch.setattr(settings, "output_dir", None)
    with TestClient(app) as c:
        yield c
