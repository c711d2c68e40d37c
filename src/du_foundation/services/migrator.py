"""Project migrator – automatic adjustments for NEEDS_ADJUSTMENT projects.

The migrator scans the project first and only touches it when the scan says
``NEEDS_ADJUSTMENT``: compatible projects are left alone, incompatible ones
are refused with manual guidance.  Before anything is written, the candidate
files are copied to a timestamped backup directory that is never cleaned up
automatically.

Each transformation checks its own precondition, so running the migrator
twice applies nothing the second time.  A failing transformation is recorded
in ``errors`` and the run continues with the next one; there is no rollback.

The source rewrite is a handful of regular expressions for the most common
CommonJS forms, not a JavaScript parser.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from du_foundation.models.project import Classification, MigrationResult, ScanReport, Severity
from du_foundation.services import templates
from du_foundation.services.scanner import (
    PACKAGE_FILE,
    REQUIRED_DIRS,
    ROUTES_FILES,
    SERVER_ENTRY_FILES,
    SERVER_FILES,
    TSCONFIG_FILE,
    declared_dependencies,
    first_existing,
    read_manifest,
    scan_project,
)
from du_foundation.settings import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

BACKUP_DIR_NAME = ".migration-backup"
REPORT_FILE = "migration-report.json"
SCHEMA_FILE = "shared/schema.ts"

BACKUP_FILES: tuple[str, ...] = (PACKAGE_FILE, *SERVER_FILES, TSCONFIG_FILE)

REQUIRED_DEPENDENCY_VERSIONS: dict[str, str] = {
    "express": "^4.18.0",
    "typescript": "^5.0.0",
}


class MigrationStage(StrEnum):
    START = "START"
    BACKUP_CREATED = "BACKUP_CREATED"
    MODULE_MIGRATION = "MODULE_MIGRATION"
    STRUCTURE = "STRUCTURE"
    SERVER_CONFIG = "SERVER_CONFIG"
    DEPENDENCIES = "DEPENDENCIES"
    SCAFFOLD = "SCAFFOLD"
    RE_SCAN = "RE_SCAN"
    DONE = "DONE"


# ---------------------------------------------------------------------------
# CommonJS -> ES modules rewrite
# ---------------------------------------------------------------------------

_REQUIRE_RE = re.compile(
    r"""(?:const|let|var)\s+(\{[^}]+\}|\w+)\s*=\s*"""
    r"""require\(\s*(['"`])([^'"`]+)\2\s*\)(?!\s*[.(\[])[ \t]*;?"""
)
_BARE_REQUIRE_RE = re.compile(
    r"""^([ \t]*)require\(\s*(['"`])([^'"`]+)\2\s*\)[ \t]*;?[ \t]*$""", re.MULTILINE
)
_EXPORTS_OBJECT_RE = re.compile(r"module\.exports\s*=\s*\{([^}]*)\};?")
_EXPORTS_DEFAULT_PROP_RE = re.compile(r"(?<![\w.])(?:module\.)?exports\.default\s*=(?!=)\s*")
_EXPORTS_FUNCTION_RE = re.compile(
    r"(?<![\w.])(?:module\.)?exports\.(\w+)\s*=\s*(async\s+)?function\b(?:\s*\w+)?"
)
_EXPORTS_VALUE_RE = re.compile(r"(?<![\w.])(?:module\.)?exports\.(\w+)\s*=(?!=)\s*")
_EXPORTS_DEFAULT_DECL_RE = re.compile(
    r"module\.exports\s*=\s*(?=(?:async\s+)?function\b|class\b)"
)
_EXPORTS_DEFAULT_RE = re.compile(r"module\.exports\s*=\s*(\w+)(?![\w.(\[])[ \t]*;?")

# Not valid as ``export const <name>`` / ``export function <name>``.
_RESERVED_WORDS = frozenset(
    """
    await break case catch class const continue debugger default delete do else
    enum export extends false finally for function if implements import in
    instanceof interface let new null package private protected public return
    static super switch this throw true try typeof var void while with yield
    """.split()
)


def _named_bindings(body: str, *, exporting: bool) -> str:
    """Turn ``a, b: c`` into ``a, b as c`` (imports) or ``a, c as b`` (exports)."""
    names: list[str] = []
    for part in body.split(","):
        part = part.strip()
        if not part:
            continue
        if ":" in part:
            key, value = (p.strip() for p in part.split(":", 1))
            names.append(f"{value} as {key}" if exporting else f"{key} as {value}")
        else:
            names.append(part)
    return ", ".join(names)


def _import_statement(match: re.Match[str]) -> str:
    binding, module = match.group(1), match.group(3)
    if binding.startswith("{"):
        return f"import {{ {_named_bindings(binding[1:-1], exporting=False)} }} from '{module}';"
    return f"import {binding} from '{module}';"


def _unless_reserved(match: re.Match[str], replacement: str) -> str:
    return match.group(0) if match.group(1) in _RESERVED_WORDS else replacement


def convert_to_es_modules(source: str) -> str:
    """Rewrite the common CommonJS import/export forms of *source*.

    Handles ``const x = require('m')`` (plain and destructured), bare
    ``require('m')`` statements, ``module.exports = {...}``,
    ``module.exports = name``, ``module.exports = function/class`` and
    ``exports.name = ...`` (``exports.default`` becoming the default export).
    Reserved-word names and anything else are left untouched.
    """
    out = _REQUIRE_RE.sub(_import_statement, source)
    out = _BARE_REQUIRE_RE.sub(lambda m: f"{m.group(1)}import '{m.group(3)}';", out)
    out = _EXPORTS_OBJECT_RE.sub(
        lambda m: f"export {{ {_named_bindings(m.group(1), exporting=True)} }};", out
    )
    out = _EXPORTS_DEFAULT_PROP_RE.sub("export default ", out)
    out = _EXPORTS_FUNCTION_RE.sub(
        lambda m: _unless_reserved(m, f"export {m.group(2) or ''}function {m.group(1)}"), out
    )
    out = _EXPORTS_VALUE_RE.sub(
        lambda m: _unless_reserved(m, f"export const {m.group(1)} = "), out
    )
    out = _EXPORTS_DEFAULT_DECL_RE.sub("export default ", out)
    out = _EXPORTS_DEFAULT_RE.sub(lambda m: f"export default {m.group(1)};", out)
    return out


def write_manifest(path: Path, manifest: dict[str, Any]) -> None:
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Migrator
# ---------------------------------------------------------------------------


class ProjectMigrator:
    """Bring a NEEDS_ADJUSTMENT project closer to COMPATIBLE."""

    def __init__(self, project_root: Path | str, output_dir: Path | str | None = None) -> None:
        self.project_root = Path(project_root)
        self.output_dir = (
            Path(output_dir)
            if output_dir is not None
            else settings.resolved_output_dir(self.project_root)
        )
        self.backup_root = self.output_dir / BACKUP_DIR_NAME
        self.stage = MigrationStage.START
        self.result = MigrationResult()

    # -- bookkeeping ---------------------------------------------------------

    def _enter(self, stage: MigrationStage) -> None:
        self.stage = stage
        logger.debug("Migration stage: %s", stage)

    def _applied(self, message: str) -> None:
        logger.info("Applied: %s", message)
        self.result.migrationsApplied.append(message)

    def _manual(self, action: str) -> None:
        logger.info("Manual action required: %s", action)
        self.result.manualActions.append(action)

    def _error(self, message: str) -> None:
        logger.warning("Migration error: %s", message)
        self.result.errors.append(message)

    def _attempt(self, stage: MigrationStage, step: Callable[[], None]) -> None:
        self._enter(stage)
        try:
            step()
        except Exception as exc:
            self._error(f"{stage}: {exc}")

    def _scan(self) -> ScanReport:
        return scan_project(self.project_root, self.output_dir)

    # -- entry point ---------------------------------------------------------

    def migrate(self) -> MigrationResult:
        """Run one migration pass and return its result."""
        self.result = MigrationResult()
        self._enter(MigrationStage.START)

        initial = self._scan()
        self.result.initialClassification = initial.classification

        if initial.classification == Classification.COMPATIBLE:
            logger.info("Project at %s is already compatible", self.project_root)
            self.result.success = True
            self.result.finalClassification = initial.classification
            self._enter(MigrationStage.DONE)
            return self.result

        if initial.classification == Classification.INCOMPATIBLE:
            logger.warning(
                "Project at %s has critical incompatibilities, refusing to migrate",
                self.project_root,
            )
            self._manual("Resolve the critical issues reported by the scan")
            for issue in initial.issues:
                if issue.severity == Severity.CRITICAL:
                    hint = f": {issue.recommendation}" if issue.recommendation else ""
                    self._manual(f"{issue.message}{hint}")
            self.result.finalClassification = initial.classification
            self._enter(MigrationStage.DONE)
            return self.result

        backup = self.create_backup()
        self.result.backupPath = str(backup)
        self._enter(MigrationStage.BACKUP_CREATED)

        self._attempt(MigrationStage.MODULE_MIGRATION, self.migrate_module_system)
        self._attempt(MigrationStage.STRUCTURE, self.ensure_structure)
        self._attempt(MigrationStage.SERVER_CONFIG, self.ensure_server_configuration)
        self._attempt(MigrationStage.DEPENDENCIES, self.ensure_dependencies)
        self._attempt(MigrationStage.SCAFFOLD, self.generate_scaffold)

        self._enter(MigrationStage.RE_SCAN)
        final = self._scan()
        self.result.finalClassification = final.classification
        self.result.success = final.classification != Classification.INCOMPATIBLE
        if final.classification != Classification.COMPATIBLE:
            self._manual(
                f"Review {self.output_dir / 'scan-report.json'} for the remaining issues"
            )

        self._enter(MigrationStage.DONE)
        logger.info(
            "Migration of %s finished: %s -> %s",
            self.project_root,
            initial.classification,
            final.classification,
        )
        return self.result

    # -- backup --------------------------------------------------------------

    def create_backup(self) -> Path:
        """Copy the candidate files into a new timestamped backup directory.

        I/O errors propagate: nothing is migrated without a backup.
        """
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.backup_root / stamp
        target.mkdir(parents=True, exist_ok=True)
        for relative in BACKUP_FILES:
            source = self.project_root / relative
            if source.is_file():
                dest = target / relative
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, dest)
        logger.info("Backup created at %s", target)
        return target

    # -- transformations -----------------------------------------------------

    def migrate_module_system(self) -> None:
        manifest_path = self.project_root / PACKAGE_FILE
        try:
            manifest = read_manifest(manifest_path)
            if manifest is None:
                self._error("package.json is invalid, cannot set the module type")
            elif manifest.get("type") != "module":
                manifest["type"] = "module"
                write_manifest(manifest_path, manifest)
                self._applied('Added "type": "module" to package.json')
        except OSError as exc:
            self._error(f"Cannot update package.json: {exc}")

        for relative in SERVER_FILES:
            path = self.project_root / relative
            if not path.is_file():
                continue
            try:
                source = path.read_text(encoding="utf-8")
                converted = convert_to_es_modules(source)
                if converted != source:
                    path.write_text(converted, encoding="utf-8")
                    self._applied(f"Converted {relative} to ES modules")
            except (OSError, UnicodeDecodeError) as exc:
                self._error(f"Cannot convert {relative}: {exc}")

    def ensure_structure(self) -> None:
        for name in REQUIRED_DIRS:
            path = self.project_root / name
            if path.is_dir():
                continue
            try:
                path.mkdir(parents=True)
            except OSError as exc:
                self._error(f"Cannot create directory {name}/: {exc}")
                continue
            self._applied(f"Created directory {name}/")

    def ensure_server_configuration(self) -> None:
        if first_existing(self.project_root, SERVER_ENTRY_FILES) is None:
            (self.project_root / SERVER_ENTRY_FILES[0]).write_text(
                templates.SERVER_INDEX_TEMPLATE, encoding="utf-8"
            )
            self._applied(f"Created basic {SERVER_ENTRY_FILES[0]}")
        if first_existing(self.project_root, ROUTES_FILES) is None:
            (self.project_root / ROUTES_FILES[0]).write_text(
                templates.ROUTES_TEMPLATE, encoding="utf-8"
            )
            self._applied(f"Created basic {ROUTES_FILES[0]}")

    def ensure_dependencies(self) -> None:
        manifest_path = self.project_root / PACKAGE_FILE
        manifest = read_manifest(manifest_path)
        if manifest is None:
            self._error("package.json is invalid, cannot add dependencies")
            return

        declared = declared_dependencies(manifest)
        missing = {
            name: version
            for name, version in REQUIRED_DEPENDENCY_VERSIONS.items()
            if not declared.get(name)
        }
        if not missing:
            return

        deps = manifest.get("dependencies")
        if not isinstance(deps, dict):
            deps = manifest["dependencies"] = {}
        deps.update(missing)
        write_manifest(manifest_path, manifest)
        self._applied(f"Added dependencies: {', '.join(missing)}")
        self._manual('Run "npm install" to install the new dependencies')

    def generate_scaffold(self) -> None:
        tsconfig = self.project_root / TSCONFIG_FILE
        if not tsconfig.exists():
            tsconfig.write_text(templates.TSCONFIG_TEMPLATE, encoding="utf-8")
            self._applied(f"Created {TSCONFIG_FILE}")
        schema = self.project_root / SCHEMA_FILE
        if not schema.exists():
            schema.write_text(templates.SCHEMA_TEMPLATE, encoding="utf-8")
            self._applied(f"Created basic {SCHEMA_FILE}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def write_report(result: MigrationResult, output_dir: Path) -> Path:
    """Persist *result* as pretty-printed JSON and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILE
    path.write_text(result.model_dump_json(indent=2) + "\n", encoding="utf-8")
    return path


def migrate_project(
    project_root: Path | str | None = None,
    output_dir: Path | str | None = None,
) -> MigrationResult:
    """Migrate a project and persist ``migration-report.json``."""
    root = (
        Path(project_root) if project_root is not None else settings.resolved_project_root()
    )
    migrator = ProjectMigrator(root, output_dir)
    result = migrator.migrate()
    write_report(result, migrator.output_dir)
    return result
