"""Project compatibility scanner.

Inspects a Node/TypeScript project on disk and classifies it as
``COMPATIBLE``, ``NEEDS_ADJUSTMENT`` or ``INCOMPATIBLE`` for a Foundation
install.  The scan never touches project files; problems found along the way
are recorded as issues on the report rather than raised.  Only I/O failures
on the project itself are fatal (:class:`ScanError`).

Sub-checks run in a fixed order, each adding to a running score that is
capped at 100 once all checks have run.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from du_foundation.models.project import (
    Classification,
    Issue,
    ModuleSystem,
    ScanReport,
    Severity,
)
from du_foundation.settings import OUTPUT_DIR_NAME, settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_SCORE = 100
COMPATIBLE_SCORE = 80
MAX_MAJOR_ISSUES = 2

PACKAGE_FILE = "package.json"
TSCONFIG_FILE = "tsconfig.json"
INSTALL_MARKER = ".foundation-installed"
REPORT_FILE = "scan-report.json"

REQUIRED_DIRS: tuple[str, ...] = ("server", "client", "shared")

# TypeScript variant first: it wins when both exist.
SERVER_ENTRY_FILES: tuple[str, ...] = ("server/index.ts", "server/index.js")
ROUTES_FILES: tuple[str, ...] = ("server/routes.ts", "server/routes.js")
SERVER_FILES: tuple[str, ...] = SERVER_ENTRY_FILES + ROUTES_FILES

REQUIRED_DEPENDENCIES: tuple[str, ...] = ("express", "typescript")
RECOMMENDED_DEPENDENCIES: tuple[str, ...] = ("vite", "react", "drizzle-orm")

_POINTS = {
    "es_module_type": 15,
    "dev_script": 5,
    "directory": 10,
    "server_entry": 15,
    "routes_file": 10,
    "es_modules": 20,
    "route_registration": 15,
    "tsconfig": 10,
    "dependencies": 10,
}

_RECOMMENDATIONS: dict[Classification, list[str]] = {
    Classification.COMPATIBLE: [
        "Project is ready for Foundation",
        "Next step: install the Foundation packages into the project",
    ],
    Classification.NEEDS_ADJUSTMENT: [
        "Run `du-foundation migrate` to apply automatic adjustments",
        "Apply the listed requirements that cannot be automated",
        "Run the scanner again after adjusting the project",
    ],
    Classification.INCOMPATIBLE: [
        "Project requires significant changes before Foundation can be installed",
        "Resolve every critical issue before continuing",
    ],
}


class ScanError(Exception):
    """Raised when the project itself cannot be read."""


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify(issues: Iterable[Issue], score: int) -> Classification:
    """Derive the classification from the recorded issues and final score.

    The order of the rules is part of the contract: a critical issue always
    wins, then more than two major issues, then the score threshold.
    """
    issues = list(issues)
    if any(i.severity == Severity.CRITICAL for i in issues):
        return Classification.INCOMPATIBLE
    if sum(1 for i in issues if i.severity == Severity.MAJOR) > MAX_MAJOR_ISSUES:
        return Classification.NEEDS_ADJUSTMENT
    if score >= COMPATIBLE_SCORE:
        return Classification.COMPATIBLE
    return Classification.NEEDS_ADJUSTMENT


def read_manifest(path: Path) -> dict[str, Any] | None:
    """Parse ``package.json`` at *path*.

    Returns ``None`` when the file does not hold a JSON object.  I/O errors
    propagate.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def declared_dependencies(manifest: dict[str, Any]) -> dict[str, Any]:
    """Merge ``dependencies`` and ``devDependencies`` of a manifest."""
    deps: dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        value = manifest.get(section)
        if isinstance(value, dict):
            deps.update(value)
    return deps


def first_existing(root: Path, candidates: Iterable[str]) -> str | None:
    for candidate in candidates:
        if (root / candidate).is_file():
            return candidate
    return None


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class ProjectScanner:
    """Run every sub-check against *project_root* and build a report."""

    def __init__(self, project_root: Path | str) -> None:
        self.project_root = Path(project_root)
        self._reset()

    def _reset(self) -> None:
        self._score = 0
        self._issues: list[Issue] = []
        self._requirements: list[str] = []
        self._analysis: dict[str, Any] = {}
        self._manifest: dict[str, Any] | None = None

    # -- recording helpers --------------------------------------------------

    def _issue(self, severity: Severity, message: str, recommendation: str) -> None:
        self._issues.append(
            Issue(severity=severity, message=message, recommendation=recommendation)
        )

    def _success(self, message: str, points: int = 0) -> None:
        self._issues.append(Issue(severity=Severity.SUCCESS, message=message))
        self._score += points

    def _read_text(self, relative: str) -> str | None:
        path = self.project_root / relative
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")

    # -- entry point ---------------------------------------------------------

    def scan(self) -> ScanReport:
        """Inspect the project and return a fresh :class:`ScanReport`."""
        root = self.project_root
        if not root.exists():
            msg = f"Project root not found: {root}"
            raise ScanError(msg)
        if not root.is_dir():
            msg = f"Project root is not a directory: {root}"
            raise ScanError(msg)

        self._reset()
        logger.info("Scanning project at %s", root)
        try:
            next(root.iterdir(), None)
            self.check_package_manifest()
            self.check_directory_structure()
            self.check_server_configuration()
            self.check_module_system()
            self.check_route_registration()
            self.check_build_config()
            self.check_dependencies()
            self.check_existing_installation()
        except OSError as exc:
            msg = f"Cannot read project at {root}: {exc}"
            raise ScanError(msg) from exc

        score = min(self._score, MAX_SCORE)
        classification = classify(self._issues, score)
        logger.info("Scan of %s: %s (score %d/%d)", root, classification, score, MAX_SCORE)

        return ScanReport(
            classification=classification,
            score=score,
            maxScore=MAX_SCORE,
            scorePercentage=round(score / MAX_SCORE * 100),
            issues=self._issues,
            requirements=self._requirements,
            recommendations=list(_RECOMMENDATIONS[classification]),
            analysis=self._analysis,
            projectRoot=str(root),
            scannedAt=datetime.now(UTC).isoformat(),
        )

    # -- sub-checks ----------------------------------------------------------

    def check_package_manifest(self) -> None:
        path = self.project_root / PACKAGE_FILE
        if not path.is_file():
            self._issue(
                Severity.CRITICAL,
                "package.json not found",
                "The project must have a valid package.json",
            )
            self._analysis["packageJson"] = {"found": False}
            return

        manifest = read_manifest(path)
        if manifest is None:
            self._issue(
                Severity.CRITICAL,
                "package.json is invalid",
                "Fix the package.json syntax",
            )
            self._analysis["packageJson"] = {"found": True, "valid": False}
            return

        self._manifest = manifest
        module_type = manifest.get("type")
        scripts = manifest.get("scripts")
        has_dev = isinstance(scripts, dict) and bool(scripts.get("dev"))
        self._analysis["packageJson"] = {
            "found": True,
            "valid": True,
            "name": manifest.get("name"),
            "type": module_type,
            "hasDevScript": has_dev,
        }

        if module_type == "module":
            self._success("ES modules enabled in package.json", _POINTS["es_module_type"])
        elif module_type in (None, "commonjs"):
            self._issue(
                Severity.MAJOR,
                "Project uses CommonJS",
                "Migration to ES modules is recommended",
            )
            self._requirements.append('Migrate to ES modules ("type": "module" in package.json)')

        if has_dev:
            self._success("dev script found", _POINTS["dev_script"])
        else:
            self._issue(
                Severity.MINOR,
                "dev script not found",
                "Add a development script to package.json",
            )

    def check_directory_structure(self) -> None:
        found = [d for d in REQUIRED_DIRS if (self.project_root / d).is_dir()]
        missing = [d for d in REQUIRED_DIRS if d not in found]
        self._score += _POINTS["directory"] * len(found)
        self._analysis["projectStructure"] = {
            "requiredDirs": list(REQUIRED_DIRS),
            "foundDirs": found,
            "missingDirs": missing,
        }
        if missing:
            self._issue(
                Severity.MAJOR,
                f"Incomplete structure: missing {', '.join(missing)}",
                "Create the required directories",
            )
        else:
            self._success("Project structure complete")

    def check_server_configuration(self) -> None:
        entry = first_existing(self.project_root, SERVER_ENTRY_FILES)
        routes = first_existing(self.project_root, ROUTES_FILES)
        self._analysis["serverFiles"] = {
            "found": [f for f in SERVER_FILES if (self.project_root / f).is_file()],
            "entry": entry,
            "routes": routes,
        }

        if entry:
            self._success(f"Server entry found ({entry})", _POINTS["server_entry"])
        else:
            self._issue(
                Severity.CRITICAL,
                "Server entry file not found",
                "Create server/index.ts with an Express bootstrap",
            )

        if routes:
            self._success(f"Routes file found ({routes})", _POINTS["routes_file"])
        else:
            self._issue(
                Severity.MAJOR,
                "Routes file not found",
                "Create server/routes.ts to organise the routes",
            )

    def check_module_system(self) -> None:
        has_es = False
        has_cjs = False
        for relative in SERVER_FILES:
            content = self._read_text(relative)
            if content is None:
                continue
            if "import " in content and "from " in content:
                has_es = True
            if "require(" in content or "module.exports" in content:
                has_cjs = True

        if has_es and has_cjs:
            system = ModuleSystem.MIXED
            self._issue(
                Severity.CRITICAL,
                "Mixed module system (ES modules + CommonJS)",
                "Standardise every server file on ES modules",
            )
        elif has_es:
            system = ModuleSystem.ES_MODULES
            self._success("Server uses ES modules consistently", _POINTS["es_modules"])
        elif has_cjs:
            system = ModuleSystem.COMMONJS
            self._issue(
                Severity.MAJOR,
                "Server uses CommonJS",
                "Migration to ES modules is recommended",
            )
            self._requirements.append("Migrate imports: require() -> import/export")
        else:
            system = ModuleSystem.UNKNOWN

        self._analysis["moduleSystem"] = {
            "type": system,
            "hasESImports": has_es,
            "hasCommonJSRequire": has_cjs,
        }

    def check_route_registration(self) -> None:
        files: list[str] = []
        has_register = False
        uses_express = False
        # Evidence from both variants counts together.
        for relative in ROUTES_FILES:
            content = self._read_text(relative)
            if content is None:
                continue
            files.append(relative)
            has_register = has_register or "registerRoutes" in content
            uses_express = uses_express or "express" in content or "Express" in content
        self._analysis["routeSystem"] = {
            "files": files,
            "type": "REGISTER_FUNCTION" if has_register else "NONE",
            "hasRegisterRoutes": has_register,
            "usesExpress": uses_express,
        }

        if has_register and uses_express:
            self._success("Express route registration configured", _POINTS["route_registration"])
        elif not has_register:
            self._issue(
                Severity.MAJOR,
                "registerRoutes function not found",
                "Export a registerRoutes(app) function from the routes file",
            )

    def check_build_config(self) -> None:
        path = self.project_root / TSCONFIG_FILE
        if not path.is_file():
            self._issue(
                Severity.MINOR,
                "TypeScript not configured",
                "Add the recommended tsconfig.json",
            )
            self._analysis["typescript"] = {"configured": False}
            return

        self._success("TypeScript configured", _POINTS["tsconfig"])
        try:
            config = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            self._issue(
                Severity.MINOR,
                "tsconfig.json is invalid",
                "Fix the TypeScript configuration",
            )
            self._analysis["typescript"] = {"configured": True, "valid": False}
            return
        self._analysis["typescript"] = {"configured": True, "valid": True, "config": config}

    def check_dependencies(self) -> None:
        if self._manifest is None:
            return
        deps = declared_dependencies(self._manifest)
        missing_required = [d for d in REQUIRED_DEPENDENCIES if not deps.get(d)]
        missing_recommended = [d for d in RECOMMENDED_DEPENDENCIES if not deps.get(d)]
        self._analysis["dependencies"] = {
            "installed": sorted(deps),
            "required": list(REQUIRED_DEPENDENCIES),
            "recommended": list(RECOMMENDED_DEPENDENCIES),
            "missingRequired": missing_required,
            "missingRecommended": missing_recommended,
        }

        if missing_required:
            self._issue(
                Severity.MAJOR,
                f"Missing required dependencies: {', '.join(missing_required)}",
                "Install the required dependencies",
            )
        else:
            self._success("Required dependencies declared", _POINTS["dependencies"])

        if missing_recommended:
            self._issue(
                Severity.MINOR,
                f"Missing recommended dependencies: {', '.join(missing_recommended)}",
                "Consider installing them for a better experience",
            )

    def check_existing_installation(self) -> None:
        installed = (self.project_root / INSTALL_MARKER).exists()
        self._analysis["existingFoundation"] = {
            "installed": installed,
            "hasDirectory": (self.project_root / OUTPUT_DIR_NAME).is_dir(),
        }
        if installed:
            self._issue(
                Severity.INFO,
                "Foundation already installed",
                "Uninstall the current Foundation before reinstalling",
            )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def write_report(report: ScanReport, output_dir: Path) -> Path:
    """Persist *report* as pretty-printed JSON and return its path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / REPORT_FILE
    path.write_text(report.model_dump_json(indent=2) + "\n", encoding="utf-8")
    logger.debug("Scan report written to %s", path)
    return path


def scan_project(
    project_root: Path | str | None = None,
    output_dir: Path | str | None = None,
) -> ScanReport:
    """Scan a project and persist ``scan-report.json``.

    Defaults to the configured project root (the working directory unless
    ``DU_FOUNDATION_PROJECT_ROOT`` is set) and ``<root>/foundation``.
    """
    root = (
        Path(project_root) if project_root is not None else settings.resolved_project_root()
    )
    out = Path(output_dir) if output_dir is not None else settings.resolved_output_dir(root)
    report = ProjectScanner(root).scan()
    write_report(report, out)
    return report
