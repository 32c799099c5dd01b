"""Evidence collection from briefs, READMEs, docs and code summaries."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .analyzers.utils import read_text
from .logging import get_logger
from .models import EvidenceDocument, ScanResult, TechnicalFacts
from .repo_scanner import RepoScanner

README_CANDIDATES: Tuple[str, ...] = ("README.md", "README.txt", "readme.md", "readme.txt")
DOC_DIRECTORIES: Tuple[str, ...] = (
    "docs",
    "doc",
    "documentation",
    "prd",
    "product",
    "requirements",
    "spec",
    "specs",
    "adr",
    "architecture",
    "design",
)
DOC_SUFFIXES: Tuple[str, ...] = (".md", ".mdx", ".txt", ".rst")
MAX_DOC_FILES = 30
MAX_CHARS_PER_DOC = 25_000
MAX_CONFIG_CHARS = 5_000
MAX_TEST_FILES = 20
MAX_COMPONENT_SCREENS = 30
MAX_PATTERN_FILES = 300

CONFIG_CANDIDATES: Tuple[str, ...] = (
    ".env.example",
    ".env.local.example",
    ".env.sample",
    "next.config.js",
    "next.config.mjs",
    "next.config.ts",
    "vite.config.ts",
    "vite.config.js",
    "tsconfig.json",
    "tailwind.config.js",
    "tailwind.config.ts",
    "docker-compose.yml",
    "vercel.json",
    "netlify.toml",
    "firebase.json",
)

_CONFIG_INSIGHTS: Tuple[Tuple[str, str], ...] = (
    ("vercel", "Hosting: Vercel"),
    ("netlify", "Hosting: Netlify"),
    ("aws", "Cloud: AWS"),
    ("supabase", "Backend: Supabase"),
    ("firebase", "Backend: Firebase"),
    ("mongo", "Database: MongoDB"),
    ("postgres", "Database: PostgreSQL"),
    ("mysql", "Database: MySQL"),
    ("redis", "Cache: Redis"),
    ("stripe", "Payments: Stripe"),
    ("sendgrid", "Email: SendGrid"),
    ("i18n", "Internationalization enabled"),
)

_TEST_FILE = re.compile(r"\.(test|spec)\.(tsx|jsx|ts|js)$")
_TEST_NAME = re.compile(r"\b(?:describe|it|test)\(\s*['\"`]([^'\"`]+)['\"`]")
_PROPS_INTERFACE = re.compile(r"\binterface\s+(\w+Props)\s*\{([^}]*)\}")
_PROP_FIELD = re.compile(r"^\s*(\w+)\??\s*:", re.M)
_FORM_FIELD = re.compile(r"<(?:input|Input|select|Select|textarea|Textarea)\b[^>]*\bname=['\"]([\w.-]+)['\"]")
_UI_PATTERNS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("table", re.compile(r"<(?:table|Table|DataGrid)\b")),
    ("modal", re.compile(r"<(?:Modal|Dialog)\b")),
    ("form", re.compile(r"<(?:form|Form)\b")),
    ("chart", re.compile(r"<\w*Chart\b")),
    ("pagination", re.compile(r"\b[Pp]agination\b")),
    ("search", re.compile(r"\b(?:search|Search)\w*\b")),
)
_CODE_PATTERNS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("auth", re.compile(r"next-auth|useSession|signIn\(|jsonwebtoken|\bjwt\b|passport|auth0|@clerk|supabase\.auth|firebase/auth")),
    ("rbac", re.compile(r"\b(?:hasRole|isAdmin|permissions?|userRole|role\s*===)")),
    ("dataFlow", re.compile(r"\b(?:useQuery|useSWR|useMutation|axios\.|fetch\()")),
    ("errorHandling", re.compile(r"\bcatch\s*\(|ErrorBoundary|toast\.error|throw new \w*Error")),
)
_SCRIPT_FILE = re.compile(r"\.(tsx|jsx|ts|js)$")

TIER2_TYPES: FrozenSet[str] = frozenset(
    {"uploaded_brief", "repo_readme", "repo_docs", "package_metadata", "code_summary"}
)

MODES: Dict[str, Optional[FrozenSet[str]]] = {
    "tier2": TIER2_TYPES,
    "tier3": None,
    "full": None,
}


def summarize_facts(facts: TechnicalFacts, *, detailed: bool = True) -> str:
    """Plain-text digest of Tier-1 facts for use as evidence."""
    lines: List[str] = []
    if facts.stack:
        lines.append(f"Detected stack: {', '.join(facts.stack)}")
    lines.append(
        f"Screens: {len(facts.screens)}; API endpoints: {len(facts.api)}; "
        f"data models: {len(facts.data_models)}; navigation routes: {len(facts.navigation)}"
    )
    if facts.screens:
        lines.append("Screens: " + ", ".join(screen.name for screen in facts.screens[:40]))
    if facts.data_models:
        lines.append("Data models: " + ", ".join(model.name for model in facts.data_models[:40]))
    if not detailed:
        return "\n".join(lines)

    if facts.api:
        lines.append("API endpoints:")
        lines.extend(f"- {endpoint.method} {endpoint.path} ({endpoint.file})" for endpoint in facts.api[:80])
    for model in facts.data_models[:40]:
        fields = ", ".join(
            f"{field.name}{'' if field.required else '?'}: {field.type}" for field in model.fields[:20]
        )
        lines.append(f"Model {model.name} [{model.kind}]: {fields}")
    if facts.navigation:
        lines.append("Navigation: " + ", ".join(f"{item.label} ({item.path})" for item in facts.navigation[:40]))
    if facts.state:
        lines.append("State management: " + ", ".join(f"{item.type}:{item.name}" for item in facts.state[:30]))
    if facts.events:
        lines.append(f"User interactions detected: {len(facts.events)}")
    return "\n".join(lines)


class EvidenceCollector:
    """Gathers ordered evidence documents; order encodes priority."""

    def __init__(self, mode: str = "full", scanner: RepoScanner | None = None) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown evidence mode: {mode}")
        self.mode = mode
        self.scanner = scanner or RepoScanner()
        self.logger = get_logger("evidence")

    def collect(
        self,
        path: str | Path,
        *,
        brief_text: str | None = None,
        facts: TechnicalFacts | None = None,
    ) -> List[EvidenceDocument]:
        root = Path(path).expanduser().resolve()
        documents: List[EvidenceDocument] = []

        if brief_text and brief_text.strip():
            documents.append(
                EvidenceDocument(
                    id="brief-text",
                    type="uploaded_brief",
                    title="Uploaded project brief",
                    content=brief_text.strip(),
                )
            )
        documents.extend(self._readme(root))
        documents.extend(self._package_metadata(root))
        documents.extend(self._docs(root))
        if facts is not None:
            documents.append(
                EvidenceDocument(
                    id="code-summary",
                    type="code_summary",
                    title="Code structure summary",
                    content=summarize_facts(facts, detailed=self.mode != "tier2"),
                )
            )

        allowed = MODES[self.mode]
        if allowed is None:
            scan = self.scanner.scan(root)
            documents.extend(self._config_files(root))
            documents.extend(self._component_analysis(root, scan))
            documents.extend(self._test_files(root, scan))
            documents.extend(self._code_patterns(root, scan))
        else:
            documents = [document for document in documents if document.type in allowed]

        self.logger.debug(
            "Collected %d evidence documents (%s mode): %s",
            len(documents),
            self.mode,
            ", ".join(document.id for document in documents),
        )
        return documents

    # ------------------------------------------------------------------
    # Product sources
    # ------------------------------------------------------------------

    def _readme(self, root: Path) -> Iterable[EvidenceDocument]:
        for candidate in README_CANDIDATES:
            text = read_text(root, candidate)
            if text is None or not text.strip():
                continue
            return [
                EvidenceDocument(
                    id=f"readme-{candidate}",
                    type="repo_readme",
                    title=f"Repository README ({candidate})",
                    content=text[:MAX_CHARS_PER_DOC],
                    source_path=candidate,
                )
            ]
        return []

    def _package_metadata(self, root: Path) -> Iterable[EvidenceDocument]:
        text = read_text(root, "package.json")
        if text is None:
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            self.logger.debug("Skipping unparsable package.json")
            return []
        if not isinstance(data, dict):
            return []
        lines: List[str] = []
        for key in ("name", "description", "version"):
            value = data.get(key)
            if isinstance(value, str) and value:
                lines.append(f"{key}: {value}")
        scripts = data.get("scripts")
        if isinstance(scripts, dict) and scripts:
            lines.append("scripts: " + ", ".join(sorted(str(name) for name in scripts)))
        for key in ("dependencies", "devDependencies"):
            section = data.get(key)
            if isinstance(section, dict) and section:
                lines.append(f"{key}: " + ", ".join(sorted(str(name) for name in section)))
        if not lines:
            return []
        return [
            EvidenceDocument(
                id="package-metadata",
                type="package_metadata",
                title="Package metadata",
                content="\n".join(lines),
                source_path="package.json",
            )
        ]

    def _docs(self, root: Path) -> Iterable[EvidenceDocument]:
        documents: List[EvidenceDocument] = []
        for directory in DOC_DIRECTORIES:
            folder = root / directory
            try:
                if not folder.is_dir():
                    continue
                entries = sorted(folder.iterdir())
            except OSError:
                continue
            for entry in entries:
                if len(documents) >= MAX_DOC_FILES:
                    return documents
                if entry.suffix.lower() not in DOC_SUFFIXES:
                    continue
                relative = entry.relative_to(root).as_posix()
                text = read_text(root, relative)
                if text is None or not text.strip():
                    continue
                documents.append(
                    EvidenceDocument(
                        id=f"doc-{relative}",
                        type="repo_docs",
                        title=f"Documentation: {relative}",
                        content=text[:MAX_CHARS_PER_DOC],
                        source_path=relative,
                    )
                )
        return documents

    # ------------------------------------------------------------------
    # Technical sources (tier3/full only)
    # ------------------------------------------------------------------

    def _config_files(self, root: Path) -> Iterable[EvidenceDocument]:
        documents: List[EvidenceDocument] = []
        for candidate in CONFIG_CANDIDATES:
            text = read_text(root, candidate)
            if text is None or not text.strip():
                continue
            lowered = text.lower()
            insights = [label for keyword, label in _CONFIG_INSIGHTS if keyword in lowered]
            content = text[:MAX_CONFIG_CHARS]
            if insights:
                content += "\n\nInsights: " + "; ".join(insights)
            documents.append(
                EvidenceDocument(
                    id=f"config-{candidate}",
                    type="config_file",
                    title=f"Configuration: {candidate}",
                    content=content,
                    source_path=candidate,
                )
            )
        return documents

    def _component_analysis(self, root: Path, scan: ScanResult) -> Iterable[EvidenceDocument]:
        lines: List[str] = []
        for relative in scan.screens[:MAX_COMPONENT_SCREENS]:
            text = read_text(root, relative)
            if text is None:
                continue
            parts: List[str] = []
            for match in _PROPS_INTERFACE.finditer(text):
                props = _PROP_FIELD.findall(match.group(2))
                parts.append(f"{match.group(1)}({', '.join(props)})")
            fields = sorted(set(_FORM_FIELD.findall(text)))
            if fields:
                parts.append("form fields: " + ", ".join(fields))
            patterns = [name for name, pattern in _UI_PATTERNS if pattern.search(text)]
            if patterns:
                parts.append("ui: " + ", ".join(patterns))
            if parts:
                lines.append(f"- {relative}: " + "; ".join(parts))
        if not lines:
            return []
        return [
            EvidenceDocument(
                id="component-analysis",
                type="component_analysis",
                title="Component analysis",
                content="\n".join(lines),
            )
        ]

    def _test_files(self, root: Path, scan: ScanResult) -> Iterable[EvidenceDocument]:
        tests = [path for path in scan.all_files if _TEST_FILE.search(path)][:MAX_TEST_FILES]
        lines: List[str] = []
        for relative in tests:
            text = read_text(root, relative)
            if text is None:
                continue
            names = _TEST_NAME.findall(text)
            if names:
                lines.append(f"{relative}:")
                lines.extend(f"  - {name}" for name in names[:25])
        if not lines:
            return []
        return [
            EvidenceDocument(
                id="test-files",
                type="test_file",
                title="Test suite overview",
                content="\n".join(lines),
            )
        ]

    def _code_patterns(self, root: Path, scan: ScanResult) -> Iterable[EvidenceDocument]:
        hits: Dict[str, List[str]] = {name: [] for name, _ in _CODE_PATTERNS}
        scripts = [path for path in scan.all_files if _SCRIPT_FILE.search(path)][:MAX_PATTERN_FILES]
        for relative in scripts:
            text = read_text(root, relative)
            if text is None:
                continue
            for name, pattern in _CODE_PATTERNS:
                if pattern.search(text):
                    hits[name].append(relative)
        lines = [
            f"{name}: {len(files)} files (e.g. {', '.join(files[:5])})"
            for name, files in hits.items()
            if files
        ]
        if not lines:
            return []
        return [
            EvidenceDocument(
                id="code-patterns",
                type="code_patterns",
                title="Cross-cutting code patterns",
                content="\n".join(lines),
            )
        ]


__all__ = ["EvidenceCollector", "MODES", "TIER2_TYPES", "summarize_facts"]
