"""Data model detection for Prisma schemas, TypeScript declarations and Zod."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from ..models import DataField, DataModel, ScanResult
from .base import Detector
from .utils import match_block

_PRISMA_MODEL = re.compile(r"^\s*model\s+(\w+)\s*\{", re.M)
_PRISMA_FIELD = re.compile(r"^\s*(\w+)\s+(\w+)(\[\])?(\?)?", re.M)

_TS_INTERFACE = re.compile(r"\binterface\s+(\w+)(?:\s+extends\s+[\w<>,\s]+)?\s*\{")
_TS_TYPE = re.compile(r"\btype\s+(\w+)\s*=\s*\{")
_TS_FIELD = re.compile(r"^\s*(?:readonly\s+)?(\w+)(\??)\s*:\s*([^;,\n]+)", re.M)

_ZOD_SCHEMA = re.compile(r"\bconst\s+(\w+?)Schema\s*=\s*z\.object\(\s*\{")
_ZOD_FIELD = re.compile(r"^\s*(\w+)\s*:\s*z\.(\w+)\(([^\n]*)", re.M)

_HELPER_TYPE_MARKERS = ("Props", "State", "Context")
_SCRIPT_FILE = re.compile(r"\.(tsx|ts|jsx|js)$")


def _is_helper_interface(name: str) -> bool:
    if len(name) > 1 and name[0] == "I" and name[1].isupper():
        return True
    return any(marker in name for marker in _HELPER_TYPE_MARKERS)


def _is_helper_type(name: str) -> bool:
    if len(name) > 1 and name[0] == "T" and name[1].isupper():
        return True
    return any(marker in name for marker in _HELPER_TYPE_MARKERS)


def _prisma_fields(body: str) -> Tuple[DataField, ...]:
    fields: List[DataField] = []
    for match in _PRISMA_FIELD.finditer(body):
        name, kind, is_list, optional = match.groups()
        if name.startswith("@@"):
            continue
        fields.append(
            DataField(name=name, type=kind + ("[]" if is_list else ""), required=not optional)
        )
    return tuple(fields)


def _ts_fields(body: str) -> Tuple[DataField, ...]:
    fields: List[DataField] = []
    for match in _TS_FIELD.finditer(body):
        name, optional, kind = match.groups()
        fields.append(DataField(name=name, type=kind.strip(), required=not optional))
    return tuple(fields)


def _zod_fields(body: str) -> Tuple[DataField, ...]:
    fields: List[DataField] = []
    for match in _ZOD_FIELD.finditer(body):
        name, kind, rest = match.groups()
        fields.append(
            DataField(name=name, type=f"z.{kind}", required=".optional()" not in rest)
        )
    return tuple(fields)


def extract_prisma_models(content: str, path: str) -> Iterator[DataModel]:
    for match in _PRISMA_MODEL.finditer(content):
        body = match_block(content, match.end() - 1)
        yield DataModel(name=match.group(1), kind="prisma", file=path, fields=_prisma_fields(body))


def extract_typescript_models(content: str, path: str) -> Iterator[DataModel]:
    for match in _TS_INTERFACE.finditer(content):
        name = match.group(1)
        if _is_helper_interface(name):
            continue
        body = match_block(content, match.end() - 1)
        yield DataModel(name=name, kind="interface", file=path, fields=_ts_fields(body))
    for match in _TS_TYPE.finditer(content):
        name = match.group(1)
        if _is_helper_type(name):
            continue
        body = match_block(content, match.end() - 1)
        yield DataModel(name=name, kind="type", file=path, fields=_ts_fields(body))


def extract_zod_models(content: str, path: str) -> Iterator[DataModel]:
    for match in _ZOD_SCHEMA.finditer(content):
        raw = match.group(1)
        name = raw[:1].upper() + raw[1:]
        body = match_block(content, match.end() - 1)
        yield DataModel(name=name, kind="zod", file=path, fields=_zod_fields(body))


class DataModelDetector(Detector):
    """Collects entities from schema and model files."""

    name = "data_models"

    def candidates(self, scan: ScanResult) -> Sequence[str]:
        return list(scan.model_files)

    def extract(self, content: str, path: str) -> Iterable[DataModel]:
        if path.endswith(".prisma"):
            return list(extract_prisma_models(content, path))
        if not _SCRIPT_FILE.search(path):
            return []
        found = list(extract_typescript_models(content, path))
        found.extend(extract_zod_models(content, path))
        return found

    def finalize(self, facts: List[DataModel]) -> List[DataModel]:
        seen: Set[str] = set()
        unique: List[DataModel] = []
        for model in facts:
            if model.name in seen:
                continue
            seen.add(model.name)
            unique.append(model)
        return unique

    def framework_of(self, fact: DataModel) -> Optional[str]:
        return {"prisma": "prisma", "zod": "zod"}.get(fact.kind, "typescript")


__all__ = [
    "DataModelDetector",
    "extract_prisma_models",
    "extract_typescript_models",
    "extract_zod_models",
]
