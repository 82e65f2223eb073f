"""
Bundles files referenced by .include/.lib directives into a run directory and rewrites the
directives to point at the copies.

Planning (which directives exist, where they resolve, where they would land) is pure; only
bundleSpiceIncludes touches the filesystem.
"""

import hashlib
import logging
import os
import re
import shutil
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence

from config import INCLUDES_DIR_NAME, MAX_BUNDLED_BYTES, MAX_BUNDLED_FILES
from utils.types import BundledInclude, BundleResult, MissingInclude

logger = logging.getLogger(__name__)

COMMENT_RE = re.compile(r"^\s*[\*;]")
DIRECTIVE_RE = re.compile(r"^\.(include|lib)\s+(.+?)\s*$", re.IGNORECASE)
# keyword plus separator on an unstripped line; the file token starts right where it ends
DIRECTIVE_HEAD_RE = re.compile(r"^\s*\.(include|lib)\s+", re.IGNORECASE)
ILLEGAL_FILENAME_CHARS_RE = re.compile(r'[:*?"<>|]')
SEPARATORS_RE = re.compile(r"[\\/]+")

ABS_SUBDIR = "abs"
HASH_LENGTH = 10


@dataclass(frozen=True)
class IncludeDirective:
    directive: str  # "include" | "lib"
    file_token: str  # as written, quotes included
    file_path: str  # quotes stripped
    quote: str  # '"', "'" or ""


@dataclass(frozen=True)
class IncludePlan:
    directive: str
    specifier: str
    resolved_path: str
    dest_rel_path: str  # relative to the includes directory, already sanitized


def parseDirectiveLine(line: str) -> Optional[IncludeDirective]:
    trimmed = line.strip()
    if not trimmed or COMMENT_RE.match(trimmed):
        return None

    m = DIRECTIVE_RE.match(trimmed)
    if not m:
        return None

    directive = m.group(1).lower()
    rest = m.group(2).strip()

    # .lib may carry a section name after the file ("mymodels.lib TT"); only the file matters
    quote = rest[0] if rest[0] in ('"', "'") else ""
    if quote:
        end = rest.find(quote, 1)
        if end <= 0:
            return None
        file_token = rest[: end + 1]
        file_path = file_token[1:-1]
    else:
        file_token = rest.split()[0]
        file_path = file_token

    if not file_path.strip():
        return None
    return IncludeDirective(directive=directive, file_token=file_token, file_path=file_path, quote=quote)


def normalizeDestRelPath(rel: str) -> str:
    """Drops '.'/'..' segments and replaces characters that are illegal in file names."""
    parts = [
        ILLEGAL_FILENAME_CHARS_RE.sub("_", p)
        for p in SEPARATORS_RE.split(rel)
        if p and p not in (".", "..")
    ]
    return os.path.join(*parts) if parts else ""


def shortPathHash(path: str) -> str:
    return hashlib.sha1(path.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def _destRelPathFor(specifier: str, resolved: str, base_dir: str) -> str:
    if os.path.isabs(specifier):
        stem, ext = os.path.splitext(os.path.basename(resolved))
        dest_rel = normalizeDestRelPath(os.path.join(ABS_SUBDIR, f"{stem}_{shortPathHash(resolved)}{ext}"))
    else:
        dest_rel = normalizeDestRelPath(os.path.relpath(resolved, base_dir))
    # a specifier made only of traversal segments sanitizes to nothing
    return dest_rel or normalizeDestRelPath(os.path.basename(resolved)) or "include"


def planIncludes(netlist_text: str, base_file_path: str) -> List[IncludePlan]:
    """One plan entry per distinct specifier, in first-seen order."""
    base_dir = os.path.dirname(os.path.abspath(base_file_path))
    plans: List[IncludePlan] = []
    seen = set()

    for line in netlist_text.splitlines():
        info = parseDirectiveLine(line)
        if info is None or info.file_path in seen:
            continue
        seen.add(info.file_path)

        specifier = info.file_path
        if os.path.isabs(specifier):
            resolved = specifier
        else:
            resolved = os.path.normpath(os.path.join(base_dir, specifier))

        plans.append(
            IncludePlan(
                directive=info.directive,
                specifier=specifier,
                resolved_path=resolved,
                dest_rel_path=_destRelPathFor(specifier, resolved, base_dir),
            )
        )

    return plans


def confineToRoot(root: str, rel_path: str) -> str:
    root_abs = os.path.abspath(root)
    dest = os.path.abspath(os.path.join(root_abs, rel_path))
    if os.path.commonpath([root_abs, dest]) != root_abs or dest == root_abs:
        raise ValueError(f"destination {rel_path!r} escapes {root}")
    return dest


def _sizeOf(path: str) -> int:
    if os.path.isdir(path):
        total = 0
        for dirpath, _, filenames in os.walk(path):
            for name in filenames:
                total += os.path.getsize(os.path.join(dirpath, name))
        return total
    return os.path.getsize(path)


def _copy(src: str, dest: str) -> None:
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    if os.path.isdir(src):
        shutil.copytree(src, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest)


def rewriteDirectives(lines: Sequence[str], rewrite_map: Mapping[str, str]) -> str:
    """Second pass: swaps the file token of every directive found in rewrite_map, keeping its quotes."""
    out = []
    for line in lines:
        info = parseDirectiveLine(line)
        rewritten = rewrite_map.get(info.file_path) if info is not None else None
        if rewritten is None:
            out.append(line)
            continue
        start = DIRECTIVE_HEAD_RE.match(line).end()
        replacement = f"{info.quote}{rewritten}{info.quote}"
        out.append(line[:start] + replacement + line[start + len(info.file_token) :])
    return "".join(out)


def bundleSpiceIncludes(
    netlist_text: str,
    base_file_path: str,
    output_root: str,
    includes_dir_name: str = INCLUDES_DIR_NAME,
    max_files: int = MAX_BUNDLED_FILES,
    max_total_bytes: int = MAX_BUNDLED_BYTES,
) -> BundleResult:
    """
    Copies every resolvable include into <output_root>/<includes_dir_name> and returns the netlist with
    its directives rewritten to POSIX paths relative to output_root. Missing files are reported and their
    lines left untouched; once the file or byte budget runs out the remaining includes stay as written.
    """
    includes_dir = confineToRoot(output_root, includes_dir_name)
    os.makedirs(includes_dir, exist_ok=True)

    copied: List[BundledInclude] = []
    missing: List[MissingInclude] = []
    rewrites = {}
    total_bytes = 0

    for plan in planIncludes(netlist_text, base_file_path):
        if not os.path.exists(plan.resolved_path):
            missing.append(
                MissingInclude(
                    directive=plan.directive,
                    original_specifier=plan.specifier,
                    resolved_attempt_path=plan.resolved_path,
                )
            )
            continue

        if len(copied) >= max_files:
            logger.warning(f"Include bundling stopped at the file limit ({max_files}).")
            break

        size = _sizeOf(plan.resolved_path)
        if total_bytes + size > max_total_bytes:
            logger.warning(f"Include bundling stopped at the size limit ({max_total_bytes} bytes).")
            break

        dest_path = confineToRoot(includes_dir, plan.dest_rel_path)
        _copy(plan.resolved_path, dest_path)
        total_bytes += size

        rewrites[plan.specifier] = os.path.relpath(dest_path, os.path.abspath(output_root)).replace("\\", "/")
        copied.append(
            BundledInclude(
                directive=plan.directive,
                original_specifier=plan.specifier,
                resolved_source_path=plan.resolved_path,
                dest_path=dest_path,
            )
        )

    rewritten_text = rewriteDirectives(netlist_text.splitlines(keepends=True), MappingProxyType(rewrites))
    return BundleResult(
        rewritten_text=rewritten_text,
        copied=tuple(copied),
        missing=tuple(missing),
        includes_dir=includes_dir,
    )
