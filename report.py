"""Column set and per-dependency row values of the outdated report."""

import json
import os
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from errors import ArgumentsError
from links import npmjs_url
from render import Cell, plain
from version_utils import CHANGED, NONE, UNKNOWN_VERSION, diff_segments, versions_equal

COLUMNS = {
    'name': 'Package',
    'current': 'Current',
    'wanted': 'Wanted',
    'latest': 'Latest',
    'type': 'Type',
    'location': 'Location',
    'packageType': 'Package Type',
    'reference': 'Reference',
    'changes': 'Changes',
    'changesPreferLocal': 'Changes',
    'homepage': 'Homepage',
    'npmjs': 'npmjs.com',
}

DEFAULT_COLUMNS = ('name', 'current', 'wanted', 'latest', 'type', 'location', 'packageType', 'changes')

DEPENDENCY_SECTIONS = ('dependencies', 'devDependencies', 'optionalDependencies', 'peerDependencies')

NO_REFERENCE = '-'


def parse_columns(value: str) -> Tuple[str, ...]:
    """Validate a comma separated column list, keeping its order.

    Only the first unknown column name is reported.
    """
    names = [name.strip() for name in value.split(',')]
    if not any(names):
        raise ArgumentsError("Invalid value of --columns")

    for name in names:
        if name not in COLUMNS:
            raise ArgumentsError(f'Invalid column name "{name}" in --columns')
    return tuple(names)


def column_titles(columns: Sequence[str]) -> List[str]:
    return [COLUMNS[column] for column in columns]


class ManifestReferences:
    """Finds where a dependency is declared in the root package.json.

    Positions are 1-based; the column points at the opening quote of the key.
    """

    def __init__(self, path='package.json', label=None):
        self.path = Path(path)
        self.label = label or self.path.name
        self._text = None
        self._sections: List[Tuple[int, int]] = []

    def _load(self):
        if self._text is not None:
            return

        self._text = ''
        try:
            text = self.path.read_text(encoding='utf-8')
            manifest = json.loads(text)
        except (OSError, ValueError):
            return

        if not isinstance(manifest, dict):
            return

        self._text = text
        self._sections = section_spans(text)

    def find(self, package_name: str) -> Optional[str]:
        self._load()

        key = re.compile(re.escape(json.dumps(package_name)) + r'\s*:')
        for start, end in self._sections:
            match = key.search(self._text, start, end)
            if match:
                return self._position(match.start())
        return None

    def _position(self, offset: int) -> str:
        line = self._text.count('\n', 0, offset) + 1
        column = offset - (self._text.rfind('\n', 0, offset) + 1) + 1
        return f"{self.label}:{line}:{column}"


def _string_end(text: str, start: int) -> int:
    """Index of the quote closing the JSON string opened at `start`."""
    index = start + 1
    while index < len(text):
        if text[index] == '\\':
            index += 2
            continue
        if text[index] == '"':
            return index
        index += 1
    return len(text)


def section_spans(text: str) -> List[Tuple[int, int]]:
    """Offsets of the top-level dependency section objects of a package.json text.

    Only keys directly inside these objects are dependency declarations; the
    same name elsewhere (tool config blocks, `overrides`) is not.
    """
    spans = []
    depth = 0
    key = None
    start = None
    index = 0

    while index < len(text):
        char = text[index]
        if char == '"':
            end = _string_end(text, index)
            if depth == 1:
                key = text[index + 1:end]
            index = end + 1
            continue

        if char in '{[':
            depth += 1
            if depth == 2 and char == '{' and key in DEPENDENCY_SECTIONS:
                start = index
        elif char in '}]':
            if depth == 2 and start is not None:
                spans.append((start, index))
                start = None
            depth -= 1
        index += 1

    return spans


def _name_cell(dep) -> Cell:
    record = dep.record
    required = not versions_equal(record.current, record.wanted)
    return plain(record.name, 'required' if required else 'advisory')


def _version_cell(ver_str, baseline, *styles) -> Cell:
    return [
        (segment, styles + ('emphasis',) if differs else styles)
        for segment, differs in diff_segments(ver_str, baseline)
    ]


def _current_cell(dep) -> Cell:
    record = dep.record
    if not record.current:
        return plain(UNKNOWN_VERSION, 'muted')
    return _version_cell(record.current, record.latest)


def _latest_cell(dep) -> Cell:
    record = dep.record
    return _version_cell(record.latest, record.current, 'latest')


def display_location(location: str) -> str:
    if os.sep != '/':
        return location.replace('/', os.sep)
    return location


def package_type_label(record) -> str:
    if record.is_dev_dependency:
        return 'devDependencies'
    if not record.package_type:
        return ''
    return 'dependencies'


def build_row(dep, columns: Sequence[str], links, references=None) -> List[Cell]:
    record = dep.record
    row = []

    for column in columns:
        if column == 'name':
            row.append(_name_cell(dep))
        elif column == 'current':
            row.append(_current_cell(dep))
        elif column == 'wanted':
            row.append(plain(record.wanted or '', 'wanted'))
        elif column == 'latest':
            row.append(_latest_cell(dep))
        elif column == 'type':
            row.append(plain('' if dep.update_type in (NONE, CHANGED) else dep.update_type))
        elif column == 'location':
            row.append(plain(display_location(record.location)))
        elif column == 'packageType':
            row.append(plain(package_type_label(record)))
        elif column == 'reference':
            reference = references.find(record.name) if references else None
            row.append(plain(reference) if reference else plain(NO_REFERENCE, 'muted'))
        elif column == 'changes':
            row.append(plain(links.changes(record)))
        elif column == 'changesPreferLocal':
            row.append(plain(links.changes(record, prefer_local=True)))
        elif column == 'homepage':
            row.append(plain(links.homepage(record)))
        elif column == 'npmjs':
            row.append(plain(npmjs_url(record.name)))
        else:
            raise ValueError(f"Unknown column: {column}")

    return row


def build_rows(kept, columns: Sequence[str], links, references=None) -> List[List[Cell]]:
    return [build_row(dep, columns, links, references) for dep in kept]

