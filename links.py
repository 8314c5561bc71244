"""Changelog and homepage links for a dependency, read from its installed package.json."""

import json
import os
import re
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

NPMJS_PACKAGE_URL = 'https://www.npmjs.com/package/'

CHANGELOG_FILES = ('CHANGELOG.md', 'changelog.md', 'CHANGELOG', 'HISTORY.md', 'History.md', 'CHANGES.md')

SHORTHAND_HOSTS = {
    'github': 'github.com',
    'gitlab': 'gitlab.com',
    'bitbucket': 'bitbucket.org',
    'gist': 'gist.github.com',
}

SHORTHAND_PATTERN = re.compile(r'^(github|gitlab|bitbucket|gist):(.+)$')
GITHUB_SHORTHAND_PATTERN = re.compile(r'^[\w.-]+/[\w.-]+$')
SCP_URL_PATTERN = re.compile(r'^[\w.-]+@([^:/]+):(.+)$')
GIT_URL_PATTERN = re.compile(r'^(?:git|ssh|git\+ssh)://(?:[^@/]+@)?([^/:]+)(?::\d+)?/(.+)$')
AUTHOR_PATTERN = re.compile(r'^\s*([^<(]*?)\s*(?:<([^>]*)>)?\s*(?:\(([^)]*)\))?\s*$')

# (pattern, rewrite) pairs; the first matching pattern decides where changes are listed
CHANGES_REWRITES = (
    (re.compile(r'^(https?://gist\.github\.com/[^#?]+?)/?$'), lambda m: f"{m.group(1)}/revisions"),
    (re.compile(r'^(https?://(?:www\.)?github\.com/[^/#?]+/[^/#?]+)'), lambda m: f"{m.group(1)}/releases"),
    (re.compile(r'^(https?://gitlab\.com/[^#?]+?)/?$'), lambda m: f"{m.group(1)}/-/releases"),
    (re.compile(r'^https?://bitbucket\.org/'), lambda m: m.string),
)


def npmjs_url(package_name: str) -> str:
    return NPMJS_PACKAGE_URL + quote(package_name, safe='')


def normalize_repository_url(url) -> Optional[str]:
    """Turn a git remote or repository shorthand into a browsable https URL."""
    if not isinstance(url, str) or not url.strip():
        return None

    url = url.strip()

    match = SHORTHAND_PATTERN.match(url)
    if match:
        return f"https://{SHORTHAND_HOSTS[match.group(1)]}/{match.group(2).strip('/')}"

    if GITHUB_SHORTHAND_PATTERN.match(url):
        return f"https://github.com/{url}"

    if url.startswith('git+'):
        url = url[len('git+'):]

    match = SCP_URL_PATTERN.match(url) or GIT_URL_PATTERN.match(url)
    if match:
        url = f"https://{match.group(1)}/{match.group(2)}"

    if not url.startswith(('https://', 'http://')):
        return None

    if url.endswith('.git'):
        url = url[:-len('.git')]
    return url.rstrip('/')


def repository_url(manifest) -> Optional[str]:
    repository = manifest.get('repository')
    if isinstance(repository, dict):
        repository = repository.get('url')
    return normalize_repository_url(repository)


def changes_url(repo_url: str) -> str:
    for pattern, rewrite in CHANGES_REWRITES:
        match = pattern.match(repo_url)
        if match:
            return rewrite(match)
    return repo_url


def author_url(manifest) -> Optional[str]:
    """URL of the author, given as an object or as a "Name <email> (url)" string."""
    author = manifest.get('author')
    if isinstance(author, dict):
        url = author.get('url')
        return url if isinstance(url, str) and url else None

    if isinstance(author, str):
        match = AUTHOR_PATTERN.match(author)
        if match and match.group(3):
            return match.group(3).strip() or None

    return None


def _text(manifest, key) -> Optional[str]:
    value = manifest.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


class LinkResolver:
    """Resolves link columns, reading each package directory at most once.

    Relative locations are resolved against `base_dir` (the directory npm was
    run in). Missing or unreadable files are treated as absent.
    """

    def __init__(self, base_dir=None):
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self._manifests: Dict[str, dict] = {}

    def _package_dir(self, location) -> Path:
        return self.base_dir / location

    def manifest(self, record) -> dict:
        location = record.location
        if not location:
            return {}

        if location not in self._manifests:
            self._manifests[location] = self._read_manifest(self._package_dir(location) / 'package.json')
        return self._manifests[location]

    @staticmethod
    def _read_manifest(path: Path) -> dict:
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def local_changelog(self, record) -> Optional[str]:
        if not record.location:
            return None

        package_dir = self._package_dir(record.location)
        for filename in CHANGELOG_FILES:
            path = package_dir / filename
            try:
                if path.is_file() and path.read_text(encoding='utf-8', errors='replace').strip():
                    return os.path.join(record.location, filename)
            except OSError:
                continue
        return None

    def changes(self, record, prefer_local=False) -> str:
        if prefer_local:
            local = self.local_changelog(record)
            if local:
                return local

        manifest = self.manifest(record)

        repo = repository_url(manifest)
        if repo:
            return changes_url(repo)

        return _text(manifest, 'homepage') or npmjs_url(record.name)

    def homepage(self, record) -> str:
        manifest = self.manifest(record)
        return (
            record.homepage
            or _text(manifest, 'homepage')
            or repository_url(manifest)
            or author_url(manifest)
            or npmjs_url(record.name)
        )
