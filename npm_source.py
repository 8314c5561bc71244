"""Run `npm outdated` and turn its JSON report into dependency records."""

import json
import shutil
import subprocess
from typing import List, Optional

from errors import SourceInvocationError, UnexpectedResponseShape
from filters import DependencyRecord

NPM_TIMEOUT = 300

VERSION_FIELDS = ('current', 'wanted', 'latest')
TEXT_FIELDS = ('location', 'type', 'homepage', 'dependent')


def build_command(global_scope=False, depth: Optional[int] = None) -> List[str]:
    """Arguments of the npm call, without the executable."""
    args = ['outdated', '--json', '--long', '--save', 'false']
    if global_scope:
        args.append('--global')
    if depth is not None:
        args.extend(['--depth', str(depth)])
    return args


def run_npm_outdated(global_scope=False, depth=None, cwd=None) -> str:
    """Run npm and return what it printed on stdout.

    npm exits with status 1 whenever outdated dependencies exist, so a failing
    status alone is not an error. It is one when stdout is empty, because npm
    always prints the report when it found something outdated.
    """
    npm_path = shutil.which('npm')
    if not npm_path:
        raise SourceInvocationError("npm executable not found in PATH")

    command = [npm_path] + build_command(global_scope, depth)
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=NPM_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        raise SourceInvocationError(f"npm outdated timed out after {NPM_TIMEOUT} seconds")
    except OSError as e:
        raise SourceInvocationError(f"Could not run npm: {e}")

    if result.returncode != 0 and not result.stdout.strip():
        raise SourceInvocationError(
            f"npm outdated failed with exit code {result.returncode}",
            output=result.stderr.strip() or None,
        )

    return result.stdout


def parse_response(output: str):
    """Decode the npm output; an empty output means nothing is outdated."""
    if not output or not output.strip():
        return {}

    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise SourceInvocationError(str(e), output=output)


def _text_field(name, entry, key):
    value = entry.get(key)
    if value is None or isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise UnexpectedResponseShape({name: entry})


def parse_record(name: str, entry) -> DependencyRecord:
    """Validate one report entry before any of its fields is used."""
    if not isinstance(entry, dict):
        raise UnexpectedResponseShape({name: entry})

    fields = {key: _text_field(name, entry, key) for key in VERSION_FIELDS + TEXT_FIELDS}

    return DependencyRecord(
        name=name,
        current=fields['current'],
        wanted=fields['wanted'],
        latest=fields['latest'],
        location=fields['location'] or '',
        is_dev_dependency=fields['type'] == 'devDependencies',
        package_type=fields['type'],
        homepage=fields['homepage'],
        dependent=fields['dependent'],
    )


def validate_response(payload) -> List[DependencyRecord]:
    """Check the shape of a decoded npm report and build records in report order.

    npm answers with `{"error": {...}}` when it fails; that becomes a
    SourceInvocationError carrying npm's diagnostic fields. A package reported
    in several locations arrives as a list and yields one record per location.
    """
    if not isinstance(payload, dict):
        raise UnexpectedResponseShape(payload)

    error = payload.get('error')
    if isinstance(error, dict) and ('code' in error or 'summary' in error):
        raise SourceInvocationError(
            error.get('summary') or error.get('code') or 'npm error',
            details=error,
        )

    records = []
    for name, entry in payload.items():
        if isinstance(entry, list):
            records.extend(parse_record(name, item) for item in entry)
        else:
            records.append(parse_record(name, entry))
    return records


def gather_outdated(global_scope=False, depth=None, cwd=None) -> List[DependencyRecord]:
    output = run_npm_outdated(global_scope=global_scope, depth=depth, cwd=cwd)
    return validate_response(parse_response(output))
