"""Ignore rules and the decision which reported dependencies count as outdated."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from version_utils import PRERELEASE, UNKNOWN_VERSION, classify_update, versions_equal


@dataclass(frozen=True)
class DependencyRecord:
    """One entry of the `npm outdated` report."""
    name: str
    current: Optional[str] = None
    wanted: Optional[str] = None
    latest: Optional[str] = None
    location: str = ''
    is_dev_dependency: bool = False
    package_type: Optional[str] = None
    homepage: Optional[str] = None
    dependent: Optional[str] = None


@dataclass(frozen=True)
class IgnoreRule:
    package_name: str
    exact_version: Optional[str] = None

    @classmethod
    def parse(cls, token: str) -> 'IgnoreRule':
        """Parse `name`, `name@version`, `@scope/name` or `@scope/name@version`."""
        token = token.strip()
        separator = token.rfind('@')
        if separator > 0:
            return cls(token[:separator], token[separator + 1:] or None)
        return cls(token)

    def __str__(self):
        if self.exact_version:
            return f"{self.package_name}@{self.exact_version}"
        return self.package_name


@dataclass(frozen=True)
class FilterOptions:
    ignore_pre_releases: bool = False
    ignore_dev_dependencies: bool = False
    ignore_rules: Tuple[IgnoreRule, ...] = ()


@dataclass(frozen=True)
class ClassifiedDependency:
    record: DependencyRecord
    update_type: str
    is_filtered: bool = False
    filtered_by: Optional[str] = None
    ineffective_filter: Optional[str] = None

    @property
    def name(self):
        return self.record.name

    @property
    def is_outdated(self):
        """Installed version differs from the wanted or the latest one."""
        record = self.record
        if not record.current:
            return True
        return (not versions_equal(record.current, record.latest)
                or not versions_equal(record.current, record.wanted))


@dataclass(frozen=True)
class RunResult:
    dependencies: Tuple[ClassifiedDependency, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def summary_count(self) -> int:
        return len(self.dependencies)

    @property
    def has_outdated(self) -> bool:
        return self.summary_count > 0


def ineffective_filter_message(rule: IgnoreRule, latest) -> str:
    return (f'The --ignore-packages filter "{rule}" has no effect, '
            f'the latest version is {latest or UNKNOWN_VERSION}.')


def _exclusion_reason(record, update_type, options):
    if options.ignore_dev_dependencies and record.is_dev_dependency:
        return 'devDependencies'

    if options.ignore_pre_releases and update_type == PRERELEASE:
        return 'pre-release'

    for rule in options.ignore_rules:
        if rule.package_name != record.name:
            continue
        if rule.exact_version is None or versions_equal(rule.exact_version, record.latest):
            return f'--ignore-packages {rule}'

    return None


def classify_dependencies(records: Sequence[DependencyRecord],
                          options: FilterOptions) -> Tuple[List[ClassifiedDependency], List[str]]:
    """Classify every record and collect warnings about ignore rules that no longer apply.

    Every record is returned, excluded ones with `is_filtered` set. A versioned
    rule whose version does not match the latest version of a reported package
    produces one warning, whether or not the package is excluded for another
    reason.
    """
    classified = []
    warnings = []
    warned = set()

    for record in records:
        update_type = classify_update(record.current, record.latest)
        reason = _exclusion_reason(record, update_type, options)

        ineffective = None
        for rule in options.ignore_rules:
            if (rule.package_name != record.name or rule.exact_version is None
                    or versions_equal(rule.exact_version, record.latest)):
                continue
            ineffective = ineffective_filter_message(rule, record.latest)
            if rule not in warned:
                warned.add(rule)
                warnings.append(ineffective)

        classified.append(ClassifiedDependency(
            record=record,
            update_type=update_type,
            is_filtered=reason is not None,
            filtered_by=reason,
            ineffective_filter=ineffective,
        ))

    return classified, warnings


def filter_dependencies(records: Sequence[DependencyRecord],
                        options: FilterOptions) -> Tuple[List[ClassifiedDependency], List[str]]:
    """Return the outdated, non-ignored dependencies in input order, plus warnings."""
    classified, warnings = classify_dependencies(records, options)
    kept = [dep for dep in classified if not dep.is_filtered and dep.is_outdated]
    return kept, warnings


def run_check(records: Sequence[DependencyRecord], options: FilterOptions) -> RunResult:
    kept, warnings = filter_dependencies(records, options)
    return RunResult(dependencies=tuple(kept), warnings=tuple(warnings))
