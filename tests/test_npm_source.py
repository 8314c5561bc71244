"""Tests for npm invocation and response validation."""

import json
import subprocess
import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import npm_source
from errors import SourceInvocationError, UnexpectedResponseShape


def completed(stdout="", returncode=1, stderr=""):
    return MagicMock(stdout=stdout, returncode=returncode, stderr=stderr)


class TestBuildCommand:
    """Test the npm arguments."""

    def test_default(self):
        """Test the arguments without options."""
        assert npm_source.build_command() == ['outdated', '--json', '--long', '--save', 'false']

    def test_global_and_depth(self):
        """Test that --global comes before --depth."""
        assert npm_source.build_command(global_scope=True, depth=10)[-3:] == ['--global', '--depth', '10']

    def test_depth_zero(self):
        """Test that depth 0 is passed on."""
        assert npm_source.build_command(depth=0)[-2:] == ['--depth', '0']


class TestRunNpmOutdated:
    """Test running the npm process."""

    def test_missing_npm(self):
        """Test that a missing executable is a source error."""
        with patch('npm_source.shutil.which', return_value=None):
            with pytest.raises(SourceInvocationError, match="npm executable not found"):
                npm_source.run_npm_outdated()

    def test_exit_code_one_is_not_a_failure(self):
        """Test that npm's exit status for outdated packages is ignored."""
        with patch('npm_source.shutil.which', return_value='/usr/bin/npm'), \
                patch('npm_source.subprocess.run', return_value=completed('{"a": {}}', 1)) as run:
            assert npm_source.run_npm_outdated(depth=2) == '{"a": {}}'

        command = run.call_args[0][0]
        assert command[0] == '/usr/bin/npm'
        assert command[1:] == ['outdated', '--json', '--long', '--save', 'false', '--depth', '2']

    def test_crash_without_output(self):
        """Test that an unexpected exit status without output is a source error."""
        with patch('npm_source.shutil.which', return_value='/usr/bin/npm'), \
                patch('npm_source.subprocess.run', return_value=completed('', 254, 'npm ERR! boom')):
            with pytest.raises(SourceInvocationError) as exc_info:
                npm_source.run_npm_outdated()
        assert exc_info.value.output == 'npm ERR! boom'

    def test_exit_code_one_without_output(self):
        """Test that status 1 with only diagnostics on stderr does not pass as up-to-date."""
        stderr = "npm ERR! code ENOENT\nnpm ERR! syscall open"
        with patch('npm_source.shutil.which', return_value='/usr/bin/npm'), \
                patch('npm_source.subprocess.run', return_value=completed('', 1, stderr)):
            with pytest.raises(SourceInvocationError) as exc_info:
                npm_source.gather_outdated()
        assert exc_info.value.output == stderr

    def test_success_without_output(self):
        """Test that status 0 with empty output means nothing is outdated."""
        with patch('npm_source.shutil.which', return_value='/usr/bin/npm'), \
                patch('npm_source.subprocess.run', return_value=completed('', 0)):
            assert npm_source.gather_outdated() == []

    def test_timeout(self):
        """Test that a hanging npm is reported."""
        with patch('npm_source.shutil.which', return_value='/usr/bin/npm'), \
                patch('npm_source.subprocess.run', side_effect=subprocess.TimeoutExpired('npm', 300)):
            with pytest.raises(SourceInvocationError, match="timed out"):
                npm_source.run_npm_outdated()


class TestParseResponse:
    """Test decoding of npm output."""

    def test_empty_output(self):
        """Test that empty output means nothing is outdated."""
        assert npm_source.parse_response('') == {}
        assert npm_source.parse_response('  \n') == {}

    def test_incomplete_json(self):
        """Test that broken JSON keeps the raw output for the report."""
        with pytest.raises(SourceInvocationError) as exc_info:
            npm_source.parse_response('{ "Incomplete JSON response')
        assert exc_info.value.output == '{ "Incomplete JSON response'


class TestValidateResponse:
    """Test shape validation of decoded npm output."""

    @pytest.mark.parametrize("payload,shown", [
        ("string", '"string"'),
        (None, 'null'),
        ([1, 2], '[1, 2]'),
    ])
    def test_non_mapping_payload(self, payload, shown):
        """Test that the offending value is part of the message."""
        with pytest.raises(UnexpectedResponseShape) as exc_info:
            npm_source.validate_response(payload)
        assert str(exc_info.value) == f"Unexpected JSON response: {shown}"

    def test_non_mapping_entry(self):
        """Test that an entry that is not an object is rejected."""
        with pytest.raises(UnexpectedResponseShape):
            npm_source.validate_response({"module": "1.0.0"})

    def test_npm_error_object(self):
        """Test that npm's error object becomes a source error with its fields."""
        with pytest.raises(SourceInvocationError) as exc_info:
            npm_source.validate_response({"error": {"code": "TEST", "summary": "Test error"}})
        assert exc_info.value.details == {"code": "TEST", "summary": "Test error"}

    def test_records_in_report_order(self):
        """Test that fields are mapped and order is preserved."""
        payload = json.loads(json.dumps({
            "module-major": {
                "current": "1.0.0",
                "wanted": "1.0.0",
                "latest": "2.0.0",
                "dependent": "project",
                "location": "node_modules/module-major",
                "type": "dependencies",
            },
            "module-dev-major": {
                "current": "1.0.0",
                "wanted": "1.0.0",
                "latest": "2.0.0",
                "location": "node_modules/module-dev-major",
                "type": "devDependencies",
                "homepage": "https://example.com",
            },
        }))
        records = npm_source.validate_response(payload)

        assert [r.name for r in records] == ["module-major", "module-dev-major"]
        assert records[0].latest == "2.0.0"
        assert records[0].dependent == "project"
        assert not records[0].is_dev_dependency
        assert records[1].is_dev_dependency
        assert records[1].homepage == "https://example.com"

    def test_entry_without_properties(self):
        """Test that every field is optional."""
        record = npm_source.validate_response({"module-without-properties": {}})[0]
        assert record.current is None
        assert record.wanted is None
        assert record.latest is None
        assert record.location == ''
        assert record.package_type is None

    def test_entry_list_gives_record_per_location(self):
        """Test a package npm reports in several locations."""
        records = npm_source.validate_response({"module": [
            {"current": "1.0.0", "latest": "2.0.0", "location": "node_modules/a/node_modules/module"},
            {"current": "1.5.0", "latest": "2.0.0", "location": "node_modules/module"},
        ]})
        assert [r.current for r in records] == ["1.0.0", "1.5.0"]

    def test_invalid_field_type(self):
        """Test that a field of the wrong type is rejected before use."""
        with pytest.raises(UnexpectedResponseShape):
            npm_source.validate_response({"module": {"current": ["1.0.0"]}})


class TestGatherOutdated:
    """Test the complete source step."""

    def test_gather(self):
        """Test that npm output turns into records."""
        output = json.dumps({"module": {"current": "1.0.0", "wanted": "1.0.0", "latest": "2.0.0"}})
        with patch('npm_source.run_npm_outdated', return_value=output):
            records = npm_source.gather_outdated()
        assert records[0].name == "module"

    def test_gather_nothing_outdated(self):
        """Test that an empty object yields no records."""
        with patch('npm_source.run_npm_outdated', return_value='{}'):
            assert npm_source.gather_outdated() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
