"""Tests for the attribute capability gate and PHP version resolution."""
import json

import pytest

from reprieve.analyzer.capability import CapabilityGate, platform_php_version, version_id


class TestVersionId:
    @pytest.mark.parametrize('version, expected', [
        ('8.0', 80000),
        ('8.1.2', 80102),
        ('7.4.33', 70433),
        ('8', 80000),
        ('8.3.0-dev', 80300),
    ])
    def test_version_strings(self, version, expected):
        assert version_id(version) == expected

    @pytest.mark.parametrize('version', ['', 'latest', 'v8.1'])
    def test_invalid_version_raises(self, version):
        with pytest.raises(ValueError):
            version_id(version)


class TestCapabilityGate:
    def test_php8_supports_attributes(self):
        assert CapabilityGate.from_version_string('8.0.0').supports_declarative_metadata()

    def test_php74_lacks_attributes(self):
        assert not CapabilityGate.from_version_string('7.4').supports_declarative_metadata()

    def test_boundary_version_id(self):
        assert CapabilityGate(80000).supports_declarative_metadata()
        assert not CapabilityGate(79999).supports_declarative_metadata()

    def test_answer_is_stable(self):
        gate = CapabilityGate(80100)
        assert [gate.supports_declarative_metadata() for _ in range(3)] == [True, True, True]


class TestPlatformVersion:
    def test_reads_platform_php(self, tmp_path):
        (tmp_path / 'composer.json').write_text(json.dumps({'config': {'platform': {'php': '7.4.3'}}}))
        assert platform_php_version(tmp_path) == '7.4.3'

    def test_missing_composer_json(self, tmp_path):
        assert platform_php_version(tmp_path) is None

    def test_missing_platform_section(self, tmp_path):
        (tmp_path / 'composer.json').write_text(json.dumps({'require': {'php': '>=8.1'}}))
        assert platform_php_version(tmp_path) is None

    def test_malformed_composer_json(self, tmp_path):
        (tmp_path / 'composer.json').write_text('{not json')
        assert platform_php_version(tmp_path) is None
