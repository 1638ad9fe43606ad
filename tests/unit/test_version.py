"""
Unit tests for pipeline version constants.
"""

import pytest

import smartfetch.candidates as candidates
import smartfetch.extraction.patterns as patterns
from smartfetch import version


@pytest.mark.unit
class TestPipelineVersion:
    """Test get_current_pipeline_version()."""

    def test_built_from_module_constants(self):
        current = version.get_current_pipeline_version()

        assert current.extractor_version == version.EXTRACTOR_VERSION
        assert current.filter_version == version.FILTER_VERSION
        assert current.scorer_version == version.SCORER_VERSION
        assert current.escalation_version == version.ESCALATION_VERSION

    def test_version_module_is_single_source(self):
        names = [n for n in dir(patterns) + dir(candidates) if n.endswith("_VERSION")]
        assert names == []

    def test_short_repr(self):
        assert version.get_current_pipeline_version().to_repr() == (
            f"{version.EXTRACTOR_VERSION}/{version.SCORER_VERSION}/{version.ESCALATION_VERSION}"
        )
