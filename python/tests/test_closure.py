"""Tests for the transitive closure walker."""

from unittest.mock import Mock

import pytest
import requests

from versionrecommender.closure import TransitiveClosureWalker
from versionrecommender.errors import MalformedSourceError
from versionrecommender.models import ModuleCoordinate
from versionrecommender.repository import RepositoryView


def coordinates(*entries):
    return [ModuleCoordinate.parse(entry) for entry in entries]


class TestTransitiveClosureWalker:
    """Tests for breadth-first flattening and conflict policies."""

    @pytest.fixture
    def diamond(self, ivy_repo):
        """a -> b@1.0, c -> b@2.0"""
        ivy_repo.publish('org.test', 'a', '1.0', [('org.test', 'b', '1.0')])
        ivy_repo.publish('org.test', 'c', '1.0', [('org.test', 'b', '2.0')])
        return RepositoryView([ivy_repo.repository()])

    def test_shallow_wins_first_declared(self, diamond):
        walker = TransitiveClosureWalker(diamond)

        versions = walker.walk(coordinates('org.test:a:1.0', 'org.test:c:1.0'))

        assert versions == {'org.test:a': '1.0', 'org.test:c': '1.0', 'org.test:b': '1.0'}

    def test_declaration_order_decides_equal_depth(self, diamond):
        walker = TransitiveClosureWalker(diamond)

        versions = walker.walk(coordinates('org.test:c:1.0', 'org.test:a:1.0'))

        assert versions['org.test:b'] == '2.0'

    def test_equal_depth_with_override_transitive_deps(self, diamond):
        """Test that deep-wins does not replace an entry found at the same depth."""
        walker = TransitiveClosureWalker(diamond, override_transitive_deps=True)

        versions = walker.walk(coordinates('org.test:a:1.0', 'org.test:c:1.0'))

        assert versions['org.test:b'] == '1.0'

    def test_deeper_version_policies(self, ivy_repo):
        ivy_repo.publish('org.test', 'a', '1.0', [('org.test', 'b', '2.0')])
        view = RepositoryView([ivy_repo.repository()])
        roots = coordinates('org.test:b:1.0', 'org.test:a:1.0')

        assert TransitiveClosureWalker(view).walk(roots)['org.test:b'] == '1.0'
        assert TransitiveClosureWalker(view, override_transitive_deps=True).walk(roots)['org.test:b'] == '2.0'

    def test_cycle_is_expanded_once(self, ivy_repo):
        ivy_repo.publish('org.test', 'a', '1.0', [('org.test', 'b', '1.0')])
        ivy_repo.publish('org.test', 'b', '1.0', [('org.test', 'a', '1.0')])
        view = RepositoryView([ivy_repo.repository()])
        walker = TransitiveClosureWalker(view)

        versions = walker.walk(coordinates('org.test:a:1.0'))

        assert versions == {'org.test:a': '1.0', 'org.test:b': '1.0'}
        assert walker.visited == {'org.test:a:1.0', 'org.test:b:1.0'}

    def test_transitive_levels(self, ivy_repo):
        ivy_repo.publish('org.test', 'a', '1.0', [('org.test', 'b', '1.0')])
        ivy_repo.publish('org.test', 'b', '1.0', [('org.test', 'c', '3.0')])
        walker = TransitiveClosureWalker(RepositoryView([ivy_repo.repository()]))

        walker.walk(coordinates('org.test:a:1.0'))

        assert walker.depths == {'org.test:a': 1, 'org.test:b': 2, 'org.test:c': 3}

    def test_dependency_without_version_is_skipped(self, ivy_repo):
        walker = TransitiveClosureWalker(RepositoryView([ivy_repo.repository()]))

        versions = walker.walk(coordinates('org.test:a'))

        assert versions == {}

    def test_repository_failure(self):
        repository = Mock()
        repository.fetch_ivy_descriptor.side_effect = requests.ConnectionError("unreachable")
        walker = TransitiveClosureWalker(repository)

        with pytest.raises(MalformedSourceError):
            walker.walk(coordinates('org.test:a:1.0'))
