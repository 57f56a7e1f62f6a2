"""
Tests for edge index construction and tree materialization.
"""

import pytest

from dep_lens.dependency import DependencyRole
from dep_lens.graph import ChildRef, RootRef, build_index, filter_records
from dep_lens.tree import RenderEntry, materialize


class TestBuildIndex:
    """Roots, edges and unrecognized provenance."""

    def test_roots_and_edges(self, tsup_records):
        """Test roots and parent-keyed edges."""
        index = build_index(tsup_records)

        assert index.roots == [RootRef("tsup", "8.5.0", "npm", DependencyRole.DEV)]
        assert index.children_of("tsup@8.5.0") == [ChildRef("sucrase", "3.35.0", "npm")]
        assert index.edge_count == 1
        assert index.record_count == 2
        assert index.unrecognized == []

    def test_first_direct_marker_decides_role(self, make_record):
        """Test that the first direct marker decides the root role."""
        records = [
            make_record("typescript", {"5.4.5": [".#dependencies", ".#devDependencies"]}),
        ]
        index = build_index(records)
        assert [root.role for root in index.roots] == [DependencyRole.PRODUCTION]

    def test_root_at_each_direct_version(self, make_record):
        """Test one root per directly installed version."""
        records = [
            make_record("lodash", {"4.17.21": [".#dependencies"], "3.10.1": [".#devDependencies"]}),
        ]
        index = build_index(records)
        assert [(root.version, root.is_dev_dependency) for root in index.roots] == [
            ("3.10.1", True),
            ("4.17.21", False),
        ]

    def test_children_deduplicated_and_sorted(self, make_record):
        """Test that children are deduplicated and sorted."""
        records = [
            make_record("app", {"1.0.0": [".#dependencies"]}),
            make_record("zod", {"3.23.0": ["pnpm-lock.yaml:app@1.0.0", "yarn.lock:app@1.0.0"]}),
            make_record("chalk", {"5.3.0": ["pnpm-lock.yaml:app@1.0.0"]}),
        ]
        index = build_index(records)
        assert [child.name for child in index.children_of("app@1.0.0")] == ["chalk", "zod"]

    def test_unrecognized_provenance_is_counted(self, make_record):
        """Test counting of unrecognized provenance."""
        records = [
            make_record("left-pad", {"1.3.0": ["package.json", ".#dependencies"]}),
            make_record("orphan", {"0.1.0": ["npm-shrinkwrap.json:x@1.0.0"]}),
        ]
        index = build_index(records)
        assert index.unrecognized == ["package.json", "npm-shrinkwrap.json:x@1.0.0"]
        assert [root.name for root in index.roots] == ["left-pad"]

    def test_ecosystem_filter(self, project_records):
        """Test building the index for one ecosystem."""
        index = build_index(project_records, ecosystem_filter="rubygems")
        assert [root.name for root in index.roots] == ["rack"]
        assert index.record_count == 2

    def test_filter_records_without_filter(self, project_records):
        """Test record filtering by ecosystem."""
        assert filter_records(project_records) == project_records
        assert filter_records(project_records, "pypi") == []

    def test_direct_role_lookup(self, tsup_records):
        """Test direct role lookup by name and version."""
        index = build_index(tsup_records)
        assert index.direct_role("tsup", "8.5.0") is DependencyRole.DEV
        assert index.direct_role("sucrase", "3.35.0") is None


class TestMaterialize:
    """Pre-order tree expansion."""

    def test_tsup_example(self, tsup_records):
        """Test materializing the tsup example."""
        entries = materialize(build_index(tsup_records), max_depth=1)

        assert entries == [
            RenderEntry("tsup", "8.5.0", "npm", True, 0, True, True, ()),
            RenderEntry("sucrase", "3.35.0", "npm", False, 1, True, False, (True,)),
        ]

    def test_depth_zero_lists_roots_only(self, tsup_records):
        """Test that depth zero lists only roots."""
        entries = materialize(build_index(tsup_records))
        assert [entry.name for entry in entries] == ["tsup"]
        assert entries[0].has_children is False

    def test_negative_depth_rejected(self, tsup_records):
        """Test that a negative depth is rejected."""
        with pytest.raises(ValueError):
            materialize(build_index(tsup_records), max_depth=-1)

    def test_roots_ordered_by_ecosystem_then_name(self, project_records):
        """Test root ordering by ecosystem then name."""
        entries = materialize(build_index(project_records))
        assert [(entry.ecosystem, entry.name) for entry in entries] == [
            ("npm", "react"),
            ("npm", "vitest"),
            ("rubygems", "rack"),
        ]
        assert [entry.is_last for entry in entries] == [False, False, True]

    def test_diamond_expanded_under_each_parent(self, project_records):
        """Test that a diamond dependency appears under each parent."""
        entries = materialize(build_index(project_records), max_depth=5)
        names = [(entry.name, entry.depth) for entry in entries]

        assert names == [
            ("react", 0),
            ("loose-envify", 1),
            ("js-tokens", 2),
            ("vitest", 0),
            ("@babel/code-frame", 1),
            ("js-tokens", 2),
            ("rack", 0),
            ("rack-test", 1),
        ]

    def test_ancestor_path_recorded(self, project_records):
        """Test the ancestor last-sibling flags."""
        entries = materialize(build_index(project_records), max_depth=5)
        js_tokens = [entry for entry in entries if entry.name == "js-tokens"]
        assert js_tokens[0].ancestor_is_last == (False, True)
        assert js_tokens[1].ancestor_is_last == (False, True)

    def test_only_roots_carry_dev_flag(self, tsup_records):
        """Test that only roots carry the dev flag."""
        entries = materialize(build_index(tsup_records), max_depth=1)
        assert [entry.is_dev_dependency for entry in entries] == [True, False]

    def test_self_loop_terminates(self, make_record):
        """Test that a self-loop stops expanding."""
        records = [make_record("a", {"1.0.0": [".#dependencies", "pnpm-lock.yaml:a@1.0.0"]})]
        entries = materialize(build_index(records), max_depth=10)

        assert [(entry.name, entry.depth) for entry in entries] == [("a", 0), ("a", 1)]
        # the repeated node still reports its real edges
        assert entries[1].has_children is True

    def test_two_node_cycle_terminates(self, make_record):
        """Test that a two-node cycle stops expanding."""
        records = [
            make_record("a", {"1.0.0": [".#dependencies", "pnpm-lock.yaml:b@1.0.0"]}),
            make_record("b", {"1.0.0": ["pnpm-lock.yaml:a@1.0.0"]}),
        ]
        entries = materialize(build_index(records), max_depth=50)
        assert [(entry.name, entry.depth) for entry in entries] == [("a", 0), ("b", 1), ("a", 2)]

    def test_to_dict(self, tsup_records):
        """Test the JSON form of a tree entry."""
        entry = materialize(build_index(tsup_records))[0]
        assert entry.to_dict() == {
            "name": "tsup",
            "version": "8.5.0",
            "ecosystem": "npm",
            "isDevDependency": True,
            "depth": 0,
            "isLast": True,
            "hasChildren": False,
            "ancestorIsLast": [],
        }
