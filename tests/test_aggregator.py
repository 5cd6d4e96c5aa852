"""Tests for dependency aggregation and placement planning."""

import logging

from bootstrap.aggregator import DependencyAggregator, common_version
from bootstrap.models import HoistConfig
from graph.package_graph import PackageGraph
from workspace.scan import Project

from conftest import install_fake, make_package, write_manifest


def _never_satisfied(package, name, version_range):
    return False


class _RecordingCheck:
    def __init__(self, satisfied=()):
        self.calls = []
        self.satisfied = set(satisfied)

    def __call__(self, package, name, version_range):
        self.calls.append((package.name, name, version_range))
        return (package.name, name) in self.satisfied


def _leaf_specs(plan):
    return {
        pkg.name: [dep.dependency for dep in deps]
        for pkg, deps in plan.leaves.items()
    }


class TestCommonVersion:

    def test_most_dependents_wins(self):
        assert common_version({"^1.0.0": ["a", "b"], "^2.0.0": ["c"]}) == "^1.0.0"

    def test_tie_goes_to_first_seen(self):
        assert common_version({"^2.0.0": ["a"], "^1.0.0": ["b"]}) == "^2.0.0"

    def test_no_dependents(self):
        assert common_version({"^1.0.0": []}) is None


class TestCollect:

    def test_root_first_then_discovery_order(self):
        root = make_package("root", location="/repo", dependencies={"zeta": "^1.0.0"},
                            devDependencies={"eslint": "^8.0.0"})
        p1 = make_package("p1", dependencies={"alpha": "^1.0.0", "zeta": "^1.0.0"})
        p2 = make_package("p2", dependencies={"alpha": "^2.0.0"})
        graph = PackageGraph([p1, p2])
        requests = DependencyAggregator(graph).collect([p1, p2], root)
        assert list(requests) == ["eslint", "zeta", "alpha"]
        assert requests["zeta"] == {"^1.0.0": ["p1"]}
        assert requests["alpha"] == {"^1.0.0": ["p1"], "^2.0.0": ["p2"]}
        assert requests["eslint"] == {"^8.0.0": []}

    def test_local_edges_not_collected(self):
        root = make_package("root", location="/repo")
        p1 = make_package("p1", dependencies={"p2": "^1.0.0"})
        p2 = make_package("p2")
        graph = PackageGraph([p1, p2])
        assert DependencyAggregator(graph).collect([p1, p2], root) == {}


class TestPlan:

    def test_root_declared_version_wins(self, caplog):
        root = make_package("root", location="/repo", dependencies={"lodash": "^4.0.0"})
        p1 = make_package("p1", dependencies={"lodash": "^4.0.0"})
        p2 = make_package("p2", dependencies={"lodash": "^3.0.0"})
        graph = PackageGraph([p1, p2])
        aggregator = DependencyAggregator(graph, is_satisfied=_never_satisfied)

        with caplog.at_level(logging.WARNING):
            plan = aggregator.plan([p1, p2], root, HoistConfig(include=["lodash"]))

        assert [dep.dependency for dep in plan.root_set] == ["lodash@^4.0.0"]
        assert [pkg.name for pkg in plan.root_set[0].dependents] == ["p1"]
        assert _leaf_specs(plan) == {"p2": ["lodash@^3.0.0"]}
        codes = [w.code for w in plan.warnings]
        assert codes == ["EHOIST_PKG_VERSION"]
        assert '"p2" package depends on lodash@^3.0.0' in plan.warnings[0].message
        assert "EHOIST_PKG_VERSION" in caplog.text

    def test_root_version_differs_from_common(self):
        root = make_package("root", location="/repo", devDependencies={"react": "^15.0.0"})
        pkgs = [
            make_package("p1", dependencies={"react": "^16.0.0"}),
            make_package("p2", dependencies={"react": "^16.0.0"}),
        ]
        graph = PackageGraph(pkgs)
        plan = DependencyAggregator(graph, is_satisfied=_never_satisfied).plan(
            pkgs, root, HoistConfig(include=True)
        )
        assert plan.root_set[0].dependency == "react@^15.0.0"
        assert plan.root_set[0].dependents == []
        codes = [w.code for w in plan.warnings]
        assert codes == ["EHOIST_ROOT_VERSION", "EHOIST_PKG_VERSION", "EHOIST_PKG_VERSION"]
        assert _leaf_specs(plan) == {"p1": ["react@^16.0.0"], "p2": ["react@^16.0.0"]}

    def test_most_common_version_hoisted(self):
        root = make_package("root", location="/repo")
        p1 = make_package("p1", dependencies={"foo": "^1.0.0"})
        p2 = make_package("p2", dependencies={"foo": "^2.0.0"})
        p3 = make_package("p3", dependencies={"foo": "^1.0.0"})
        pkgs = [p1, p2, p3]
        plan = DependencyAggregator(PackageGraph(pkgs), is_satisfied=_never_satisfied).plan(
            pkgs, root, HoistConfig(include=["foo"])
        )
        assert plan.root_set[0].dependency == "foo@^1.0.0"
        assert [p.name for p in plan.root_set[0].dependents] == ["p1", "p3"]
        assert _leaf_specs(plan) == {"p2": ["foo@^2.0.0"]}
        assert plan.decisions["foo"].placement == "root"
        assert plan.decisions["foo"].dependents == ["p1", "p3"]

    def test_tie_breaks_on_first_encountered(self):
        root = make_package("root", location="/repo")
        p1 = make_package("p1", dependencies={"foo": "^2.0.0"})
        p2 = make_package("p2", dependencies={"foo": "^1.0.0"})
        plan = DependencyAggregator(PackageGraph([p1, p2]), is_satisfied=_never_satisfied).plan(
            [p1, p2], root, HoistConfig(include=True)
        )
        assert plan.root_set[0].dependency == "foo@^2.0.0"

    def test_no_hoisting_everything_goes_to_leaves(self):
        root = make_package("root", location="/repo", devDependencies={"jest": "^29.0.0"})
        p1 = make_package("p1", dependencies={"foo": "^1.0.0", "bar": "^1.0.0"})
        p2 = make_package("p2", dependencies={"foo": "^1.0.0"})
        plan = DependencyAggregator(PackageGraph([p1, p2]), is_satisfied=_never_satisfied).plan(
            [p1, p2], root, HoistConfig()
        )
        assert plan.root_set == []
        assert _leaf_specs(plan) == {"p1": ["foo@^1.0.0", "bar@^1.0.0"], "p2": ["foo@^1.0.0"]}
        assert plan.warnings == []
        assert plan.decisions["jest"].placement == "none"

    def test_nohoist_excludes(self):
        root = make_package("root", location="/repo")
        p1 = make_package("p1", dependencies={"foo": "^1.0.0", "bar": "^1.0.0"})
        plan = DependencyAggregator(PackageGraph([p1]), is_satisfied=_never_satisfied).plan(
            [p1], root, HoistConfig(include=True, exclude=["bar"])
        )
        assert [dep.name for dep in plan.root_set] == ["foo"]
        assert _leaf_specs(plan) == {"p1": ["bar@^1.0.0"]}

    def test_root_only_dependency_is_still_a_root_action(self):
        root = make_package("root", location="/repo", devDependencies={"eslint": "^8.0.0"})
        p1 = make_package("p1")
        plan = DependencyAggregator(PackageGraph([p1]), is_satisfied=_never_satisfied).plan(
            [p1], root, HoistConfig(include=True)
        )
        assert [dep.dependency for dep in plan.root_set] == ["eslint@^8.0.0"]
        assert plan.root_set[0].dependents == []
        assert plan.warnings == []
        assert plan.leaves == {}

    def test_checks_sequential_root_first(self):
        root = make_package("root", location="/repo")
        p1 = make_package("p1", dependencies={"bar": "^1.0.0", "foo": "^1.0.0"})
        p2 = make_package("p2", dependencies={"foo": "^2.0.0"})
        check = _RecordingCheck(satisfied={("p1", "bar")})
        plan = DependencyAggregator(PackageGraph([p1, p2]), is_satisfied=check).plan(
            [p1, p2], root, HoistConfig(include=["foo"])
        )
        assert check.calls == [
            ("root", "foo", "^1.0.0"),
            ("p1", "bar", "^1.0.0"),
            ("p2", "foo", "^2.0.0"),
        ]
        bar = plan.leaves[p1][0]
        assert bar.name == "bar" and bar.is_satisfied is True
        assert plan.root_set[0].is_satisfied is False

    def test_deterministic(self):
        root = make_package("root", location="/repo", dependencies={"a": "^1.0.0"})
        pkgs = [
            make_package("p1", dependencies={"a": "^2.0.0", "b": "^1.0.0"}),
            make_package("p2", dependencies={"b": "^1.0.0", "a": "^2.0.0"}),
        ]
        graph = PackageGraph(pkgs)
        aggregator = DependencyAggregator(graph, is_satisfied=_never_satisfied)
        first = aggregator.plan(pkgs, root, HoistConfig(include=True))
        second = aggregator.plan(pkgs, root, HoistConfig(include=True))
        assert [d.dependency for d in first.root_set] == [d.dependency for d in second.root_set]
        assert _leaf_specs(first) == _leaf_specs(second)
        assert first.warnings == second.warnings


class TestPlanAgainstDisk:

    def test_satisfaction_read_from_node_modules(self, repo):
        root_dir = str(repo)
        p1_dir = write_manifest(str(repo / "packages" / "p1"), {
            "name": "p1", "version": "1.0.0",
            "dependencies": {"foo": "^1.0.0", "bar": "^2.0.0"},
        })
        install_fake(root_dir, "foo", "1.4.0")
        install_fake(p1_dir, "bar", "1.9.9")

        project = Project.load(root_dir)
        graph = PackageGraph(project.packages)
        plan = DependencyAggregator(graph).plan(project.packages, project.manifest,
                                                HoistConfig(include=["foo"]))
        assert plan.root_set[0].is_satisfied is True
        (leaf_pkg, deps), = plan.leaves.items()
        assert leaf_pkg.name == "p1"
        assert deps[0].dependency == "bar@^2.0.0"
        assert deps[0].is_satisfied is False
