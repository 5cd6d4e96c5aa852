"""Tests for BootstrapCommand: validation, options and the waterfall."""

import logging
import os
import threading

import pytest

from bootstrap.command import BootstrapCommand
from bootstrap.models import InvocationContext
from cli_config import BootstrapOptions
from common.errors import ConfigurationError, CycleError, InstallFailure
from graph.package_graph import PackageGraph
from workspace.scan import Project

from conftest import write_manifest


class Recorder:
    """Collects every side effect in one ordered event log."""

    def __init__(self, fail_install_for=None):
        self.events = []
        self.configs = []
        self.fail_install_for = fail_install_for
        self._lock = threading.Lock()

    def _log(self, event):
        with self._lock:
            self.events.append(event)

    def installer(self, package, specifiers, config):
        self._log(("install", package.name, tuple(specifiers)))
        with self._lock:
            self.configs.append(config)
        if package.name == self.fail_install_for:
            raise InstallFailure(package.location, config.install_command(), 1)

    def root_installer(self, package, config):
        self._log(("root-install", package.name))
        with self._lock:
            self.configs.append(config)

    def script_runner(self, package, stage, env=None):
        if package.get_script(stage) is None:
            return False
        self._log(("script", package.name, stage))
        return True

    def make_symlink(self, source, destination):
        self._log(("symlink", os.path.basename(source), os.path.basename(os.path.dirname(
            os.path.dirname(destination)))))
        return True

    @staticmethod
    def never_satisfied(package, name, version_range):
        return False

    def kinds(self):
        return [event[0] if event[0] != "script" else f"{event[2]}:{event[1]}"
                for event in self.events]


ALL_SCRIPTS = {
    stage: f"echo {stage}"
    for stage in ("preinstall", "install", "postinstall", "prepublish", "prepare")
}


def _make_repo(repo, root_extra=None):
    write_manifest(str(repo), dict({
        "name": "root", "version": "0.0.0", "private": True, "scripts": ALL_SCRIPTS,
    }, **(root_extra or {})))
    write_manifest(str(repo / "packages" / "app"), {
        "name": "app", "version": "1.0.0", "scripts": ALL_SCRIPTS,
        "dependencies": {"lib": "^1.0.0", "lodash": "^4.0.0"},
    })
    write_manifest(str(repo / "packages" / "lib"), {
        "name": "lib", "version": "1.0.0", "scripts": {"prepare": "tsc"},
        "dependencies": {"lodash": "^4.0.0"},
    })
    return Project.load(str(repo))


def _command(project, recorder, context=None, **option_changes):
    options = BootstrapOptions(concurrency=1, **option_changes)
    graph = PackageGraph(project.packages, force_local=options.force_local)
    return BootstrapCommand(
        project, graph, project.packages, options, context,
        installer=recorder.installer,
        root_installer=recorder.root_installer,
        script_runner=recorder.script_runner,
        is_satisfied=recorder.never_satisfied,
        read_manifest=lambda location: {},
        remove_dir=lambda path: False,
        link_binary=lambda source, pkg: [],
        make_symlink=recorder.make_symlink,
        mutex_factory=lambda: "network:50000",
    )


class TestValidation:

    def test_yarn_with_hoist_rejected_before_mutation(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        command = _command(project, recorder, npm_client="yarn", hoist=True)
        with pytest.raises(ConfigurationError) as excinfo:
            command.run()
        assert excinfo.value.code == "EWORKSPACES"
        assert recorder.events == []

    def test_yarn_workspaces_without_use_workspaces(self, repo):
        project = _make_repo(repo, {"workspaces": ["packages/*"]})
        recorder = Recorder()
        with pytest.raises(ConfigurationError):
            _command(project, recorder, npm_client="yarn").run()
        assert recorder.events == []

    def test_cycle_rejected_before_mutation(self, repo):
        project = _make_repo(repo)
        write_manifest(str(repo / "packages" / "lib"), {
            "name": "lib", "version": "1.0.0", "dependencies": {"app": "^1.0.0"},
        })
        project = Project.load(str(repo))
        recorder = Recorder()
        with pytest.raises(CycleError):
            _command(project, recorder, reject_cycles=True).run()
        assert recorder.events == []


class TestWaterfall:

    def test_stage_order(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        result = _command(project, recorder).run()

        assert result.packages == 2
        assert recorder.kinds() == [
            "preinstall:root", "preinstall:app",
            "install", "install",
            "symlink",
            "install:app", "postinstall:app",
            "install:root", "postinstall:root",
            "prepublish:app", "prepublish:root",
            "prepare:lib", "prepare:app", "prepare:root",
        ]

    def test_local_dependency_linked_not_installed(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        _command(project, recorder).run()
        installs = {e[1]: e[2] for e in recorder.events if e[0] == "install"}
        assert installs == {"app": ("lodash@^4.0.0",), "lib": ("lodash@^4.0.0",)}
        assert ("symlink", "lib", "app") in recorder.events

    def test_no_external_dependencies_skips_install(self, repo, caplog):
        write_manifest(str(repo), {"name": "root", "version": "0.0.0"})
        write_manifest(str(repo / "packages" / "app"), {
            "name": "app", "version": "1.0.0", "dependencies": {"lib": "^1.0.0"},
        })
        write_manifest(str(repo / "packages" / "lib"), {"name": "lib", "version": "1.0.0"})
        recorder = Recorder()
        with caplog.at_level(logging.INFO, logger="bootstrap.command"):
            _command(Project.load(str(repo)), recorder).run()
        assert not any(e[0] == "install" for e in recorder.events)
        assert ("symlink", "lib", "app") in recorder.events
        assert "No external dependencies to install" in caplog.text

    def test_hoisted_install_goes_to_root(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        _command(project, recorder, hoist=True, ignore_scripts=True).run()
        installs = [e for e in recorder.events if e[0] == "install"]
        assert installs == [("install", "root", ("lodash@^4.0.0",))]

    def test_install_failure_aborts_later_stages(self, repo):
        project = _make_repo(repo)
        recorder = Recorder(fail_install_for="app")
        with pytest.raises(InstallFailure):
            _command(project, recorder).run()
        kinds = recorder.kinds()
        assert kinds[:2] == ["preinstall:root", "preinstall:app"]
        assert "symlink" not in kinds
        assert not any(k.startswith(("postinstall", "prepare")) for k in kinds)

    def test_ignore_scripts(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        _command(project, recorder, ignore_scripts=True).run()
        assert not any(e[0] == "script" for e in recorder.events)
        assert all(c.client_args[0] == "--ignore-scripts" for c in recorder.configs)

    def test_ignore_prepublish(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        _command(project, recorder, ignore_prepublish=True).run()
        assert not any(k.startswith("prepublish") for k in recorder.kinds())
        assert "prepare:root" in recorder.kinds()

    def test_root_lifecycle_skipped_when_launched_by_it(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        context = InvocationContext(lifecycle_event="postinstall")
        _command(project, recorder, context).run()
        assert not any(k.endswith(":root") for k in recorder.kinds())


class TestInitialize:

    def test_nested_invocation_skipped(self, repo):
        project = _make_repo(repo)
        recorder = Recorder()
        result = _command(project, recorder, InvocationContext(nested=True)).run()
        assert result.skipped is True
        assert recorder.events == []

    def test_no_sort_single_batch(self, repo):
        project = _make_repo(repo)
        command = _command(project, Recorder(), sort=False)
        command.initialize()
        assert [[p.name for p in b] for b in command.batched_packages] == [["app", "lib"]]

    def test_sorted_batches(self, repo):
        project = _make_repo(repo)
        command = _command(project, Recorder())
        command.initialize()
        assert [[p.name for p in b] for b in command.batched_packages] == [["lib"], ["app"]]

    def test_ci_sub_command(self, repo):
        command = _command(_make_repo(repo), Recorder(), ci=True)
        command.initialize()
        assert command.client_config.install_command()[:2] == ["npm", "ci"]

    def test_yarn_gets_mutex(self, repo):
        command = _command(_make_repo(repo), Recorder(), npm_client="yarn")
        command.initialize()
        assert command.client_config.mutex == "network:50000"
        assert "--mutex" in command.client_config.install_command()

    def test_client_args_order(self, repo):
        command = _command(
            _make_repo(repo), Recorder(), ignore_scripts=True,
            npm_client_args=["--no-audit"], double_dash_args=["--prefer-offline"],
        )
        command.initialize()
        assert command.client_config.client_args == [
            "--ignore-scripts", "--no-audit", "--prefer-offline",
        ]


class TestRootOnly:

    def test_use_workspaces_installs_root_only(self, repo):
        project = _make_repo(repo, {"workspaces": ["packages/*"]})
        recorder = Recorder()
        result = _command(project, recorder, use_workspaces=True).run()
        assert result.root_only is True
        assert recorder.events == [("root-install", "root")]
        assert recorder.configs[0].inherit_stdio is True

    def test_root_file_dependency_installs_root_only(self, repo):
        project = _make_repo(repo, {"dependencies": {"lib": "file:packages/lib"}})
        recorder = Recorder()
        command = _command(project, recorder)
        assert command.root_has_local_file_dependencies() is True
        result = command.run()
        assert result.root_only is True
        assert recorder.events == [("root-install", "root")]

    def test_registry_dependency_not_root_only(self, repo):
        project = _make_repo(repo, {"dependencies": {"lib": "^1.0.0"}})
        assert _command(project, Recorder()).root_has_local_file_dependencies() is False
