from pathlib import Path
import os

from epel_automation.backends import LocalFileBackend
from epel_automation.compiler import compile_catalog
from epel_automation.engine import ConvergenceEngine
from epel_automation.packages import PackageBackend, PackageError, PackageStatus
from epel_automation.types import Catalog, ResourceDeclaration, Status

REDHAT_6 = {"operating_system": "RedHat", "os_major_release": "6"}
EPEL_REPO = "/etc/yum.repos.d/epel.repo"
EPEL_TESTING_REPO = "/etc/yum.repos.d/epel-testing.repo"


class FakePackageBackend(PackageBackend):
    name = "fake"

    def __init__(self, available: dict[str, str]):
        self.available = available
        self.installed: dict[str, str] = {}

    def query(self, name: str) -> PackageStatus:
        current = self.installed.get(name)
        return PackageStatus(current, self.available.get(name) or current)

    def install_or_upgrade(self, name: str, version_spec: str) -> None:
        self.installed[name] = self.available[name]


class OfflinePackageBackend(PackageBackend):
    def query(self, name: str) -> PackageStatus:
        raise PackageError("Cannot retrieve repository metadata for repository: epel")


def test_epel_catalog_converges_and_is_idempotent(tmp_path: Path) -> None:
    catalog = compile_catalog(REDHAT_6)
    packages = FakePackageBackend({"epel-release": "6-8"})
    engine = ConvergenceEngine(LocalFileBackend(tmp_path), packages)

    first = engine.run(catalog)

    assert [o.ref for o in first.outcomes] == catalog.refs
    assert [o.status for o in first.outcomes] == [Status.CHANGED] * 3
    for path in (EPEL_REPO, EPEL_TESTING_REPO):
        target = tmp_path / path.lstrip("/")
        assert target.read_text() == catalog.get("File", path).get("content")
        assert oct(os.stat(target).st_mode & 0o777) == "0o644"
    assert packages.installed == {"epel-release": "6-8"}

    second = engine.run(compile_catalog(REDHAT_6))

    assert [o.status for o in second.outcomes] == [Status.UNCHANGED] * 3
    assert second.is_noop
    assert second.failed is False


def test_package_failure_does_not_block_files(tmp_path: Path) -> None:
    engine = ConvergenceEngine(LocalFileBackend(tmp_path), OfflinePackageBackend())

    result = engine.run(compile_catalog(REDHAT_6))

    assert result.outcome_for("File", EPEL_REPO).status is Status.CHANGED
    assert result.outcome_for("File", EPEL_TESTING_REPO).status is Status.CHANGED
    package = result.outcome_for("Package", "epel-release")
    assert package.status is Status.FAILED
    assert "PackageError" in package.error
    assert result.failed is True
    assert result.failures == 1


def test_file_failure_does_not_block_later_resources(tmp_path: Path) -> None:
    (tmp_path / "etc/yum.repos.d/epel.repo").mkdir(parents=True)
    packages = FakePackageBackend({"epel-release": "6-8"})

    result = ConvergenceEngine(LocalFileBackend(tmp_path), packages).run(compile_catalog(REDHAT_6))

    assert [o.status for o in result.outcomes] == [Status.FAILED, Status.CHANGED, Status.CHANGED]
    assert "IsADirectoryError" in result.outcomes[0].error


def test_invalid_declaration_is_recorded_as_failure(tmp_path: Path) -> None:
    catalog = Catalog(
        [
            ResourceDeclaration("File", "relative.repo", {"ensure": "file"}),
            ResourceDeclaration("File", "/etc/motd", {"content": "hi\n"}),
        ]
    )

    result = ConvergenceEngine(LocalFileBackend(tmp_path), PackageBackend()).run(catalog)

    assert [o.status for o in result.outcomes] == [Status.FAILED, Status.CHANGED]
    assert "must be absolute" in result.outcomes[0].error


def test_unchanged_files_reported_when_package_fails(tmp_path: Path) -> None:
    catalog = compile_catalog(REDHAT_6)
    ConvergenceEngine(LocalFileBackend(tmp_path), FakePackageBackend({"epel-release": "6-8"})).run(catalog)

    result = ConvergenceEngine(LocalFileBackend(tmp_path), OfflinePackageBackend()).run(catalog)

    assert [o.status for o in result.outcomes] == [Status.UNCHANGED, Status.UNCHANGED, Status.FAILED]


def test_should_continue_stops_before_next_resource(tmp_path: Path) -> None:
    calls = iter([True, False])
    engine = ConvergenceEngine(
        LocalFileBackend(tmp_path),
        FakePackageBackend({"epel-release": "6-8"}),
        should_continue=lambda: next(calls),
    )

    result = engine.run(compile_catalog(REDHAT_6))

    assert [o.ref for o in result.outcomes] == [f"File[{EPEL_REPO}]"]
    assert result.not_started == [f"File[{EPEL_TESTING_REPO}]", "Package[epel-release]"]
    assert result.aborted is True
    assert not (tmp_path / EPEL_TESTING_REPO.lstrip("/")).exists()


def test_cancel_from_progress_callback(tmp_path: Path) -> None:
    seen: list[str] = []

    def progress(declaration):
        seen.append(declaration.ref)
        if declaration.type == "File" and declaration.title == EPEL_TESTING_REPO:
            engine.cancel()

    engine = ConvergenceEngine(
        LocalFileBackend(tmp_path),
        FakePackageBackend({"epel-release": "6-8"}),
        progress_callback=progress,
    )
    result = engine.run(compile_catalog(REDHAT_6))

    assert seen == [f"File[{EPEL_REPO}]", f"File[{EPEL_TESTING_REPO}]"]
    assert len(result.outcomes) == 2
    assert result.not_started == ["Package[epel-release]"]


def test_cancel_before_run_stops_that_run_only(tmp_path: Path) -> None:
    engine = ConvergenceEngine(LocalFileBackend(tmp_path), FakePackageBackend({"epel-release": "6-8"}))
    catalog = compile_catalog(REDHAT_6)

    engine.cancel()
    result = engine.run(catalog)

    assert result.outcomes == []
    assert result.not_started == catalog.refs
    assert result.aborted is True
    assert not (tmp_path / EPEL_REPO.lstrip("/")).exists()

    result = engine.run(catalog)
    assert result.aborted is False
    assert result.failed is False
    assert len(result.outcomes) == 3


def test_dry_run_changes_nothing(tmp_path: Path) -> None:
    packages = FakePackageBackend({"epel-release": "6-8"})
    engine = ConvergenceEngine(LocalFileBackend(tmp_path), packages, dry_run=True)

    result = engine.run(compile_catalog(REDHAT_6))

    assert result.dry_run is True
    assert result.changed == 3
    assert not (tmp_path / "etc").exists()
    assert packages.installed == {}
