import pytest

from epel_automation.compiler import CatalogCompiler, compile_catalog
from epel_automation.types import UnsupportedPlatform

EPEL_REPO = "/etc/yum.repos.d/epel.repo"
EPEL_TESTING_REPO = "/etc/yum.repos.d/epel-testing.repo"


def facts(release: str, operating_system: str = "RedHat") -> dict:
    return {"operating_system": operating_system, "os_major_release": release}


def test_release_6_declares_repo_files_and_release_package() -> None:
    catalog = compile_catalog(facts("6"))

    assert catalog.refs == [
        f"File[{EPEL_REPO}]",
        f"File[{EPEL_TESTING_REPO}]",
        "Package[epel-release]",
    ]
    for path in (EPEL_REPO, EPEL_TESTING_REPO):
        declaration = catalog.get("File", path)
        assert declaration.get("ensure") == "file"
        assert declaration.get("mode") == "0644"
    assert dict(catalog.get("Package", "epel-release").attributes) == {"ensure": "latest"}


def test_release_6_repo_content() -> None:
    catalog = compile_catalog(facts("6"))
    content = catalog.get("File", EPEL_REPO).get("content")

    assert content.startswith("[epel]\nname=Extra Packages for Enterprise Linux 6 - $basearch\n")
    assert "mirrorlist=https://mirrors.fedoraproject.org/metalink?repo=epel-6&arch=$basearch" in content
    assert "failovermethod=priority" in content
    assert "gpgkey=file:///etc/pki/rpm-gpg/RPM-GPG-KEY-EPEL-6" in content
    assert "[epel-debuginfo]" in content
    assert "[epel-source]" in content
    assert "enabled=1\n" in content.split("[epel-debuginfo]")[0]

    testing = catalog.get("File", EPEL_TESTING_REPO).get("content")
    assert testing.startswith("[epel-testing]\n")
    assert "repo=epel-testing-6" in testing
    assert "enabled=1" not in testing


@pytest.mark.parametrize("release", ["6", "7", "8", "9"])
def test_current_releases_track_latest(release: str) -> None:
    catalog = compile_catalog(facts(release))

    assert len(catalog) == 3
    assert catalog.get("Package", "epel-release").get("ensure") == "latest"
    assert f"RPM-GPG-KEY-EPEL-{release}" in catalog.get("File", EPEL_REPO).get("content")


@pytest.mark.parametrize("release", ["8", "9"])
def test_dnf_releases_omit_failovermethod(release: str) -> None:
    catalog = compile_catalog(facts(release))
    assert "failovermethod" not in catalog.get("File", EPEL_REPO).get("content")


def test_release_5_uses_archive_and_present() -> None:
    catalog = compile_catalog(facts("5", "CentOS"))
    content = catalog.get("File", EPEL_REPO).get("content")
    testing = catalog.get("File", EPEL_TESTING_REPO).get("content")

    assert catalog.get("Package", "epel-release").get("ensure") == "present"
    assert "baseurl=https://archives.fedoraproject.org/pub/archive/epel/5/$basearch\n" in content
    assert "mirrorlist" not in content
    assert "archive/epel/testing/5/$basearch" in testing


def test_amazon_uses_el6_repositories() -> None:
    amazon = compile_catalog(facts("2018", "Amazon"))
    redhat = compile_catalog(facts("6"))

    assert amazon.get("File", EPEL_REPO).get("content") == redhat.get("File", EPEL_REPO).get("content")


def test_legacy_fact_names_select_the_same_branch() -> None:
    catalog = compile_catalog(
        {"operatingsystem": "Scientific", "operatingsystemrelease": "6.4"}
    )
    assert catalog.get("Package", "epel-release").get("ensure") == "latest"
    assert "repo=epel-6" in catalog.get("File", EPEL_REPO).get("content")


def test_unsupported_operating_system() -> None:
    with pytest.raises(UnsupportedPlatform) as excinfo:
        compile_catalog(facts("12", "Debian"))
    assert excinfo.value.operating_system == "Debian"
    assert "not supported" in str(excinfo.value)


def test_unsupported_major_release() -> None:
    with pytest.raises(UnsupportedPlatform) as excinfo:
        compile_catalog(facts("4"))
    assert excinfo.value.release == "4"


def test_missing_fact_is_unsupported() -> None:
    with pytest.raises(UnsupportedPlatform):
        compile_catalog({"operating_system": "RedHat"})


def test_parameters_override_sources() -> None:
    catalog = compile_catalog(
        facts("7"),
        params={
            "baseurl": "http://mirror.example.com/epel/7/$basearch",
            "proxy": "http://proxy.example.com:3128",
            "testing_enabled": "yes",
            "package_ensure": "7-14",
            "repo_mode": "0600",
        },
    )
    main = catalog.get("File", EPEL_REPO)
    epel_stanza = main.get("content").split("[epel-debuginfo]")[0]
    testing = catalog.get("File", EPEL_TESTING_REPO).get("content")

    assert "baseurl=http://mirror.example.com/epel/7/$basearch" in epel_stanza
    assert "mirrorlist" not in epel_stanza
    assert "proxy=http://proxy.example.com:3128" in epel_stanza
    assert testing.split("[epel-testing-debuginfo]")[0].endswith(
        "enabled=1\ngpgcheck=1\ngpgkey=file:///etc/pki/rpm-gpg/RPM-GPG-KEY-EPEL-7\n\n"
    )
    assert main.get("mode") == "0600"
    assert catalog.get("Package", "epel-release").get("ensure") == "7-14"


def test_unknown_parameter_rejected() -> None:
    with pytest.raises(ValueError):
        compile_catalog(facts("6"), params={"mirror": "http://example.com"})


def test_compilation_is_deterministic() -> None:
    first = compile_catalog(facts("7"))
    second = CatalogCompiler().compile(facts("7"))

    assert first.refs == second.refs
    assert [dict(r.attributes) for r in first] == [dict(r.attributes) for r in second]
