"""Shared fixtures: on-disk Ivy and Maven repositories."""

from pathlib import Path
from typing import Iterable, Tuple

import pytest

from versionrecommender.repository import IvyRepository, MavenRepository, RepositoryView


def ivy_xml(org: str, module: str, rev: str, dependencies: Iterable[Tuple[str, str, str]] = ()) -> str:
    deps = '\n'.join(
        f'        <dependency org="{d_org}" name="{d_name}" rev="{d_rev}" conf="compile->default"/>'
        for d_org, d_name, d_rev in dependencies
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<ivy-module version="2.0">
    <info organisation="{org}" module="{module}" revision="{rev}"/>
    <dependencies>
{deps}
    </dependencies>
</ivy-module>
"""


def pom_xml(group: str, artifact: str, version: str, managed: Iterable[Tuple[str, str, str]] = ()) -> str:
    deps = '\n'.join(
        f"""            <dependency>
                <groupId>{g}</groupId>
                <artifactId>{a}</artifactId>
                <version>{v}</version>
            </dependency>"""
        for g, a, v in managed
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
    <modelVersion>4.0.0</modelVersion>
    <groupId>{group}</groupId>
    <artifactId>{artifact}</artifactId>
    <version>{version}</version>
    <packaging>pom</packaging>
    <dependencyManagement>
        <dependencies>
{deps}
        </dependencies>
    </dependencyManagement>
</project>
"""


class LocalIvyRepo:
    """Writes descriptors in the default Ivy pattern layout."""

    def __init__(self, base: Path):
        self.base = base

    def publish(self, org: str, module: str, rev: str, dependencies: Iterable[Tuple[str, str, str]] = ()) -> Path:
        path = self.base / org / module / rev / 'ivys' / f'ivy-{rev}.xml'
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(ivy_xml(org, module, rev, dependencies), encoding='utf-8')
        return path

    def repository(self) -> IvyRepository:
        return IvyRepository(str(self.base))


class LocalMavenRepo:
    """Writes POMs and maven-metadata.xml in the Maven 2 layout."""

    def __init__(self, base: Path):
        self.base = base

    def publish(self, group: str, artifact: str, version: str, managed: Iterable[Tuple[str, str, str]] = ()) -> Path:
        path = self.base / group.replace('.', '/') / artifact / version / f'{artifact}-{version}.pom'
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(pom_xml(group, artifact, version, managed), encoding='utf-8')
        return path

    def write_metadata(self, group: str, artifact: str, versions: Iterable[str]) -> Path:
        path = self.base / group.replace('.', '/') / artifact / 'maven-metadata.xml'
        path.parent.mkdir(parents=True, exist_ok=True)
        entries = ''.join(f'<version>{v}</version>' for v in versions)
        path.write_text(
            f'<metadata><groupId>{group}</groupId><artifactId>{artifact}</artifactId>'
            f'<versioning><versions>{entries}</versions></versioning></metadata>',
            encoding='utf-8',
        )
        return path

    def repository(self) -> MavenRepository:
        return MavenRepository(str(self.base))


@pytest.fixture
def ivy_repo(tmp_path) -> LocalIvyRepo:
    return LocalIvyRepo(tmp_path / 'ivy-repo')


@pytest.fixture
def maven_repo(tmp_path) -> LocalMavenRepo:
    return LocalMavenRepo(tmp_path / 'maven-repo')


@pytest.fixture
def repository_view(ivy_repo, maven_repo) -> RepositoryView:
    return RepositoryView([ivy_repo.repository(), maven_repo.repository()])


@pytest.fixture
def work_dir(tmp_path) -> Path:
    return tmp_path / 'project' / 'build' / 'versionRecommendation'


@pytest.fixture
def config_dir(tmp_path) -> Path:
    path = tmp_path / 'project'
    path.mkdir(parents=True, exist_ok=True)
    return path
