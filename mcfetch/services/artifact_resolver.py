"""
文件解析服务

将版本清单展开为需要安装的具体文件集合：版本 JSON、版本 jar、库文件、
natives、资源索引以及资源对象。此步骤不进行任何 I/O。
"""

from typing import Dict, Iterable, List, Optional

from loguru import logger

from mcfetch.exceptions import ArtifactConflict, ManifestParseError
from mcfetch.models import (
    ArtifactDescriptor,
    ArtifactKind,
    ArtifactSet,
    AssetIndex,
    InstallOptions,
    LibraryEntry,
    VersionManifest,
)
from mcfetch.models.config import ASSETS_URL, LIBRARIES_URL
from mcfetch.rules import Platform, evaluate_rules, native_classifier

SIDES = ("client", "server")


class ArtifactResolver:
    """文件解析器"""

    def __init__(
        self,
        platform: Optional[Platform] = None,
        libraries_url: str = LIBRARIES_URL,
        assets_url: str = ASSETS_URL,
        features: Optional[Dict[str, bool]] = None,
    ):
        self.platform = platform or Platform.current()
        self.libraries_url = libraries_url if libraries_url.endswith("/") else libraries_url + "/"
        self.assets_url = assets_url if assets_url.endswith("/") else assets_url + "/"
        self.features = features or {}

    @classmethod
    def from_options(
        cls, options: InstallOptions, platform: Optional[Platform] = None
    ) -> "ArtifactResolver":
        return cls(
            platform=platform,
            libraries_url=options.libraries_url,
            assets_url=options.assets_url,
        )

    def resolve(
        self,
        manifest: VersionManifest,
        side: str = "client",
        asset_index: Optional[AssetIndex] = None,
    ) -> ArtifactSet:
        """
        解析版本清单需要的全部文件

        Args:
            manifest: 合并后的版本清单
            side: client 或 server
            asset_index: 已加载的资源索引，提供时展开资源对象

        Returns:
            ArtifactSet，按本地路径去重

        Raises:
            ArtifactConflict: 同一路径对应不同哈希
        """
        if side not in SIDES:
            raise ValueError(f"side 必须是 client 或 server，得到: {side}")

        artifact_set = ArtifactSet(
            version_json=self.version_json(manifest),
            version_jar=self.version_jar(manifest, side),
        )

        libraries = self.resolve_libraries(manifest)

        if side == "client":
            artifact_set.asset_index = self.asset_index(manifest)
            if asset_index is not None:
                artifact_set.assets = self.resolve_assets(asset_index)

        # 所有文件统一去重与冲突检测
        seen: Dict[str, ArtifactDescriptor] = {}
        for fixed in (artifact_set.version_json, artifact_set.version_jar, artifact_set.asset_index):
            if fixed is not None:
                self._check(seen, fixed)
        artifact_set.libraries = [a for a in libraries if self._check(seen, a)]
        artifact_set.assets = [a for a in artifact_set.assets if self._check(seen, a)]

        logger.debug(
            f"[解析] {manifest.id}: {len(artifact_set.libraries)} 个库文件, "
            f"{len(artifact_set.assets)} 个资源对象"
        )
        return artifact_set

    @staticmethod
    def _check(seen: Dict[str, ArtifactDescriptor], artifact: ArtifactDescriptor) -> bool:
        """登记文件，返回 True 表示首次出现"""
        existing = seen.get(artifact.path)
        if existing is None:
            seen[artifact.path] = artifact
            return True
        if (
            existing.sha1
            and artifact.sha1
            and existing.sha1.lower() != artifact.sha1.lower()
        ):
            raise ArtifactConflict(
                f"文件路径冲突: {artifact.path}",
                context={
                    "path": artifact.path,
                    "artifacts": [existing.name, artifact.name],
                    "hashes": [existing.sha1, artifact.sha1],
                },
            )
        return False

    def version_json(self, manifest: VersionManifest) -> ArtifactDescriptor:
        return ArtifactDescriptor(
            kind=ArtifactKind.VERSION_JSON,
            name=f"{manifest.id}.json",
            path=f"versions/{manifest.id}/{manifest.id}.json",
        )

    def version_jar(
        self, manifest: VersionManifest, side: str = "client"
    ) -> Optional[ArtifactDescriptor]:
        jar_id = manifest.jar_id
        download = manifest.downloads.get(side)
        file_name = f"{jar_id}-server.jar" if side == "server" else f"{jar_id}.jar"
        if download is None and side == "server":
            return None
        return ArtifactDescriptor(
            kind=ArtifactKind.VERSION_JAR,
            name=file_name,
            path=f"versions/{jar_id}/{file_name}",
            url=download.url if download else None,
            sha1=download.sha1 if download else None,
            size=download.size if download else None,
        )

    def asset_index(self, manifest: VersionManifest) -> Optional[ArtifactDescriptor]:
        ref = manifest.asset_index
        if ref is None:
            return None
        return ArtifactDescriptor(
            kind=ArtifactKind.ASSET_INDEX,
            name=f"{ref.id}.json",
            path=f"assets/indexes/{ref.id}.json",
            url=ref.url or None,
            sha1=ref.sha1,
            size=ref.size,
        )

    def is_applicable(self, library: LibraryEntry) -> bool:
        """库文件的规则是否允许当前平台"""
        return evaluate_rules(library.rules, self.platform, self.features)

    def resolve_library(self, library: LibraryEntry) -> List[ArtifactDescriptor]:
        """
        解析单个库条目

        规则不满足时返回空列表；存在匹配当前系统的 natives 时额外返回 natives 文件。
        """
        if not self.is_applicable(library):
            return []

        coordinate = library.coordinate
        artifacts: List[ArtifactDescriptor] = []

        classifier = None
        if library.natives:
            classifier = native_classifier(library.natives, self.platform)

        # 只有 natives 的旧格式库条目没有主文件
        if library.artifact is not None or not library.natives:
            path = coordinate.path()
            if library.artifact is not None:
                url = library.artifact.url or None
                sha1, size = library.artifact.sha1, library.artifact.size
            else:
                url = self._repository(library) + path
                sha1, size = None, None
            artifacts.append(
                ArtifactDescriptor(
                    kind=ArtifactKind.LIBRARY,
                    name=str(coordinate),
                    path=f"libraries/{path}",
                    url=url,
                    sha1=sha1,
                    size=size,
                    library=library,
                )
            )

        if classifier is not None:
            native = coordinate.with_classifier(classifier)
            path = native.path()
            info = library.classifiers.get(classifier)
            if info is not None:
                url = info.url or None
                sha1, size = info.sha1, info.size
            else:
                url = self._repository(library) + path
                sha1, size = None, None
            artifacts.append(
                ArtifactDescriptor(
                    kind=ArtifactKind.NATIVE,
                    name=str(native),
                    path=f"libraries/{path}",
                    url=url,
                    sha1=sha1,
                    size=size,
                    library=library,
                )
            )

        return artifacts

    def resolve_libraries(self, manifest: VersionManifest) -> List[ArtifactDescriptor]:
        artifacts: List[ArtifactDescriptor] = []
        for library in manifest.libraries:
            try:
                artifacts.extend(self.resolve_library(library))
            except ManifestParseError as e:
                e.context.setdefault("version", manifest.id)
                raise
        return artifacts

    def resolve_assets(self, index: AssetIndex) -> List[ArtifactDescriptor]:
        """展开资源索引中的全部资源对象，按内容寻址存放"""
        return list(self._iter_assets(index))

    def _iter_assets(self, index: AssetIndex) -> Iterable[ArtifactDescriptor]:
        for virtual_path, obj in index.objects.items():
            yield ArtifactDescriptor(
                kind=ArtifactKind.ASSET,
                name=virtual_path,
                path=f"assets/objects/{obj.path}",
                url=self.assets_url + obj.path,
                sha1=obj.hash,
                size=obj.size,
            )

    def _repository(self, library: LibraryEntry) -> str:
        repo = library.url or self.libraries_url
        return repo if repo.endswith("/") else repo + "/"
