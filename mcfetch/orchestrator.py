"""
安装协调器

根据版本元数据构建安装任务树：版本 JSON -> 版本 jar -> 库文件 -> 资源索引 -> 资源对象。
库文件与资源对象以有限并发下载，单个文件失败不会影响其他文件。
"""

import functools
import json
from typing import List, Optional, Union

import aiofiles
from loguru import logger

from mcfetch.download import DownloadManager, InstallTask
from mcfetch.exceptions import ManifestParseError
from mcfetch.folder import MinecraftFolder
from mcfetch.models import (
    ArtifactDescriptor,
    ArtifactKind,
    ArtifactSet,
    AssetIndex,
    InstallOptions,
    VersionIndexEntry,
    VersionManifest,
)
from mcfetch.rules import Platform
from mcfetch.services.artifact_resolver import SIDES, ArtifactResolver
from mcfetch.services.diagnostics import load_asset_index
from mcfetch.services.http_client import HttpClient
from mcfetch.services.manifest_parser import parse

VersionMeta = Union[VersionIndexEntry, VersionManifest, dict]


class VersionInstaller:
    """单个版本的安装器，负责构建并驱动任务树"""

    def __init__(
        self,
        side: str,
        version_meta: VersionMeta,
        location: Union[str, MinecraftFolder],
        options: Optional[InstallOptions] = None,
        client: Optional[HttpClient] = None,
        platform: Optional[Platform] = None,
    ):
        if side not in SIDES:
            raise ValueError(f"side 必须是 client 或 server，得到: {side}")

        self.side = side
        self.folder = MinecraftFolder.of(location)
        self.options = options or InstallOptions()
        self._owned_client = client is None
        self.client = client or HttpClient(timeout=self.options.timeout)
        self.downloader = DownloadManager(
            client=self.client,
            checksum=self.options.checksum,
            max_retries=self.options.max_retries,
            retry_delay=self.options.retry_delay,
        )
        self.resolver = ArtifactResolver.from_options(self.options, platform)

        self.known_manifest: Optional[VersionManifest] = None
        self.entry: Optional[VersionIndexEntry] = None
        if isinstance(version_meta, VersionManifest):
            self.known_manifest = version_meta
            self.version_id = version_meta.id
        else:
            if isinstance(version_meta, dict):
                version_meta = VersionIndexEntry.from_dict(version_meta)
            self.entry = version_meta
            self.version_id = version_meta.id

        self.manifest: Optional[VersionManifest] = None
        self.artifacts: Optional[ArtifactSet] = None
        self.asset_index: Optional[AssetIndex] = None
        self._root: Optional[InstallTask] = None

    def build(self) -> InstallTask:
        """构建任务树"""
        width = self.options.max_concurrent
        self._root = InstallTask(
            f"install-{self.side}-{self.version_id}",
            children=[
                InstallTask("fetch-json", work=self._fetch_json, required=True),
                InstallTask("fetch-jar", expand=self._expand_jar),
                InstallTask("fetch-libraries", expand=self._expand_libraries, concurrency=width),
                InstallTask("fetch-asset-index", expand=self._expand_asset_index, required=True),
                InstallTask("fetch-assets", expand=self._expand_assets, concurrency=width),
            ],
            result_factory=lambda: self.manifest,
            cleanup=self._cleanup,
        )
        return self._root

    def _leaf(self, artifact: ArtifactDescriptor, work=None) -> InstallTask:
        if work is None:
            work = functools.partial(
                self.downloader.fetch,
                artifact,
                self.folder.resolve(artifact.path),
                self._root.token if self._root else None,
            )
        return InstallTask(artifact.name, work=work)

    async def _write_known_manifest(self, manifest: VersionManifest):
        path = self.folder.get_version_json(manifest.id)
        if path.is_file():
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(manifest.to_dict() or {"id": manifest.id}, indent=4))
        logger.debug(f"[写入] 版本清单 {path}")

    async def _fetch_json(self) -> VersionManifest:
        if self.known_manifest is not None:
            await self._write_known_manifest(self.known_manifest)
            if self.known_manifest.inherits_from is None:
                self.manifest = self.known_manifest
            else:
                self.manifest = await parse(self.folder, self.version_id)
        else:
            entry = self.entry
            artifact = ArtifactDescriptor(
                kind=ArtifactKind.VERSION_JSON,
                name=f"{entry.id}.json",
                path=f"versions/{entry.id}/{entry.id}.json",
                url=entry.url or None,
                sha1=entry.sha1,
            )
            await self.downloader.fetch(
                artifact, self.folder.get_version_json(entry.id), self._root.token
            )
            self.manifest = await parse(self.folder, entry.id)

        self.artifacts = self.resolver.resolve(self.manifest, self.side)
        logger.info(
            f"[解析] {self.manifest.id}: {len(self.artifacts.libraries)} 个库文件需要检查"
        )
        return self.manifest

    async def _expand_jar(self) -> List[InstallTask]:
        if self.artifacts is None or self.artifacts.version_jar is None:
            return []
        return [self._leaf(self.artifacts.version_jar)]

    async def _expand_libraries(self) -> List[InstallTask]:
        if self.artifacts is None:
            return []
        return [self._leaf(artifact) for artifact in self.artifacts.libraries]

    async def _expand_asset_index(self) -> List[InstallTask]:
        if self.artifacts is None or self.artifacts.asset_index is None:
            return []
        artifact = self.artifacts.asset_index
        return [self._leaf(artifact, functools.partial(self._fetch_asset_index, artifact))]

    async def _fetch_asset_index(self, artifact: ArtifactDescriptor) -> AssetIndex:
        path = self.folder.resolve(artifact.path)
        await self.downloader.fetch(artifact, path, self._root.token)
        index = await load_asset_index(path, self.manifest.asset_index.id)
        if index is None:
            raise ManifestParseError(
                f"资源索引无法解析: {artifact.name}", context={"path": artifact.path}
            )
        self.asset_index = index
        return index

    async def _expand_assets(self) -> List[InstallTask]:
        if self.asset_index is None:
            return []
        resolved = self.resolver.resolve(self.manifest, self.side, self.asset_index)
        logger.info(f"[资源] 共 {len(resolved.assets)} 个资源对象需要检查")
        return [self._leaf(artifact) for artifact in resolved.assets]

    async def _cleanup(self):
        stats = self.downloader.get_stats()
        logger.info(
            f"[统计] {stats.completed} 个下载, {stats.skipped} 个跳过, {stats.failed} 个失败"
        )
        if self._owned_client:
            await self.client.close()


def install_task(
    side: str,
    version_meta: VersionMeta,
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
    platform: Optional[Platform] = None,
) -> InstallTask:
    """
    构建安装任务

    Args:
        side: client 或 server
        version_meta: 版本索引条目（或等价字典），或已知的版本清单（跳过远程获取）
        location: 游戏根目录
        options: 安装选项
        client: HTTP 客户端，未提供时任务结束后自动关闭内部客户端

    Returns:
        InstallTask，调用 execute() 开始执行，结果为合并后的 VersionManifest
    """
    installer = VersionInstaller(side, version_meta, location, options, client, platform)
    return installer.build()


def install_dependencies_task(
    manifest: VersionManifest,
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
    side: str = "client",
    platform: Optional[Platform] = None,
) -> InstallTask:
    """为已解析的版本清单构建依赖安装任务（库文件、资源索引、资源对象、版本 jar）"""
    return install_task(side, manifest, location, options, client, platform)


async def install_dependencies(
    manifest: VersionManifest,
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
    side: str = "client",
    platform: Optional[Platform] = None,
) -> VersionManifest:
    """
    安装已解析清单的全部依赖

    用于加载器改变了库文件集合之后，只下载新增或损坏的文件。
    """
    task = install_dependencies_task(manifest, location, options, client, side, platform)
    return await task.execute()


async def install(
    side: str,
    version_meta: VersionMeta,
    location: Union[str, MinecraftFolder],
    options: Optional[InstallOptions] = None,
    client: Optional[HttpClient] = None,
    platform: Optional[Platform] = None,
) -> VersionManifest:
    """安装版本并补全依赖，返回合并后的版本清单"""
    manifest = await install_task(side, version_meta, location, options, client, platform).execute()
    return await install_dependencies(manifest, location, options, client, side, platform)
