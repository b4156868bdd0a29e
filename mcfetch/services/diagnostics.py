"""
诊断服务

对照版本清单检查本地安装，报告缺失的文件。只读，不下载、不写入、不删除。
"""

import json
from typing import Dict, List, Optional, Union

import aiofiles
from loguru import logger

from mcfetch.exceptions import ManifestNotFound, ManifestParseError
from mcfetch.folder import MinecraftFolder
from mcfetch.models import (
    ArtifactDescriptor,
    AssetIndex,
    DiagnosisReport,
    InstallOptions,
    LibraryEntry,
)
from mcfetch.rules import Platform
from mcfetch.services.artifact_resolver import ArtifactResolver
from mcfetch.services.manifest_parser import parse


async def load_asset_index(path, index_id: str) -> Optional[AssetIndex]:
    """读取本地资源索引，不存在或损坏时返回 None"""
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return AssetIndex.from_dict(index_id, json.loads(await f.read()))
    except (OSError, json.JSONDecodeError, ManifestParseError):
        return None


async def diagnose(
    version_id: str,
    location: Union[str, MinecraftFolder],
    side: str = "client",
    options: Optional[InstallOptions] = None,
    platform: Optional[Platform] = None,
) -> DiagnosisReport:
    """
    诊断本地安装

    库文件与资源对象只检查是否存在；版本 jar 额外要求非空。
    版本 JSON 无法读取时直接返回，只设置 missing_version_json。

    Args:
        version_id: 版本 ID
        location: 游戏根目录
        side: client 或 server
        options: 安装选项（仅用于远程地址，诊断不访问网络）
        platform: 规则匹配平台，默认当前平台

    Returns:
        DiagnosisReport
    """
    folder = MinecraftFolder.of(location)
    options = options or InstallOptions()

    try:
        manifest = await parse(folder, version_id)
    except ManifestNotFound:
        logger.warning(f"[诊断] 版本 {version_id} 的 JSON 不存在")
        return DiagnosisReport(version_id=version_id, missing_version_json=True)

    resolver = ArtifactResolver.from_options(options, platform)
    artifacts = resolver.resolve(manifest, side)

    missing_version_jar = False
    if artifacts.version_jar is not None:
        jar_path = folder.resolve(artifacts.version_jar.path)
        missing_version_jar = not jar_path.is_file() or jar_path.stat().st_size == 0

    missing_libraries: List[LibraryEntry] = []
    seen_libraries = set()
    for artifact in artifacts.libraries:
        if folder.resolve(artifact.path).is_file():
            continue
        if artifact.library is not None and id(artifact.library) not in seen_libraries:
            seen_libraries.add(id(artifact.library))
            missing_libraries.append(artifact.library)

    missing_asset_index = False
    missing_assets: Dict[str, ArtifactDescriptor] = {}
    if artifacts.asset_index is not None and manifest.asset_index is not None:
        index = await load_asset_index(
            folder.resolve(artifacts.asset_index.path), manifest.asset_index.id
        )
        if index is None:
            missing_asset_index = True
        else:
            for asset in resolver.resolve_assets(index):
                if not folder.resolve(asset.path).is_file():
                    missing_assets[asset.name] = asset

    report = DiagnosisReport(
        version_id=version_id,
        missing_version_jar=missing_version_jar,
        missing_asset_index=missing_asset_index,
        missing_libraries=tuple(missing_libraries),
        missing_assets=missing_assets,
    )
    if report.is_complete:
        logger.info(f"[诊断] {version_id} 安装完整")
    else:
        logger.warning(
            f"[诊断] {version_id}: 缺失 {len(report.missing_libraries)} 个库, "
            f"{len(report.missing_assets)} 个资源"
        )
    return report
