"""
McFetch 数据模型包

包含版本清单、文件描述、诊断报告、配置以及加载器元数据定义。
"""

from mcfetch.models.manifest import (
    AssetIndexRef,
    Coordinate,
    DownloadInfo,
    LibraryEntry,
    VersionManifest,
)
from mcfetch.models.artifact import (
    ArtifactDescriptor,
    ArtifactKind,
    ArtifactSet,
    AssetIndex,
    AssetObject,
)
from mcfetch.models.report import DiagnosisReport
from mcfetch.models.index import VersionIndex, VersionIndexEntry
from mcfetch.models.config import InstallOptions
from mcfetch.models.loader import (
    ForgeArtifact,
    ForgeVersionMeta,
    LiteLoaderVersionMeta,
)

__all__ = [
    # 清单模型
    "AssetIndexRef",
    "Coordinate",
    "DownloadInfo",
    "LibraryEntry",
    "VersionManifest",
    # 文件模型
    "ArtifactDescriptor",
    "ArtifactKind",
    "ArtifactSet",
    "AssetIndex",
    "AssetObject",
    "DiagnosisReport",
    # 索引与配置
    "VersionIndex",
    "VersionIndexEntry",
    "InstallOptions",
    # 加载器模型
    "ForgeArtifact",
    "ForgeVersionMeta",
    "LiteLoaderVersionMeta",
]
