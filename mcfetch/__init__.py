"""
McFetch - Minecraft 版本安装与诊断引擎

根据版本清单解析依赖闭包，下载并校验所有文件，支持继承合并、模组加载器与本地诊断。
"""

from mcfetch.exceptions import McFetchError
from mcfetch.folder import MinecraftFolder
from mcfetch.logger import setup_logger
from mcfetch.models import DiagnosisReport, InstallOptions, VersionIndex, VersionManifest
from mcfetch.orchestrator import (
    install,
    install_dependencies,
    install_dependencies_task,
    install_task,
)
from mcfetch.services import (
    ArtifactResolver,
    diagnose,
    fetch_remote_manifest_index,
    merge_manifests,
    parse,
)

__version__ = "0.1.0"

__all__ = [
    "McFetchError",
    "MinecraftFolder",
    "setup_logger",
    "DiagnosisReport",
    "InstallOptions",
    "VersionIndex",
    "VersionManifest",
    "install",
    "install_dependencies",
    "install_dependencies_task",
    "install_task",
    "ArtifactResolver",
    "diagnose",
    "fetch_remote_manifest_index",
    "merge_manifests",
    "parse",
]
