"""
安装配置模型
"""

from dataclasses import dataclass, fields
from typing import Any, Optional

from mcfetch.exceptions import McFetchError
from mcfetch.models.index import VersionIndex

VERSION_MANIFEST_URL = "https://launchermeta.mojang.com/mc/game/version_manifest.json"
LIBRARIES_URL = "https://libraries.minecraft.net/"
ASSETS_URL = "https://resources.download.minecraft.net/"
FABRIC_META_URL = "https://meta.fabricmc.net/v2/"
FORGE_MAVEN_URL = "https://files.minecraftforge.net"

# 配置文件中允许的驼峰写法
_ALIASES = {
    "clearTempDirAfterInstall": "clear_temp_dir_after_install",
    "tempDir": "temp_dir",
    "maxConcurrent": "max_concurrent",
    "maxRetries": "max_retries",
    "retryDelay": "retry_delay",
    "javaPath": "java_path",
}


@dataclass
class InstallOptions:
    """
    安装选项

    checksum 为 False 时仅检查文件是否存在，不校验哈希。
    """

    checksum: bool = True
    temp_dir: Optional[str] = None
    clear_temp_dir_after_install: bool = True
    fallback: Optional[VersionIndex] = None
    max_concurrent: int = 16
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 60.0
    version_manifest_url: str = VERSION_MANIFEST_URL
    libraries_url: str = LIBRARIES_URL
    assets_url: str = ASSETS_URL
    fabric_meta_url: str = FABRIC_META_URL
    forge_maven_url: str = FORGE_MAVEN_URL
    java_path: str = "java"

    def __post_init__(self):
        if not isinstance(self.max_concurrent, int) or self.max_concurrent <= 0:
            raise McFetchError(
                "max_concurrent 必须是正整数",
                context={"max_concurrent": self.max_concurrent},
            )
        if self.max_retries < 0:
            raise McFetchError("max_retries 不能为负数")

    @classmethod
    def from_dict(cls, data: dict) -> "InstallOptions":
        """从配置字典创建，忽略未知键"""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            key = _ALIASES.get(key, key)
            if key in known and key != "fallback":
                kwargs[key] = value
        return cls(**kwargs)
