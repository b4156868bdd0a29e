"""
模组加载器

Forge、Fabric、LiteLoader 派生版本清单的生成与注册。
"""

from mcfetch.loaders import fabric, forge, liteloader
from mcfetch.loaders.base import compose_version_id, write_version_manifest

__all__ = [
    "fabric",
    "forge",
    "liteloader",
    "compose_version_id",
    "write_version_manifest",
]
