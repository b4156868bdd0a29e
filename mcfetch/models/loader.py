"""
模组加载器元数据模型
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ForgeArtifact:
    """Forge 发布文件 (universal / installer)"""

    path: str
    sha1: Optional[str] = None
    md5: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForgeArtifact":
        return cls(path=data["path"], sha1=data.get("sha1"), md5=data.get("md5"))


@dataclass
class ForgeVersionMeta:
    """Forge 版本元数据"""

    mcversion: str
    version: str
    installer: ForgeArtifact
    universal: Optional[ForgeArtifact] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForgeVersionMeta":
        return cls(
            mcversion=data["mcversion"],
            version=data["version"],
            installer=ForgeArtifact.from_dict(data["installer"]),
            universal=ForgeArtifact.from_dict(data["universal"]) if data.get("universal") else None,
        )


@dataclass
class LiteLoaderVersionMeta:
    """LiteLoader 版本元数据"""

    url: str
    type: str
    file: str
    version: str
    mcversion: str
    tweak_class: str
    md5: Optional[str] = None
    timestamp: Optional[str] = None
    libraries: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiteLoaderVersionMeta":
        return cls(
            url=data["url"],
            type=data.get("type", "SNAPSHOT"),
            file=data["file"],
            version=data["version"],
            mcversion=data["mcversion"],
            tweak_class=data.get("tweakClass") or data["tweak_class"],
            md5=data.get("md5"),
            timestamp=data.get("timestamp"),
            libraries=list(data.get("libraries") or []),
        )
