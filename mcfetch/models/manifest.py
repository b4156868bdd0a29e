"""
版本清单数据模型

定义版本清单、库文件条目、下载描述等数据类，并负责与 JSON 之间的转换。
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mcfetch.exceptions import ManifestParseError
from mcfetch.rules import Rule


@dataclass
class DownloadInfo:
    """远程文件下载描述"""

    url: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, where: str = "downloads") -> "DownloadInfo":
        if not isinstance(data, dict):
            raise ManifestParseError(f"{where} 必须是对象", context={"path": where})
        url = data.get("url", "")
        if not isinstance(url, str):
            raise ManifestParseError(f"{where}/url 必须是字符串", context={"path": where})
        size = data.get("size")
        if size is not None and not isinstance(size, int):
            raise ManifestParseError(f"{where}/size 必须是整数", context={"path": where})
        sha1 = data.get("sha1")
        if sha1 is not None and not isinstance(sha1, str):
            raise ManifestParseError(f"{where}/sha1 必须是字符串", context={"path": where})
        return cls(url=url, sha1=sha1 or None, size=size, path=data.get("path"))


@dataclass
class AssetIndexRef:
    """版本清单中对资源索引的引用"""

    id: str
    url: str
    sha1: Optional[str] = None
    size: Optional[int] = None
    total_size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "AssetIndexRef":
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise ManifestParseError("assetIndex 必须是包含 id 的对象")
        return cls(
            id=data["id"],
            url=data.get("url", ""),
            sha1=data.get("sha1") or None,
            size=data.get("size"),
            total_size=data.get("totalSize"),
        )


@dataclass
class Coordinate:
    """Maven 风格的库坐标 group:artifact:version[:classifier][@ext]"""

    group: str
    artifact: str
    version: str
    classifier: Optional[str] = None
    extension: str = "jar"

    @classmethod
    def parse(cls, name: str) -> "Coordinate":
        extension = "jar"
        if "@" in name:
            name, extension = name.split("@", 1)
        parts = name.split(":")
        if len(parts) < 3 or not all(parts[:3]):
            raise ManifestParseError(f"无效的库坐标: {name}", context={"name": name})
        return cls(
            group=parts[0],
            artifact=parts[1],
            version=parts[2],
            classifier=parts[3] if len(parts) > 3 else None,
            extension=extension,
        )

    def with_classifier(self, classifier: Optional[str]) -> "Coordinate":
        return Coordinate(self.group, self.artifact, self.version, classifier, self.extension)

    @property
    def key(self) -> str:
        """不含版本号的标识，用于合并时判断重复"""
        key = f"{self.group}:{self.artifact}"
        if self.classifier:
            key += f":{self.classifier}"
        return key

    def path(self) -> str:
        """
        返回库文件的标准相对路径，始终使用正斜杠

        `com.foo.bar:artifact:1.0` -> `com/foo/bar/artifact/1.0/artifact-1.0.jar`
        """
        file_name = f"{self.artifact}-{self.version}"
        if self.classifier:
            file_name += f"-{self.classifier}"
        file_name += f".{self.extension}"
        return "/".join([*self.group.split("."), self.artifact, self.version, file_name])

    def __str__(self) -> str:
        s = f"{self.group}:{self.artifact}:{self.version}"
        if self.classifier:
            s += f":{self.classifier}"
        if self.extension != "jar":
            s += f"@{self.extension}"
        return s


@dataclass
class LibraryEntry:
    """
    版本清单中的单个库文件条目。
    """

    name: str
    rules: List[Rule] = field(default_factory=list)
    natives: Dict[str, str] = field(default_factory=dict)
    artifact: Optional[DownloadInfo] = None
    classifiers: Dict[str, DownloadInfo] = field(default_factory=dict)
    url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate.parse(self.name)

    @property
    def key(self) -> str:
        return self.coordinate.key

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> "LibraryEntry":
        where = f"libraries/{index}"
        if not isinstance(data, dict):
            raise ManifestParseError(f"{where} 必须是对象")
        name = data.get("name")
        if not isinstance(name, str):
            raise ManifestParseError(f"{where}/name 必须是字符串")

        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ManifestParseError(f"{where}/rules 必须是列表")

        natives = data.get("natives") or {}
        if not isinstance(natives, dict):
            raise ManifestParseError(f"{where}/natives 必须是对象")

        downloads = data.get("downloads")
        artifact = None
        classifiers: Dict[str, DownloadInfo] = {}
        if downloads is not None:
            if not isinstance(downloads, dict):
                raise ManifestParseError(f"{where}/downloads 必须是对象")
            if downloads.get("artifact") is not None:
                artifact = DownloadInfo.from_dict(
                    downloads["artifact"], f"{where}/downloads/artifact"
                )
            for classifier, info in (downloads.get("classifiers") or {}).items():
                classifiers[classifier] = DownloadInfo.from_dict(
                    info, f"{where}/downloads/classifiers/{classifier}"
                )

        return cls(
            name=name,
            rules=[Rule.from_dict(r) for r in rules],
            natives=dict(natives),
            artifact=artifact,
            classifiers=classifiers,
            url=data.get("url"),
            raw=copy.deepcopy(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.raw) if self.raw else {"name": self.name}


@dataclass
class VersionManifest:
    """
    完整的版本清单

    若设置了 inherits_from，此对象仅代表子清单本身；合并后的清单由
    manifest_parser.parse 产生，此时 inherits_from 为 None。
    """

    id: str
    type: str = "release"
    main_class: Optional[str] = None
    downloads: Dict[str, DownloadInfo] = field(default_factory=dict)
    asset_index: Optional[AssetIndexRef] = None
    assets: Optional[str] = None
    libraries: List[LibraryEntry] = field(default_factory=list)
    arguments: Dict[str, list] = field(default_factory=dict)
    minecraft_arguments: Optional[str] = None
    inherits_from: Optional[str] = None
    jar: Optional[str] = None
    time: Optional[str] = None
    release_time: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def jar_id(self) -> str:
        """版本 jar 所在的版本 ID"""
        return self.jar or self.id

    @classmethod
    def from_dict(cls, data: Any) -> "VersionManifest":
        if not isinstance(data, dict):
            raise ManifestParseError("版本清单必须是 JSON 对象")
        version_id = data.get("id")
        if not isinstance(version_id, str) or not version_id:
            raise ManifestParseError("版本清单缺少 id 字段")

        libraries = data.get("libraries") or []
        if not isinstance(libraries, list):
            raise ManifestParseError("libraries 必须是列表", context={"id": version_id})

        downloads = {
            key: DownloadInfo.from_dict(value, f"downloads/{key}")
            for key, value in (data.get("downloads") or {}).items()
            if isinstance(value, dict)
        }

        inherits_from = data.get("inheritsFrom")
        if inherits_from is not None and not isinstance(inherits_from, str):
            raise ManifestParseError("inheritsFrom 必须是字符串", context={"id": version_id})

        asset_index = None
        if data.get("assetIndex") is not None:
            asset_index = AssetIndexRef.from_dict(data["assetIndex"])

        return cls(
            id=version_id,
            type=data.get("type", "release"),
            main_class=data.get("mainClass"),
            downloads=downloads,
            asset_index=asset_index,
            assets=data.get("assets"),
            libraries=[LibraryEntry.from_dict(lib, i) for i, lib in enumerate(libraries)],
            arguments=copy.deepcopy(data.get("arguments") or {}),
            minecraft_arguments=data.get("minecraftArguments"),
            inherits_from=inherits_from,
            jar=data.get("jar"),
            time=data.get("time"),
            release_time=data.get("releaseTime"),
            raw=copy.deepcopy(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        """返回原始 JSON 结构的副本"""
        return copy.deepcopy(self.raw)
