"""
文件描述模型

定义需要安装的单个文件 (ArtifactDescriptor)、文件集合以及资源索引。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from mcfetch.exceptions import ManifestParseError
from mcfetch.models.manifest import LibraryEntry


class ArtifactKind(Enum):
    """文件类型"""

    VERSION_JSON = "version_json"
    VERSION_JAR = "version_jar"
    LIBRARY = "library"
    NATIVE = "native"
    ASSET_INDEX = "asset_index"
    ASSET = "asset"


@dataclass(frozen=True)
class ArtifactDescriptor:
    """
    单个需要安装的文件

    path 为相对于游戏根目录的 POSIX 路径，sha1 固定使用 SHA1 算法。
    """

    kind: ArtifactKind
    name: str
    path: str
    url: Optional[str] = None
    sha1: Optional[str] = None
    size: Optional[int] = None
    library: Optional[LibraryEntry] = field(default=None, compare=False, repr=False)


@dataclass
class ArtifactSet:
    """解析得到的完整文件集合"""

    version_json: ArtifactDescriptor
    version_jar: Optional[ArtifactDescriptor]
    asset_index: Optional[ArtifactDescriptor] = None
    libraries: List[ArtifactDescriptor] = field(default_factory=list)
    assets: List[ArtifactDescriptor] = field(default_factory=list)

    def __iter__(self) -> Iterator[ArtifactDescriptor]:
        yield self.version_json
        if self.version_jar is not None:
            yield self.version_jar
        yield from self.libraries
        if self.asset_index is not None:
            yield self.asset_index
        yield from self.assets

    def __len__(self) -> int:
        return sum(1 for _ in self)


@dataclass(frozen=True)
class AssetObject:
    """资源对象"""

    hash: str
    size: int

    @property
    def path(self) -> str:
        return f"{self.hash[:2]}/{self.hash}"


@dataclass
class AssetIndex:
    """
    资源索引

    虚拟路径 -> (hash, size) 的映射。
    """

    id: str
    objects: Dict[str, AssetObject] = field(default_factory=dict)
    virtual: bool = False
    map_to_resources: bool = False

    @classmethod
    def from_dict(cls, index_id: str, data: Any) -> "AssetIndex":
        if not isinstance(data, dict) or not isinstance(data.get("objects"), dict):
            raise ManifestParseError(
                f"资源索引 {index_id} 缺少 objects 字段", context={"id": index_id}
            )
        objects = {}
        for virtual_path, obj in data["objects"].items():
            if not isinstance(obj, dict) or not isinstance(obj.get("hash"), str):
                raise ManifestParseError(
                    f"资源索引 {index_id} 中的 {virtual_path} 无效",
                    context={"id": index_id, "asset": virtual_path},
                )
            objects[virtual_path] = AssetObject(hash=obj["hash"].lower(), size=int(obj.get("size", 0)))
        return cls(
            id=index_id,
            objects=objects,
            virtual=bool(data.get("virtual", False)),
            map_to_resources=bool(data.get("map_to_resources", False)),
        )
