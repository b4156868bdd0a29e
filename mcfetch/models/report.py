"""
诊断报告模型
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from mcfetch.models.artifact import ArtifactDescriptor
from mcfetch.models.manifest import LibraryEntry


@dataclass(frozen=True)
class DiagnosisReport:
    """
    一次诊断的结果快照，返回后不再修改。

    missing_libraries 同时包含缺失的 natives 所属的库条目。
    missing_assets 为 虚拟路径 -> 期望的文件描述。
    """

    version_id: str
    missing_version_json: bool = False
    missing_version_jar: bool = False
    missing_asset_index: bool = False
    missing_libraries: Tuple[LibraryEntry, ...] = ()
    missing_assets: Mapping[str, ArtifactDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        # 冻结调用方传入的可变容器
        object.__setattr__(self, "missing_libraries", tuple(self.missing_libraries))
        object.__setattr__(self, "missing_assets", MappingProxyType(dict(self.missing_assets)))

    @property
    def is_complete(self) -> bool:
        return not (
            self.missing_version_json
            or self.missing_version_jar
            or self.missing_asset_index
            or self.missing_libraries
            or self.missing_assets
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_id": self.version_id,
            "missing_version_json": self.missing_version_json,
            "missing_version_jar": self.missing_version_jar,
            "missing_asset_index": self.missing_asset_index,
            "missing_libraries": [lib.name for lib in self.missing_libraries],
            "missing_assets": {
                name: artifact.path for name, artifact in self.missing_assets.items()
            },
        }
